"""Markup sanitization and truncation ahead of prompting."""

from __future__ import annotations

import re

TRUNCATION_MARKER = "...[truncated]"
DEFAULT_MAX_CHARS = 10_000

SCRIPT_PATTERN = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
STYLE_PATTERN = re.compile(r"<style\b[^<]*(?:(?!</style>)<[^<]*)*</style>", re.IGNORECASE)
COMMENT_PATTERN = re.compile(r"<!--[\s\S]*?-->")
WHITESPACE_PATTERN = re.compile(r"\s+")


def sanitize_markup(html: str) -> str:
    """Drop script/style blocks and comments, then collapse whitespace."""
    text = html
    while True:
        # Removing one block can splice the remains of another into a match.
        stripped = SCRIPT_PATTERN.sub("", text)
        stripped = STYLE_PATTERN.sub("", stripped)
        stripped = COMMENT_PATTERN.sub("", stripped)
        if stripped == text:
            break
        text = stripped
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def truncate_markup(text: str, max_chars: int = DEFAULT_MAX_CHARS) -> str:
    """Cap ``text`` at ``max_chars`` characters, appending the truncation marker."""
    if len(text) > max_chars:
        return text[:max_chars] + TRUNCATION_MARKER
    return text


def simplify_markup(html: str, max_chars: int = DEFAULT_MAX_CHARS) -> str:
    return truncate_markup(sanitize_markup(html), max_chars)
