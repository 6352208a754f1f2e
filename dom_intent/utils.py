"""Utility helpers for string normalization."""

from __future__ import annotations

from typing import Optional


def preview(value: Optional[str], limit: int = 100, ellipsis: str = "...") -> str:
    """Return the first ``limit`` characters, marking cut text with ``ellipsis``."""
    if not value:
        return ""
    if len(value) > limit:
        return value[:limit] + ellipsis
    return value


def strip_code_fence(text: str) -> str:
    """Remove a surrounding Markdown code fence if the model adds one."""
    stripped = text.strip()
    if not stripped.startswith("```"):
        return stripped

    lines = stripped.splitlines()
    closing_index = None
    for idx in range(len(lines) - 1, 0, -1):
        if lines[idx].strip().startswith("```"):
            closing_index = idx
            break

    if closing_index is None:
        return "\n".join(lines[1:]).strip()

    return "\n".join(lines[1:closing_index]).strip()
