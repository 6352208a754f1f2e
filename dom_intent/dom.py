"""DOM surfaces the analyzer reads from: a live Playwright page or parsed HTML."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag
from playwright.async_api import Page
from soupsieve import SelectorSyntaxError

from .errors import InvalidSelectorError
from .models import ElementSample, SelectorMatch

_HREF_TAGS = {"a", "area", "link", "base"}

_OUTER_HTML_JS = "() => document.documentElement.outerHTML"

_SELECT_JS = """
([selector, limit, previewChars]) => {
    let nodes;
    try {
        nodes = document.querySelectorAll(selector);
    } catch (error) {
        return { error: String((error && error.message) || error) };
    }
    const className = (el) => {
        if (typeof el.className === 'string') return el.className || null;
        return el.getAttribute('class') || null;
    };
    const samples = Array.from(nodes).slice(0, limit).map((el) => ({
        tagName: el.tagName,
        id: el.id || null,
        className: className(el),
        textContent: el.textContent ? el.textContent.trim().substring(0, previewChars) : null,
        href: el.href ? String(el.href) : null,
        type: el.type ? String(el.type) : null,
    }));
    return { count: nodes.length, samples };
}
"""


def _sample_from_payload(item: Dict[str, Any]) -> ElementSample:
    return ElementSample(
        tag_name=item["tagName"],
        id=item.get("id"),
        class_name=item.get("className"),
        text_content=item.get("textContent"),
        href=item.get("href"),
        type=item.get("type"),
    )


class PlaywrightDocument:
    """The current document of a live browser page."""

    def __init__(self, page: Page, preview_chars: int = 100) -> None:
        self.page = page
        self.preview_chars = preview_chars

    @property
    def url(self) -> str:
        return self.page.url

    async def outer_html(self) -> str:
        return await self.page.evaluate(_OUTER_HTML_JS)

    async def select(self, selector: str, limit: int = 3) -> SelectorMatch:
        """Run ``selector`` in the page and describe the first ``limit`` matches."""
        result = await self.page.evaluate(_SELECT_JS, [selector, limit, self.preview_chars])
        if "error" in result:
            raise InvalidSelectorError(selector, result["error"])
        return SelectorMatch(
            count=result["count"],
            samples=[_sample_from_payload(item) for item in result["samples"]],
        )


def _element_type(tag: Tag) -> Optional[str]:
    declared = (tag.get("type") or "").strip().lower()
    if tag.name == "input":
        return declared or "text"
    if tag.name == "button":
        return declared or "submit"
    if tag.name == "select":
        return "select-multiple" if tag.has_attr("multiple") else "select-one"
    if tag.name == "textarea":
        return "textarea"
    return declared or None


class SoupDocument:
    """A static HTML document parsed with BeautifulSoup.

    Selector semantics follow soupsieve, which covers the CSS level 4 selectors
    a browser's ``querySelectorAll`` accepts.
    """

    def __init__(self, html: str, url: Optional[str] = None, preview_chars: int = 100) -> None:
        self.html = html
        self.url = url
        self.preview_chars = preview_chars
        self.soup = BeautifulSoup(html, "html.parser")

    @classmethod
    def from_path(cls, path: Path, preview_chars: int = 100) -> "SoupDocument":
        html = path.read_text(encoding="utf-8")
        return cls(html, url=path.resolve().as_uri(), preview_chars=preview_chars)

    async def outer_html(self) -> str:
        root = self.soup.find("html")
        return str(root) if root is not None else str(self.soup)

    def _describe(self, tag: Tag) -> ElementSample:
        text = tag.get_text()
        href: Optional[str] = None
        if tag.name in _HREF_TAGS and tag.get("href"):
            href = urljoin(self.url, tag["href"]) if self.url else tag["href"]
        return ElementSample(
            tag_name=tag.name.upper(),
            id=tag.get("id") or None,
            class_name=" ".join(tag.get("class", [])) or None,
            text_content=text.strip()[: self.preview_chars] if text else None,
            href=href,
            type=_element_type(tag),
        )

    async def select(self, selector: str, limit: int = 3) -> SelectorMatch:
        try:
            nodes: List[Tag] = self.soup.select(selector)
        except (SelectorSyntaxError, NotImplementedError, ValueError) as exc:
            raise InvalidSelectorError(selector, str(exc)) from exc
        return SelectorMatch(
            count=len(nodes),
            samples=[self._describe(node) for node in nodes[:limit]],
        )


DocumentSurface = Union[PlaywrightDocument, SoupDocument]
