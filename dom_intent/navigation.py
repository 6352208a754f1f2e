"""Re-run analysis on document load and on single-page-application navigation.

``history.pushState`` is wrapped once per page by an init script. Each call
dispatches ``dom_intent_analysis_page_change`` on ``window`` and reports the new
URL through an exposed binding, which lands here as a :class:`PageChange`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Set

from playwright.async_api import Page

logger = logging.getLogger("dom_intent")

PAGE_CHANGE_EVENT = "dom_intent_analysis_page_change"
BINDING_NAME = "domIntentPageChanged"

PUSH_STATE_HOOK_JS = f"""
(() => {{
    if (window.__domIntentHistoryHooked) return;
    window.__domIntentHistoryHooked = true;
    const originalPushState = history.pushState;
    history.pushState = function (...args) {{
        const result = originalPushState.apply(this, args);
        window.dispatchEvent(new Event('{PAGE_CHANGE_EVENT}'));
        return result;
    }};
    window.addEventListener('{PAGE_CHANGE_EVENT}', () => {{
        const notify = window['{BINDING_NAME}'];
        if (typeof notify === 'function') notify(location.href);
    }});
}})();
"""

LOAD = "load"
NAVIGATION = "navigation"


@dataclass
class PageChange:
    """A signal that the page content should be analyzed again."""

    reason: str
    url: str


class NavigationHook:
    """Collects load and history-navigation signals from pages into a queue."""

    def __init__(self) -> None:
        self.events: asyncio.Queue[Optional[PageChange]] = asyncio.Queue()
        self._installed: Set[int] = set()

    async def install(self, page: Page) -> None:
        """Register the pushState wrapper and load listener, once per page."""
        if id(page) in self._installed:
            return
        self._installed.add(id(page))
        await page.expose_binding(BINDING_NAME, self._on_push_state)
        await page.add_init_script(PUSH_STATE_HOOK_JS)
        page.on("domcontentloaded", self._on_dom_content_loaded)
        page.on("close", self._on_close)
        logger.debug("Installed navigation hook on %s", page.url)

    def _on_push_state(self, source: Any, url: str) -> None:
        logger.info("Page changed to %s", url)
        self.events.put_nowait(PageChange(reason=NAVIGATION, url=url))

    def _on_dom_content_loaded(self, page: Page) -> None:
        self.events.put_nowait(PageChange(reason=LOAD, url=page.url))

    def _on_close(self, page: Page) -> None:
        self.close()

    def close(self) -> None:
        """Stop consumers waiting in :meth:`next_change`."""
        self.events.put_nowait(None)

    async def next_change(self) -> Optional[PageChange]:
        return await self.events.get()


async def run_on_changes(
    hook: NavigationHook,
    handler: Callable[[PageChange], Any],
    max_runs: Optional[int] = None,
    settle_seconds: float = 0.0,
) -> int:
    """Await ``handler`` for each page change, in order, until the hook closes.

    Returns the number of changes handled.
    """
    handled = 0
    while max_runs is None or handled < max_runs:
        change = await hook.next_change()
        if change is None:
            break
        if settle_seconds:
            await asyncio.sleep(settle_seconds)
        logger.info("Running analysis after %s of %s", change.reason, change.url)
        await handler(change)
        handled += 1
    return handled
