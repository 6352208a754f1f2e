"""High-level orchestration for rendering pages and analyzing their intent."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from playwright.async_api import (
    Browser,
    Error as PlaywrightError,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from .analyzer import PageIntentAnalyzer
from .config import AnalyzerConfig
from .dom import PlaywrightDocument, SoupDocument
from .navigation import NavigationHook, PageChange, run_on_changes
from .report import Outcome

logger = logging.getLogger("dom_intent")


async def analyze_url(
    browser: Browser,
    url: str,
    config: AnalyzerConfig,
    analyzer: PageIntentAnalyzer,
) -> Optional[Outcome]:
    """Load ``url`` in a fresh page and analyze it once the network is idle."""
    page = await browser.new_page()
    page.set_default_navigation_timeout(config.navigation_timeout * 1000)
    try:
        logger.info("Loading %s", url)
        await page.goto(url, wait_until="networkidle")
        if config.wait_after_load:
            await page.wait_for_timeout(int(config.wait_after_load * 1000))
        return await analyzer.analyze(PlaywrightDocument(page, config.preview_chars))
    except PlaywrightTimeoutError as exc:
        logger.error("Timeout while loading %s: %s", url, exc)
        return None
    except PlaywrightError as exc:
        logger.error("Could not load %s: %s", url, exc)
        return None
    finally:
        await page.close()


async def run_analyzer(
    urls: List[str],
    config: AnalyzerConfig,
    analyzer: PageIntentAnalyzer,
) -> List[Outcome]:
    """Analyze each URL sequentially in a shared browser."""
    outcomes: List[Outcome] = []
    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(headless=config.headless)
        try:
            for url in urls:
                outcome = await analyze_url(browser, url, config, analyzer)
                if outcome is not None:
                    outcomes.append(outcome)
        finally:
            await browser.close()
    return outcomes


async def watch_url(
    url: str,
    config: AnalyzerConfig,
    analyzer: PageIntentAnalyzer,
    max_runs: Optional[int] = None,
) -> List[Outcome]:
    """Keep ``url`` open and re-analyze it on every load and pushState navigation.

    Runs until the page is closed or ``max_runs`` analyses have completed.
    """
    outcomes: List[Outcome] = []
    hook = NavigationHook()
    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(headless=config.headless)
        try:
            page = await browser.new_page()
            page.set_default_navigation_timeout(config.navigation_timeout * 1000)
            await hook.install(page)
            document = PlaywrightDocument(page, config.preview_chars)

            async def _handle(change: PageChange) -> None:
                outcomes.append(await analyzer.analyze(document))

            logger.info("Watching %s for page changes", url)
            try:
                await page.goto(url, wait_until="domcontentloaded")
            except PlaywrightTimeoutError as exc:
                logger.error("Timeout while loading %s: %s", url, exc)
                return outcomes
            except PlaywrightError as exc:
                logger.error("Could not load %s: %s", url, exc)
                return outcomes
            await run_on_changes(
                hook,
                _handle,
                max_runs=max_runs,
                settle_seconds=config.wait_after_load,
            )
        finally:
            await browser.close()
    return outcomes


async def analyze_file(
    path: Path,
    config: AnalyzerConfig,
    analyzer: PageIntentAnalyzer,
) -> Outcome:
    """Analyze a saved HTML file without starting a browser."""
    logger.info("Loading %s", path)
    document = SoupDocument.from_path(path, preview_chars=config.preview_chars)
    return await analyzer.analyze(document)
