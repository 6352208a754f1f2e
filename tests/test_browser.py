import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError, async_playwright

from dom_intent.dom import PlaywrightDocument
from dom_intent.errors import InvalidSelectorError
from dom_intent.navigation import LOAD, NAVIGATION, NavigationHook

pytestmark = pytest.mark.browser

APP_URL = "https://app.example/"
PAGE = "<html><body><h1 id='t' class='a b'>Title</h1></body></html>"


async def _with_page(scenario):
    async with async_playwright() as playwright:
        try:
            browser = await playwright.chromium.launch(headless=True)
        except PlaywrightError as exc:
            pytest.skip(f"Chromium is not available: {exc}")
        try:
            page = await browser.new_page()

            async def _serve(route):
                await route.fulfill(status=200, content_type="text/html", body=PAGE)

            await page.route("https://app.example/**", _serve)
            return await scenario(page)
        finally:
            await browser.close()


def test_select_describes_live_elements() -> None:
    async def _scenario(page):
        await page.set_content(PAGE)
        document = PlaywrightDocument(page)
        match = await document.select("h1")
        with pytest.raises(InvalidSelectorError):
            await document.select("div[")
        return match

    match = asyncio.run(_with_page(_scenario))

    assert match.count == 1
    (sample,) = match.samples
    assert sample.tag_name == "H1"
    assert sample.id == "t"
    assert sample.class_name == "a b"
    assert sample.text_content == "Title"


def test_push_state_is_reported_through_the_hook() -> None:
    async def _scenario(page):
        hook = NavigationHook()
        await hook.install(page)
        await page.goto(APP_URL, wait_until="domcontentloaded")
        loaded = await asyncio.wait_for(hook.next_change(), timeout=10)
        await page.evaluate("() => history.pushState({}, '', '/next')")
        navigated = await asyncio.wait_for(hook.next_change(), timeout=10)
        return loaded, navigated

    loaded, navigated = asyncio.run(_with_page(_scenario))

    assert loaded.reason == LOAD
    assert loaded.url == APP_URL
    assert navigated.reason == NAVIGATION
    assert navigated.url == "https://app.example/next"
