import asyncio
from typing import Dict, List

from dom_intent.navigation import (
    BINDING_NAME,
    LOAD,
    NAVIGATION,
    PAGE_CHANGE_EVENT,
    NavigationHook,
    PageChange,
    run_on_changes,
)


class FakePage:
    def __init__(self, url: str = "https://app.example/") -> None:
        self.url = url
        self.bindings: Dict[str, object] = {}
        self.init_scripts: List[str] = []
        self.handlers: Dict[str, list] = {}

    async def expose_binding(self, name, callback) -> None:
        self.bindings[name] = callback

    async def add_init_script(self, script) -> None:
        self.init_scripts.append(script)

    def on(self, event, handler) -> None:
        self.handlers.setdefault(event, []).append(handler)

    def emit(self, event: str) -> None:
        for handler in self.handlers.get(event, []):
            handler(self)

    def push_state(self, url: str) -> None:
        self.url = url
        self.bindings[BINDING_NAME]({"page": self}, url)


def test_install_registers_wrapper_once() -> None:
    page = FakePage()

    async def _main() -> None:
        hook = NavigationHook()
        await hook.install(page)
        await hook.install(page)

    asyncio.run(_main())
    assert len(page.init_scripts) == 1
    script = page.init_scripts[0]
    assert "history.pushState" in script
    assert PAGE_CHANGE_EVENT in script
    assert BINDING_NAME in script
    assert set(page.bindings) == {BINDING_NAME}
    assert len(page.handlers["domcontentloaded"]) == 1


def test_load_and_push_state_trigger_runs_in_order() -> None:
    page = FakePage()
    seen: List[PageChange] = []

    async def _handler(change: PageChange) -> None:
        seen.append(change)

    async def _main() -> int:
        hook = NavigationHook()
        await hook.install(page)
        page.emit("domcontentloaded")
        page.push_state("https://app.example/cart")
        page.push_state("https://app.example/checkout")
        page.emit("close")
        return await run_on_changes(hook, _handler)

    handled = asyncio.run(_main())
    assert handled == 3
    assert [change.reason for change in seen] == [LOAD, NAVIGATION, NAVIGATION]
    assert [change.url for change in seen] == [
        "https://app.example/",
        "https://app.example/cart",
        "https://app.example/checkout",
    ]


def test_run_on_changes_stops_after_max_runs() -> None:
    page = FakePage()
    seen: List[str] = []

    async def _handler(change: PageChange) -> None:
        seen.append(change.url)

    async def _main() -> int:
        hook = NavigationHook()
        await hook.install(page)
        page.emit("domcontentloaded")
        page.push_state("https://app.example/next")
        return await run_on_changes(hook, _handler, max_runs=1)

    assert asyncio.run(_main()) == 1
    assert seen == ["https://app.example/"]
