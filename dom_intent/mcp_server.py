"""MCP server exposing the DOM intent analyzer as tools."""

from __future__ import annotations

import logging

from mcp.server.fastmcp import FastMCP

from .analyzer import PageIntentAnalyzer
from .config import AnalyzerConfig
from .crawler import run_analyzer
from .language_model import LanguageModel
from .report import dumps

logger = logging.getLogger("dom_intent.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="dom-intent")


@mcp.tool()
async def analyze_page(url: str) -> str:
    """Render a web page and return the validated intent analysis as JSON."""

    config = AnalyzerConfig()
    analyzer = PageIntentAnalyzer(config)
    outcomes = await run_analyzer([url], config, analyzer)
    if not outcomes:
        raise RuntimeError(f"Failed to load {url}")
    outcome = outcomes[0]
    if not outcome.ok:
        raise RuntimeError(f"Analysis of {url} failed: {outcome.message}")
    return dumps(outcome.to_dict())


@mcp.tool()
async def model_availability() -> str:
    """Report whether the default on-device model is available, downloadable or unavailable."""

    config = AnalyzerConfig()
    status = await LanguageModel(config.model_id).availability()
    return status.value


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
