"""Command-line entry point for the DOM intent analyzer."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path
from typing import Iterable, List, Sequence

from .analyzer import PageIntentAnalyzer
from .config import AnalyzerConfig, DEFAULT_MODEL_ID
from .crawler import analyze_file, run_analyzer, watch_url
from .errors import AvailabilityCheckError, LanguageModelApiMissingError
from .language_model import LanguageModel
from .report import Outcome, write_outcomes

logger = logging.getLogger("dom_intent.cli")


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return argv
    first = argv[0]
    if first in commands or first.startswith("-"):
        return argv
    return ("analyze", *argv)


def _add_model_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--model",
        default=DEFAULT_MODEL_ID,
        help="MLX model identifier or local path to use",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def _add_analyze_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("urls", nargs="*", help="One or more URLs to analyze")
    parser.add_argument(
        "--html",
        type=Path,
        action="append",
        default=[],
        help="Analyze a saved HTML file instead of rendering a URL (repeatable)",
    )
    parser.add_argument(
        "--watch",
        action="store_true",
        help="Keep the page open and re-analyze on load and pushState navigation",
    )
    parser.add_argument(
        "--max-runs",
        type=int,
        default=None,
        help="Stop watching after this many analyses",
    )
    parser.add_argument(
        "--json-output",
        type=Path,
        default=None,
        help="Write all run outcomes to this JSON file",
    )
    parser.add_argument(
        "--wait",
        type=float,
        default=1.0,
        help="Seconds to wait after load before reading the DOM",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Navigation timeout in seconds",
    )
    parser.add_argument(
        "--headful",
        action="store_true",
        help="Show the browser window",
    )
    parser.add_argument(
        "--max-tokens",
        type=int,
        default=1024,
        help="Maximum number of tokens to generate for the analysis",
    )
    parser.add_argument(
        "--max-html-chars",
        type=int,
        default=10_000,
        help="Trim sanitized markup to this many characters before prompting",
    )
    parser.add_argument(
        "--max-context-tokens",
        type=int,
        default=32_768,
        help="Context window of the model; longer prompts are rejected",
    )
    parser.add_argument(
        "--temperature",
        type=float,
        default=0.0,
        help="Sampling temperature",
    )
    _add_model_arguments(parser)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Identify the DOM elements that reveal a page's user intent with an "
            "on-device MLX model, and verify them against the live page."
        ),
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser(
        "analyze", help="Render pages with Playwright and analyze their intent"
    )
    _add_analyze_arguments(analyze_parser)

    availability_parser = subparsers.add_parser(
        "availability", help="Report whether the model can be used on this device"
    )
    _add_model_arguments(availability_parser)

    argv = list(sys.argv[1:] if argv is None else argv)
    argv = list(_ensure_command_prefix(argv, subparsers.choices.keys()))
    args = parser.parse_args(argv)
    if args.command == "analyze":
        if not args.urls and not args.html:
            analyze_parser.error("provide at least one URL or --html file")
        if args.watch and (len(args.urls) != 1 or args.html):
            analyze_parser.error("--watch takes exactly one URL")
    return args


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def build_config(args: argparse.Namespace) -> AnalyzerConfig:
    return AnalyzerConfig(
        model_id=args.model,
        max_tokens=args.max_tokens,
        max_html_chars=args.max_html_chars,
        max_context_tokens=args.max_context_tokens,
        temperature=args.temperature,
        wait_after_load=args.wait,
        navigation_timeout=args.timeout,
        headless=not args.headful,
    )


async def _analyze(args: argparse.Namespace, config: AnalyzerConfig) -> List[Outcome]:
    analyzer = PageIntentAnalyzer(config)
    outcomes: List[Outcome] = []
    for path in args.html:
        outcomes.append(await analyze_file(path, config, analyzer))
    if args.watch:
        outcomes.extend(await watch_url(args.urls[0], config, analyzer, args.max_runs))
    elif args.urls:
        outcomes.extend(await run_analyzer(args.urls, config, analyzer))
    return outcomes


def _run_analyze(args: argparse.Namespace) -> int:
    _configure_logging(args.verbose)
    config = build_config(args)

    overall_start = time.perf_counter()
    outcomes = asyncio.run(_analyze(args, config))
    total_elapsed = time.perf_counter() - overall_start

    successes = sum(1 for outcome in outcomes if outcome.ok)
    attempted = len(outcomes) if args.watch else len(args.urls) + len(args.html)
    failures = attempted - successes
    logger.info(
        "Finished in %.2fs (%d/%d succeeded, %d failed)",
        total_elapsed,
        successes,
        attempted,
        failures,
    )

    if args.json_output:
        write_outcomes(outcomes, args.json_output)
    return 1 if failures else 0


def _run_availability(args: argparse.Namespace) -> int:
    _configure_logging(args.verbose)
    language_model = LanguageModel(args.model)
    try:
        status = asyncio.run(language_model.availability())
    except LanguageModelApiMissingError as exc:
        logger.error("Language model API is not available: %s", exc)
        for line in exc.remediation:
            logger.info("%s", line)
        return 2
    except AvailabilityCheckError as exc:
        logger.error("Language model API error: %s", exc)
        return 2
    sys.stdout.write(f"{status.value}\n")
    sys.stdout.flush()
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    if args.command == "analyze":
        code = _run_analyze(args)
    else:
        code = _run_availability(args)
    sys.exit(code)


if __name__ == "__main__":
    main()
