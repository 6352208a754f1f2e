"""Human-readable and JSON reporting of analysis runs."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, List, Union

from .models import AnalysisFailure, AnalysisReport, AnalysisResult, ValidatedElement
from .utils import preview

logger = logging.getLogger("dom_intent")

Outcome = Union[AnalysisReport, AnalysisFailure]


def dumps(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2)


def log_analysis(analysis: AnalysisResult, preview_chars: int = 100) -> None:
    """Log the page summary and every key element the model reported."""
    logger.info("=== DOM分析結果 ===")
    logger.info("ページタイプ: %s", analysis.page_type)
    logger.info("主要なインテント: %s", analysis.primary_intent)
    logger.info("=== インテント理解に重要な要素 ===")
    for index, element in enumerate(analysis.key_elements, start=1):
        logger.info("要素 %d:", index)
        logger.info("  セレクタ: %s", element.selector)
        logger.info("  タイプ: %s", element.element_type)
        logger.info("  目的: %s", element.purpose)
        if element.content:
            logger.info("  コンテンツ: %s", preview(element.content, preview_chars))
        logger.info("  重要度: %s", element.importance)


def validated_elements_json(elements: Iterable[ValidatedElement]) -> str:
    return dumps([element.to_dict() for element in elements])


def log_validated_elements(elements: List[ValidatedElement]) -> None:
    logger.info("=== 選定されたDOM要素（JSON形式） ===")
    logger.info("%s", validated_elements_json(elements))


def outcomes_json(outcomes: Iterable[Outcome]) -> str:
    return dumps([outcome.to_dict() for outcome in outcomes])


def write_outcomes(outcomes: List[Outcome], path: Path) -> Path:
    """Persist run outcomes as a JSON array for programmatic consumers."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(outcomes_json(outcomes) + "\n", encoding="utf-8")
    logger.info("Saved report to %s", path)
    return path
