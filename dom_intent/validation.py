"""Cross-check model-reported elements against the live DOM."""

from __future__ import annotations

import logging
from typing import List

from .config import HIGH_IMPORTANCE
from .dom import DocumentSurface
from .errors import InvalidSelectorError
from .models import AnalysisResult, ValidatedElement
from .utils import preview

logger = logging.getLogger("dom_intent")

INVALID_SELECTOR = "Invalid selector"


async def validate_elements(
    document: DocumentSurface,
    analysis: AnalysisResult,
    importance: str = HIGH_IMPORTANCE,
    sample_limit: int = 3,
    preview_chars: int = 100,
) -> List[ValidatedElement]:
    """Query each element of the requested importance and record what matched.

    An invalid selector is recorded on its own element and does not stop the
    remaining elements from being checked.
    """
    validated: List[ValidatedElement] = []
    for element in analysis.key_elements:
        if element.importance != importance:
            continue
        try:
            match = await document.select(element.selector, limit=sample_limit)
        except InvalidSelectorError as exc:
            logger.info("✗ %s - セレクタが無効です", element.selector)
            logger.debug("%s", exc)
            validated.append(ValidatedElement.invalid(element, INVALID_SELECTOR))
            continue

        if match.count > 0:
            logger.info("✓ %s - %d個の要素が見つかりました", element.selector, match.count)
            first_text = match.samples[0].text_content if match.samples else None
            if first_text:
                logger.info('  実際のコンテンツ: "%s..."', preview(first_text, preview_chars, ""))
        else:
            logger.info("✗ %s - 要素が見つかりませんでした", element.selector)
        validated.append(ValidatedElement.from_match(element, match))
    return validated
