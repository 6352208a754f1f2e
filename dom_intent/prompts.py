"""Prompt template and response schema for intent analysis."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

from jsonschema import Draft202012Validator

from .errors import ResponseFormatError
from .models import AnalysisResult
from .utils import strip_code_fence

IMPORTANCE_LEVELS = ["高", "中", "低"]

ANALYSIS_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "keyElements": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "selector": {"type": "string"},
                    "elementType": {"type": "string"},
                    "purpose": {"type": "string"},
                    "content": {"type": "string"},
                    "importance": {"type": "string", "enum": IMPORTANCE_LEVELS},
                },
                "required": ["selector", "elementType", "purpose", "importance"],
            },
        },
        "pageType": {"type": "string"},
        "primaryIntent": {"type": "string"},
    },
    "required": ["keyElements", "pageType", "primaryIntent"],
}

_VALIDATOR = Draft202012Validator(ANALYSIS_SCHEMA)

PROMPT_TEMPLATE = """以下のHTMLコンテンツを分析し、ユーザーのインテント（意図）を理解するために最も重要なDOM要素をリストアップしてください。

HTMLコンテンツ:
{markup}

分析の観点:
1. ユーザーの行動や目的を示唆する要素
2. ページの主要な機能を表す要素
3. ユーザーとのインタラクションポイント
4. コンテンツの階層構造や情報アーキテクチャを示す要素

以下の要素タイプに特に注目してください:
- ナビゲーション要素（nav, menu, breadcrumb）
- 見出し要素（h1-h6）
- フォーム要素（form, input, button, select）
- インタラクティブ要素（button, a, details）
- セマンティック要素（main, article, section, aside）
- メタ情報（title, meta description）
- データ属性やaria-label

出力形式（JSON）:
{{
  "keyElements": [
    {{
      "selector": "CSSセレクタまたは要素の識別子",
      "elementType": "要素のタイプ（例: navigation, form, heading）",
      "purpose": "この要素がインテント理解にどう役立つか",
      "content": "要素の主要なテキストコンテンツ（あれば）",
      "importance": "高/中/低"
    }}
  ],
  "pageType": "ページの種類（例: ランディングページ、検索結果、記事、フォーム）",
  "primaryIntent": "このページで想定される主なユーザーインテント"
}}"""

RESPONSE_CONSTRAINT_TEMPLATE = (
    "Respond with a single JSON object and nothing else. Do not wrap it in code fences. "
    "The object must validate against this JSON Schema:\n{schema}"
)


@dataclass
class PromptRequest:
    """Chat messages plus the schema the reply has to satisfy."""

    messages: List[Dict[str, str]]
    response_schema: Dict[str, Any] = field(default_factory=lambda: ANALYSIS_SCHEMA)


def build_prompt_text(markup: str) -> str:
    return PROMPT_TEMPLATE.format(markup=markup)


def build_prompt_request(markup: str) -> PromptRequest:
    """Wrap sanitized markup into the single user message sent to the model."""
    return PromptRequest(
        messages=[{"role": "user", "content": build_prompt_text(markup)}],
        response_schema=ANALYSIS_SCHEMA,
    )


def _path_to_str(path: Iterable[Any]) -> str:
    parts = ["$"]
    for part in path:
        if isinstance(part, int):
            parts.append(f"[{part}]")
        else:
            parts.append(f".{part}")
    return "".join(parts)


def render_response_constraint(schema: Dict[str, Any]) -> str:
    """Render the system instruction that stands in for constrained decoding."""
    return RESPONSE_CONSTRAINT_TEMPLATE.format(
        schema=json.dumps(schema, ensure_ascii=False, indent=2)
    )


def parse_analysis_response(text: str) -> AnalysisResult:
    """Parse the model reply and check it against ``ANALYSIS_SCHEMA``."""
    try:
        payload = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as exc:
        raise ResponseFormatError(f"Reply is not valid JSON: {exc}") from exc

    errors = sorted(
        _VALIDATOR.iter_errors(payload),
        key=lambda err: (_path_to_str(err.absolute_path), err.message),
    )
    if errors:
        issues = "; ".join(f"{_path_to_str(err.absolute_path)}: {err.message}" for err in errors)
        raise ResponseFormatError(f"Reply does not match the response schema: {issues}")
    return AnalysisResult.from_dict(payload)
