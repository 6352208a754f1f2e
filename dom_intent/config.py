"""Configuration objects and constants for the analyzer."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_MODEL_ID = "mlx-community/Qwen2.5-3B-Instruct-4bit"
HIGH_IMPORTANCE = "高"


@dataclass
class AnalyzerConfig:
    """Top-level settings that control rendering, prompting and validation."""

    model_id: str = DEFAULT_MODEL_ID
    max_tokens: int = 1024
    max_html_chars: int = 10_000
    max_context_tokens: int = 32_768
    temperature: float = 0.0
    wait_after_load: float = 1.0
    navigation_timeout: float = 30.0
    headless: bool = True
    sample_limit: int = 3
    preview_chars: int = 100
    target_importance: str = HIGH_IMPORTANCE
