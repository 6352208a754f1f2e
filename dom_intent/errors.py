"""Exception taxonomy and failure tags for analysis runs."""

from __future__ import annotations

import enum


class FailureKind(str, enum.Enum):
    """Step at which an analysis run was aborted."""

    API_MISSING = "api_missing"
    AVAILABILITY_FAILED = "availability_failed"
    MODEL_UNAVAILABLE = "model_unavailable"
    SESSION_FAILED = "session_failed"
    PROMPT_FAILED = "prompt_failed"
    CONTEXT_OVERFLOW = "context_overflow"
    RESPONSE_INVALID = "response_invalid"
    DOM_FAILED = "dom_failed"


class DomIntentError(Exception):
    """Base class for errors raised by the analyzer components."""


class LanguageModelApiMissingError(DomIntentError):
    """The on-device model runtime is not installed or cannot be imported."""

    remediation = (
        "Install the MLX runtime with `pip install mlx-lm` on a supported platform "
        "(Apple silicon, or Linux with the mlx CPU/CUDA wheels).",
        "Restart the process after installing so the runtime can be detected.",
    )


class AvailabilityCheckError(DomIntentError):
    """The capability query itself failed."""


class SessionCreationError(DomIntentError):
    """Downloading or loading the model failed."""


class PromptError(DomIntentError):
    """The model failed while generating a reply."""


class ContextWindowExceededError(PromptError):
    """The prompt does not fit in the model's context window."""

    def __init__(self, prompt_tokens: int, max_tokens: int) -> None:
        super().__init__(
            f"Prompt is {prompt_tokens} tokens; the context window allows {max_tokens}"
        )
        self.prompt_tokens = prompt_tokens
        self.max_tokens = max_tokens


class ResponseFormatError(DomIntentError):
    """The reply is not JSON or does not match the response schema."""


class InvalidSelectorError(DomIntentError):
    """A selector returned by the model cannot be parsed."""

    def __init__(self, selector: str, reason: str = "") -> None:
        message = f"Invalid selector {selector!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.selector = selector
