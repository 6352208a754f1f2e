"""On-device language model capability backed by MLX.

The capability mirrors a browser-style prompt API: query ``availability()``,
``create()`` a session (downloading the weights first when they are not
cached), ``prompt()`` it once with a response schema and ``destroy()`` it.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Any, Callable, Dict, List, Optional, Sequence

from huggingface_hub import HfApi, snapshot_download
from tqdm.auto import tqdm

from .config import DEFAULT_MODEL_ID
from .errors import (
    AvailabilityCheckError,
    ContextWindowExceededError,
    LanguageModelApiMissingError,
    PromptError,
    SessionCreationError,
)
from .prompts import render_response_constraint

logger = logging.getLogger("dom_intent")

ALLOW_PATTERNS = [
    "*.json",
    "model*.safetensors",
    "*.py",
    "tokenizer.model",
    "*.tiktoken",
    "tiktoken.model",
    "*.txt",
    "*.jsonl",
    "*.jinja",
]


class Availability(str, enum.Enum):
    UNAVAILABLE = "unavailable"
    DOWNLOADABLE = "downloadable"
    AVAILABLE = "available"


@dataclass
class DownloadProgress:
    """Fraction of the model snapshot fetched so far, between 0 and 1."""

    loaded: float


ProgressMonitor = Callable[[DownloadProgress], None]


def import_runtime() -> ModuleType:
    """Import ``mlx_lm`` or explain why the capability is missing."""
    try:
        import mlx_lm
        import mlx_lm.sample_utils
    except ImportError as exc:
        raise LanguageModelApiMissingError(f"mlx_lm could not be imported: {exc}") from exc
    return mlx_lm


def progress_bar_class(monitor: ProgressMonitor) -> type:
    """Build a silent tqdm class that forwards download progress to ``monitor``."""

    class _MonitoredProgress(tqdm):  # type: ignore[misc]
        def __init__(self, *args: Any, **kwargs: Any) -> None:
            # huggingface_hub passes a logger ``name`` that plain tqdm rejects.
            kwargs.pop("name", None)
            kwargs["disable"] = True
            super().__init__(*args, **kwargs)
            self._loaded = 0

        def _advance(self, amount: float) -> None:
            self._loaded += amount
            if self.total:
                monitor(DownloadProgress(loaded=min(self._loaded / self.total, 1.0)))

        def __iter__(self):
            for item in self.iterable:
                yield item
                self._advance(1)

        def update(self, n: float = 1) -> Optional[bool]:
            self._advance(n)
            return None

    return _MonitoredProgress


class LanguageModelSession:
    """A loaded model and tokenizer that answers a single prompt at a time."""

    def __init__(
        self,
        model: Any,
        tokenizer: Any,
        runtime: ModuleType,
        *,
        max_tokens: int,
        max_context_tokens: int,
        temperature: float = 0.0,
    ) -> None:
        self._model = model
        self._tokenizer = tokenizer
        self._runtime = runtime
        self.max_tokens = max_tokens
        self.max_context_tokens = max_context_tokens
        self.temperature = temperature
        self._destroyed = False

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def _build_prompt(
        self,
        messages: Sequence[Dict[str, str]],
        response_constraint: Optional[Dict[str, Any]],
    ) -> List[int]:
        chat: List[Dict[str, str]] = []
        if response_constraint is not None:
            chat.append(
                {"role": "system", "content": render_response_constraint(response_constraint)}
            )
        chat.extend(messages)
        return self._tokenizer.apply_chat_template(
            chat, tokenize=True, add_generation_prompt=True
        )

    def _generate(
        self,
        messages: Sequence[Dict[str, str]],
        response_constraint: Optional[Dict[str, Any]],
    ) -> str:
        try:
            prompt = self._build_prompt(messages, response_constraint)
        except Exception as exc:  # noqa: BLE001 - chat templates reject unsupported roles
            raise PromptError(f"Could not build prompt: {exc}") from exc
        logger.debug("Prompt token length: %d", len(prompt))
        if len(prompt) + self.max_tokens > self.max_context_tokens:
            raise ContextWindowExceededError(len(prompt) + self.max_tokens, self.max_context_tokens)

        start = time.perf_counter()
        try:
            text = self._runtime.generate(
                self._model,
                self._tokenizer,
                prompt=prompt,
                max_tokens=self.max_tokens,
                sampler=self._runtime.sample_utils.make_sampler(temp=self.temperature),
                verbose=False,
            )
        except Exception as exc:  # noqa: BLE001 - surface runtime failures uniformly
            raise PromptError(f"Generation failed: {exc}") from exc
        logger.debug("Generated reply in %.2fs", time.perf_counter() - start)
        return text.strip()

    async def prompt(
        self,
        messages: Sequence[Dict[str, str]],
        response_constraint: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Submit one request and return the raw reply text."""
        if self._destroyed:
            raise PromptError("Session has already been destroyed")
        return await asyncio.to_thread(self._generate, messages, response_constraint)

    def destroy(self) -> None:
        """Release the model weights held by this session."""
        self._model = None
        self._tokenizer = None
        self._destroyed = True


class LanguageModel:
    """Capability entry point: availability checks and session creation."""

    def __init__(
        self,
        model_id: str = DEFAULT_MODEL_ID,
        *,
        max_tokens: int = 1024,
        max_context_tokens: int = 32_768,
        temperature: float = 0.0,
    ) -> None:
        self.model_id = model_id
        self.max_tokens = max_tokens
        self.max_context_tokens = max_context_tokens
        self.temperature = temperature

    def _resolve_env_override(self) -> Optional[Path]:
        override = os.getenv("MODEL_DIR")
        if not override:
            return None
        override_path = Path(override).expanduser()
        if override_path.exists():
            logger.debug("MODEL_DIR override detected at %s", override_path)
            return override_path
        logger.warning(
            "MODEL_DIR is set to %s but the path does not exist; falling back to %s",
            override_path,
            self.model_id,
        )
        return None

    def _resolve_local_path(self) -> Optional[Path]:
        env_override = self._resolve_env_override()
        if env_override:
            return env_override
        candidate = Path(self.model_id).expanduser()
        if candidate.exists():
            logger.debug(
                "Model identifier %s resolves to local path %s", self.model_id, candidate
            )
            return candidate
        return None

    def _cached_snapshot(self) -> Optional[Path]:
        try:
            return Path(
                snapshot_download(
                    self.model_id, local_files_only=True, allow_patterns=ALLOW_PATTERNS
                )
            )
        except Exception as err:  # noqa: BLE001 - any cache miss means "not local"
            logger.debug("Local cache for %s was not found (%s)", self.model_id, err)
            return None

    def _check_availability(self) -> Availability:
        import_runtime()
        if self._resolve_local_path() or self._cached_snapshot():
            return Availability.AVAILABLE
        try:
            HfApi().model_info(self.model_id)
        except Exception as err:  # noqa: BLE001 - offline or unknown repo
            logger.debug("Model %s cannot be fetched: %s", self.model_id, err)
            return Availability.UNAVAILABLE
        return Availability.DOWNLOADABLE

    async def availability(self) -> Availability:
        """Report whether the model can be used now, after a download, or not at all."""
        try:
            return await asyncio.to_thread(self._check_availability)
        except LanguageModelApiMissingError:
            raise
        except Exception as exc:  # noqa: BLE001 - wrap unexpected capability errors
            raise AvailabilityCheckError(str(exc)) from exc

    def _determine_load_target(self, monitor: Optional[ProgressMonitor]) -> Path:
        local = self._resolve_local_path() or self._cached_snapshot()
        if local:
            return local
        logger.info("Downloading model snapshot %s", self.model_id)
        kwargs: Dict[str, Any] = {"allow_patterns": ALLOW_PATTERNS}
        if monitor is not None:
            kwargs["tqdm_class"] = progress_bar_class(monitor)
        local_path = Path(snapshot_download(self.model_id, **kwargs))
        logger.debug("Downloaded model %s to %s", self.model_id, local_path)
        return local_path

    def _load(self, monitor: Optional[ProgressMonitor]) -> LanguageModelSession:
        runtime = import_runtime()
        try:
            load_target = self._determine_load_target(monitor)
            logger.info("Loading model %s (resolved from %s)", load_target, self.model_id)
            start = time.perf_counter()
            model, tokenizer = runtime.load(str(load_target))
        except Exception as exc:  # noqa: BLE001 - any load failure aborts the run
            raise SessionCreationError(f"Could not load {self.model_id}: {exc}") from exc
        logger.debug("Loaded model in %.2fs", time.perf_counter() - start)
        return LanguageModelSession(
            model,
            tokenizer,
            runtime,
            max_tokens=self.max_tokens,
            max_context_tokens=self.max_context_tokens,
            temperature=self.temperature,
        )

    async def create(self, monitor: Optional[ProgressMonitor] = None) -> LanguageModelSession:
        """Provision a session, reporting download progress to ``monitor``."""
        return await asyncio.to_thread(self._load, monitor)
