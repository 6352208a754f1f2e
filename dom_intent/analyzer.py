"""Linear intent analysis run: capability check, prompt, validation, report."""

from __future__ import annotations

import enum
import logging
from typing import Optional

from playwright.async_api import Error as PlaywrightError

from .config import AnalyzerConfig
from .dom import DocumentSurface
from .errors import (
    AvailabilityCheckError,
    ContextWindowExceededError,
    FailureKind,
    LanguageModelApiMissingError,
    PromptError,
    ResponseFormatError,
    SessionCreationError,
)
from .language_model import Availability, DownloadProgress, LanguageModel, LanguageModelSession
from .models import AnalysisFailure, AnalysisReport
from .prompts import build_prompt_request, parse_analysis_response
from .report import Outcome, log_analysis, log_validated_elements
from .sanitize import simplify_markup
from .validation import validate_elements

logger = logging.getLogger("dom_intent")

UNAVAILABLE_HINT = (
    "Check that the device meets the runtime requirements and that the model "
    "repository can be reached, or point MODEL_DIR at a local copy."
)
CONTEXT_OVERFLOW_HINT = (
    "The context window limit was exceeded; the page is probably too large. "
    "Lower --max-html-chars or raise --max-context-tokens."
)


class RunState(str, enum.Enum):
    IDLE = "idle"
    CHECKING_AVAILABILITY = "checking_availability"
    UNAVAILABLE = "unavailable"
    PROVISIONING_SESSION = "provisioning_session"
    SESSION_READY = "session_ready"
    SANITIZING = "sanitizing"
    PROMPTING = "prompting"
    PARSING = "parsing"
    VALIDATING = "validating"
    REPORTING = "reporting"


def log_download_progress(progress: DownloadProgress) -> None:
    logger.info("Downloaded %.1f%%", progress.loaded * 100)


class PageIntentAnalyzer:
    """Ask the on-device model which elements reveal a page's intent and verify them.

    ``analyze`` never raises for the expected failure modes. It returns either an
    :class:`AnalysisReport` or an :class:`AnalysisFailure` naming the step that
    failed, and always destroys the model session it created.
    """

    def __init__(
        self,
        config: Optional[AnalyzerConfig] = None,
        language_model: Optional[LanguageModel] = None,
    ) -> None:
        self.config = config or AnalyzerConfig()
        self.language_model = language_model or LanguageModel(
            self.config.model_id,
            max_tokens=self.config.max_tokens,
            max_context_tokens=self.config.max_context_tokens,
            temperature=self.config.temperature,
        )
        self.state = RunState.IDLE

    def _transition(self, state: RunState) -> None:
        if state is not self.state:
            logger.debug("Analyzer state %s -> %s", self.state.value, state.value)
            self.state = state

    def _fail(
        self,
        kind: FailureKind,
        message: str,
        url: Optional[str],
        hint: Optional[str] = None,
    ) -> AnalysisFailure:
        logger.error("%s", message)
        if hint:
            logger.info("%s", hint)
        self._transition(RunState.IDLE)
        return AnalysisFailure(kind=kind, message=message, hint=hint, url=url)

    async def _provision(self, available: Availability) -> LanguageModelSession:
        if available is Availability.DOWNLOADABLE:
            logger.info("Downloading model %s...", self.language_model.model_id)
            session = await self.language_model.create(monitor=log_download_progress)
            logger.info("Download complete. Language model session created.")
            return session
        session = await self.language_model.create()
        logger.info("Language model session created.")
        return session

    async def analyze(self, document: DocumentSurface) -> Outcome:
        """Run one full analysis of ``document``."""
        url = getattr(document, "url", None)
        self._transition(RunState.CHECKING_AVAILABILITY)
        try:
            available = await self.language_model.availability()
        except LanguageModelApiMissingError as exc:
            return self._fail(
                FailureKind.API_MISSING,
                f"Language model API is not available: {exc}",
                url,
                hint=" ".join(exc.remediation),
            )
        except AvailabilityCheckError as exc:
            return self._fail(
                FailureKind.AVAILABILITY_FAILED, f"Language model API error: {exc}", url
            )

        if available is Availability.UNAVAILABLE:
            self._transition(RunState.UNAVAILABLE)
            return self._fail(
                FailureKind.MODEL_UNAVAILABLE,
                f"Model {self.language_model.model_id} is not available on this device.",
                url,
                hint=UNAVAILABLE_HINT,
            )

        self._transition(RunState.PROVISIONING_SESSION)
        session: Optional[LanguageModelSession] = None
        try:
            try:
                session = await self._provision(available)
            except (SessionCreationError, LanguageModelApiMissingError) as exc:
                return self._fail(
                    FailureKind.SESSION_FAILED, f"Session creation failed: {exc}", url
                )
            self._transition(RunState.SESSION_READY)
            return await self._run(session, document, url)
        finally:
            if session is not None:
                session.destroy()
            self._transition(RunState.IDLE)

    async def _run(
        self,
        session: LanguageModelSession,
        document: DocumentSurface,
        url: Optional[str],
    ) -> Outcome:
        self._transition(RunState.SANITIZING)
        logger.info("Reading page DOM structure...")
        try:
            html = await document.outer_html()
        except PlaywrightError as exc:
            return self._fail(FailureKind.DOM_FAILED, f"Could not read the page DOM: {exc}", url)
        markup = simplify_markup(html, self.config.max_html_chars)
        logger.debug("Sanitized markup is %d characters", len(markup))

        self._transition(RunState.PROMPTING)
        logger.info("Analyzing DOM elements...")
        request = build_prompt_request(markup)
        try:
            reply = await session.prompt(
                request.messages, response_constraint=request.response_schema
            )
        except ContextWindowExceededError as exc:
            return self._fail(
                FailureKind.CONTEXT_OVERFLOW,
                f"DOM analysis failed: {exc}",
                url,
                hint=CONTEXT_OVERFLOW_HINT,
            )
        except PromptError as exc:
            return self._fail(FailureKind.PROMPT_FAILED, f"DOM analysis failed: {exc}", url)

        self._transition(RunState.PARSING)
        try:
            analysis = parse_analysis_response(reply)
        except ResponseFormatError as exc:
            return self._fail(FailureKind.RESPONSE_INVALID, f"DOM analysis failed: {exc}", url)
        log_analysis(analysis, self.config.preview_chars)

        self._transition(RunState.VALIDATING)
        logger.info("=== 重要度「%s」の要素を実際に確認 ===", self.config.target_importance)
        try:
            validated = await validate_elements(
                document,
                analysis,
                importance=self.config.target_importance,
                sample_limit=self.config.sample_limit,
                preview_chars=self.config.preview_chars,
            )
        except PlaywrightError as exc:
            return self._fail(
                FailureKind.DOM_FAILED, f"Could not query the page DOM: {exc}", url
            )

        self._transition(RunState.REPORTING)
        log_validated_elements(validated)
        return AnalysisReport(analysis=analysis, validated_elements=validated, url=url)
