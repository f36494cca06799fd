"""
NoteMark Backend - Gemini Grammar Correction Service
======================================================

What:  Remote grammar engine: asks Google Gemini to correct Markdown and
       returns the corrected text plus a structured list of issues.
How:   Builds one fixed instructional prompt around the note content, sends it
       through an injected `google.genai` client, cuts the JSON object out of
       the free-form reply and validates it against the expected schema.
Who:   Constructed once by the application factory; used by NoteService.

Resilience Strategy:
    1. Per-attempt timeout (settings.gemini_timeout) via asyncio.wait_for;
       cancelling the inbound request cancels the call
    2. Tenacity retry with exponential backoff + jitter, only for transient
       failures (connection errors, timeouts, HTTP 5xx and 429)
    3. Circuit breaker that fails fast after repeated failed calls
    4. Malformed replies are never retried and do not trip the breaker

Reply Handling:
    The model is told to answer with the JSON object only, but replies can
    still carry leading prose or code fences. The substring from the first
    `{` to the last `}` is parsed; anything else is RemoteResponseMalformedError.
"""

import asyncio
import logging
import time
import uuid
from typing import List, Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types
from pydantic import ValidationError as PydanticValidationError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from app.config import settings
from app.exceptions import (
    CircuitBreakerOpenError,
    RemoteResponseMalformedError,
    RemoteServiceUnavailableError,
)
from app.schemas.grammar import GrammarCorrection, GrammarIssue, RemoteCorrectionPayload
from app.services.grammar_base import GrammarEngine, line_and_column

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Fails fast when the remote service keeps failing.

    State Machine:
        CLOSED    → failure_count reaches threshold → OPEN
        OPEN      → rejects calls with CircuitBreakerOpenError until
                    recovery_timeout seconds have passed → HALF_OPEN
        HALF_OPEN → one trial call; success → CLOSED, failure → OPEN

    Not thread-safe: it relies on a single-process asyncio server.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Returns True if a call may proceed.

        Raises:
            CircuitBreakerOpenError while OPEN and the recovery timeout has
            not elapsed.
        """
        if self.state != self.OPEN:
            return True

        elapsed = time.time() - (self.last_failure_time or 0)
        if elapsed >= self.recovery_timeout:
            logger.info("Circuit breaker transitioning to HALF_OPEN after %.1fs", elapsed)
            self.state = self.HALF_OPEN
            return True

        raise CircuitBreakerOpenError(recovery_time=max(1, int(self.recovery_timeout - elapsed)))

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (service recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (trial call failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Prompt & reply parsing
# ══════════════════════════════════════════════════════════════════════════

CORRECTION_PROMPT = """You are a professional grammar correction assistant.

You will receive text written in Markdown format. Correct ONLY:
- Grammar errors
- Spelling mistakes
- Punctuation errors
- Sentence clarity and readability, without changing tone or meaning

Rules:
- Do NOT change or remove any Markdown syntax (headings, emphasis, lists, code blocks, links, tables, quotes)
- Do NOT add new content or remove existing content
- Preserve line breaks and the input structure exactly
- Make only the minimal corrections required

Respond with a JSON object of exactly this shape:
{
  "correctedText": "string - the fully corrected markdown text",
  "issues": [
    {
      "line": number,
      "offset": number,
      "length": number,
      "original": "string - the original incorrect portion",
      "suggestion": "string - corrected text",
      "explanation": "string - brief reason"
    }
  ]
}

Output rules:
- Output ONLY the JSON object
- No text before or after the JSON
- No comments, markdown fences, backticks or explanations outside the JSON

Markdown to correct:
<<<START_OF_MARKDOWN>>>
{content}
<<<END_OF_MARKDOWN>>>"""


def build_prompt(content: str) -> str:
    # str.replace, not format(): the template itself contains JSON braces
    return CORRECTION_PROMPT.replace("{content}", content)


def extract_json_object(reply: Optional[str]) -> str:
    """
    Cut the outermost JSON object candidate out of a free-form reply.

    Returns:
        The substring from the first `{` to the last `}` inclusive.

    Raises:
        RemoteResponseMalformedError if there is no such pair.
    """
    if not reply:
        raise RemoteResponseMalformedError(context={"reason": "empty reply"})

    start = reply.find("{")
    end = reply.rfind("}")
    if start == -1 or end < start:
        raise RemoteResponseMalformedError(
            context={"reason": "no JSON object in reply", "reply_length": len(reply)}
        )
    return reply[start:end + 1]


def parse_correction(reply: Optional[str], source_text: str) -> GrammarCorrection:
    """
    Parse Gemini's reply into a GrammarCorrection.

    Issues keep the content and order the service reported; only `column`
    is derived from the reported offset (None when it falls outside the text).
    """
    candidate = extract_json_object(reply)
    try:
        payload = RemoteCorrectionPayload.model_validate_json(candidate)
    except PydanticValidationError as e:
        raise RemoteResponseMalformedError(
            context={"reason": "reply does not match schema", "errors": e.error_count()}
        )

    issues: List[GrammarIssue] = []
    for item in payload.issues:
        column = None
        if 0 <= item.offset <= len(source_text):
            _, column = line_and_column(source_text, item.offset)
        issues.append(
            GrammarIssue(
                line=item.line,
                column=column,
                offset=item.offset,
                length=item.length,
                original=item.original,
                suggestion=item.suggestion,
                explanation=item.explanation,
            )
        )
    return GrammarCorrection(corrected_text=payload.corrected_text, issues=issues)


def _is_transient(exc: BaseException) -> bool:
    """Errors worth another attempt: network trouble, timeouts, 5xx, 429."""
    if isinstance(exc, (ConnectionError, TimeoutError, asyncio.TimeoutError, httpx.TransportError)):
        return True
    if isinstance(exc, genai_errors.ServerError):
        return True
    if isinstance(exc, genai_errors.ClientError):
        return exc.code == 429
    return False


def build_gemini_client() -> Optional[genai.Client]:
    """Create the process-wide Gemini client, or None without an API key."""
    if not settings.gemini_configured:
        logger.warning("GEMINI_API_KEY not configured; AI grammar correction disabled")
        return None
    return genai.Client(api_key=settings.gemini_api_key)


# ══════════════════════════════════════════════════════════════════════════
# Gemini Service
# ══════════════════════════════════════════════════════════════════════════

class GeminiService(GrammarEngine):
    """
    Google Gemini implementation of the remote grammar engine.

    Error Handling Chain:
        transient failure → tenacity retries (bounded, backoff + jitter)
        → retries exhausted or non-transient API error → circuit breaker failure
          → RemoteServiceUnavailableError
        → reply received but unusable → RemoteResponseMalformedError
    """

    name = "gemini"

    def __init__(
        self,
        client: Optional[genai.Client],
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        """
        Args:
            client: Gemini client owned by the application (None when no API
                    key is configured; every call then fails as unavailable).
            model: Model name, defaults to settings.gemini_model.
            timeout: Seconds allowed per attempt, defaults to settings.gemini_timeout.
        """
        self.client = client
        self.model = model or settings.gemini_model
        self.timeout = timeout or settings.gemini_timeout
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

        logger.info(
            "GeminiService initialized with model=%s, timeout=%.0fs, "
            "circuit_breaker(threshold=%d, recovery=%ds)",
            self.model,
            self.timeout,
            self.circuit_breaker.failure_threshold,
            self.circuit_breaker.recovery_timeout,
        )

    @property
    def configured(self) -> bool:
        return self.client is not None

    async def check(self, text: str) -> List[GrammarIssue]:
        correction = await self.correct(text)
        return correction.issues

    async def correct(self, text: str) -> GrammarCorrection:
        """
        Correct Markdown text with Gemini.

        Flow:
            1. Circuit breaker check (may raise CircuitBreakerOpenError)
            2. Send prompt with retry logic
            3. Record success/failure in the circuit breaker
            4. Extract and validate the JSON reply

        Raises:
            RemoteServiceUnavailableError: Not configured, unreachable, or
                failing after all retries (includes CircuitBreakerOpenError)
            RemoteResponseMalformedError: Reply had no valid JSON object
        """
        request_id = str(uuid.uuid4())[:8]

        if self.client is None:
            raise RemoteServiceUnavailableError(
                message="AI grammar correction is not configured on this server.",
                context={"request_id": request_id, "reason": "missing api key"},
            )

        self.circuit_breaker.can_execute()

        logger.info("[%s] Starting Gemini correction for %d chars", request_id, len(text))

        try:
            reply = await self._generate_with_retry(build_prompt(text), request_id)
        except Exception as e:
            self.circuit_breaker.record_failure()
            logger.error(
                "[%s] Gemini call failed: %s: %s",
                request_id,
                type(e).__name__,
                str(e),
            )
            raise RemoteServiceUnavailableError(
                retry_after=self.circuit_breaker.recovery_timeout
                if self.circuit_breaker.state == CircuitBreaker.OPEN
                else None,
                context={
                    "request_id": request_id,
                    "error_type": type(e).__name__,
                    "attempts": settings.retry_max_attempts,
                },
            )

        self.circuit_breaker.record_success()

        try:
            correction = parse_correction(reply, text)
        except RemoteResponseMalformedError as e:
            e.context["request_id"] = request_id
            logger.error(
                "[%s] Malformed Gemini reply (%s)",
                request_id,
                e.context.get("reason"),
            )
            raise

        logger.info("[%s] Gemini reported %d issues", request_id, len(correction.issues))
        return correction

    @retry(
        retry=retry_if_exception(_is_transient),
        stop=stop_after_attempt(settings.retry_max_attempts),
        # wait = min(max, initial * 2^attempt) + random(0, jitter)
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _generate_with_retry(self, prompt: str, request_id: str) -> Optional[str]:
        """
        One Gemini call, retried by tenacity on transient errors only.

        Kept apart from correct() so the circuit breaker check and the reply
        parsing are not retried.
        """
        start_time = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                self.client.aio.models.generate_content(
                    model=self.model,
                    contents=prompt,
                    config=genai_types.GenerateContentConfig(temperature=0.0),
                ),
                timeout=self.timeout,
            )
        except Exception as e:
            logger.warning(
                "[%s] Gemini API call failed after %.0fms: %s",
                request_id,
                (time.perf_counter() - start_time) * 1000,
                type(e).__name__,
            )
            raise

        reply = response.text
        logger.info(
            "[%s] Gemini replied in %.0fms with %d chars",
            request_id,
            (time.perf_counter() - start_time) * 1000,
            len(reply or ""),
        )
        return reply

    async def health_check(self) -> Optional[bool]:
        """
        Check that the API key works and the configured model exists.

        Uses a model metadata lookup, which consumes no generation tokens.
        Returns None when no client is configured.
        """
        if self.client is None:
            return None
        try:
            await asyncio.wait_for(self.client.aio.models.get(model=self.model), timeout=10)
            return True
        except Exception as e:
            logger.warning("Gemini health check failed: %s", str(e))
            return False

    async def close(self) -> None:
        """Close the client's async transport at application shutdown."""
        client, self.client = self.client, None
        if client is not None:
            try:
                await client.aio.aclose()
                logger.info("Gemini client closed")
            except Exception as e:
                logger.warning("Failed to close Gemini client cleanly: %s", str(e))
