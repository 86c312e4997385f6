"""
PetProject Backend - Google Gemini Text-Generation Client
===========================================================

What:  TextGenerationClient backed by Google Gemini (google-generativeai).
How:   Builds a GenerativeModel per system instruction, sends the prompt plus
       an optional inline attachment, and wraps every call in tenacity retries
       and a circuit breaker.
Who:   Singleton `gemini_service`, used by AIAnswerService and ScanService.
When:  Background AI answers after a question is posted; synchronous medical
       record scans.

Resilience Strategy:
    1. Tenacity retry with exponential backoff + jitter for transient failures
    2. Circuit breaker so a Gemini outage fails fast instead of stacking up
       slow retries
    3. Per-call timeout passed through request_options
"""

import logging
import time
import uuid
from typing import Optional

import google.generativeai as genai
from tenacity import (
    RetryError,
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from petproject.config import settings
from petproject.exceptions import CircuitBreakerOpenError, LLMServiceError
from petproject.services.llm_base import TextGenerationClient

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker Implementation
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Circuit breaker around the Gemini API.

    State Machine:
        CLOSED (normal operation)
            → On failure: increment failure_count
            → When failure_count >= threshold: transition to OPEN

        OPEN (rejecting all requests)
            → All calls raise CircuitBreakerOpenError immediately
            → After recovery_timeout seconds: transition to HALF_OPEN

        HALF_OPEN (testing recovery)
            → Allow ONE request through
            → On success: transition to CLOSED (reset failure_count)
            → On failure: transition back to OPEN (reset timer)

    Not thread-safe. uvicorn async workers share one event loop per process,
    so plain counters are enough here.
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
        Returns True if a request may proceed.

        Raises:
            CircuitBreakerOpenError if OPEN and the recovery timeout has not elapsed.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info(
                    "Circuit breaker transitioning to HALF_OPEN after %.1fs",
                    elapsed,
                )
                self.state = self.HALF_OPEN
                return True
            remaining = int(self.recovery_timeout - elapsed)
            raise CircuitBreakerOpenError(recovery_time=remaining)

        # HALF_OPEN: allow the test request through
        return True

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
            logger.warning("Circuit breaker returning to OPEN (test request failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Gemini Service
# ══════════════════════════════════════════════════════════════════════════

class GeminiService(TextGenerationClient):
    """
    Google Gemini implementation of TextGenerationClient.

    Error Handling Chain:
        API call fails → tenacity retries (retry_max_attempts, with backoff)
        → All retries fail → record circuit breaker failure → LLMServiceError
        → Threshold reached → future calls rejected with CircuitBreakerOpenError
        → Recovery timeout → one test call (HALF_OPEN) → CLOSED on success
    """

    REQUEST_TIMEOUT_SECONDS = 60

    def __init__(self):
        if settings.gemini_api_key and settings.gemini_api_key != "your_gemini_api_key_here":
            genai.configure(api_key=settings.gemini_api_key)

        self.model_name = settings.gemini_model
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

        logger.info(
            "GeminiService initialized with model=%s, "
            "circuit_breaker(threshold=%d, recovery=%ds)",
            self.model_name,
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    def _build_model(self, system_instruction: Optional[str]) -> "genai.GenerativeModel":
        if system_instruction:
            return genai.GenerativeModel(self.model_name, system_instruction=system_instruction)
        return genai.GenerativeModel(self.model_name)

    async def generate(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        inline_data: Optional[bytes] = None,
        mime_type: Optional[str] = None,
        json_output: bool = True,
    ) -> str:
        """
        Flow:
            1. Check circuit breaker → may raise CircuitBreakerOpenError
            2. Call Gemini with retry logic
            3. Record success/failure in circuit breaker
            4. Return the stripped response text
        """
        if inline_data is not None and not mime_type:
            raise LLMServiceError(
                message="An attachment was given without its content type.",
                context={"attachment_bytes": len(inline_data)},
            )

        request_id = str(uuid.uuid4())[:8]
        self.circuit_breaker.can_execute()

        logger.info(
            "[%s] Starting Gemini generation (prompt=%d chars, attachment=%s, json=%s)",
            request_id,
            len(prompt),
            mime_type or "none",
            json_output,
        )

        contents = []
        if inline_data is not None:
            contents.append({"mime_type": mime_type, "data": inline_data})
        contents.append(prompt)

        try:
            result = await self._call_gemini_with_retry(
                contents, system_instruction, json_output, request_id
            )
            self.circuit_breaker.record_success()
            return result

        except CircuitBreakerOpenError:
            raise
        except RetryError as e:
            self.circuit_breaker.record_failure()
            logger.error(
                "[%s] All Gemini retries exhausted: %s",
                request_id,
                str(e.last_attempt.exception()) if e.last_attempt else "Unknown error",
            )
            raise LLMServiceError(
                message="AI generation failed after multiple attempts. Please try again later.",
                retry_after=self.circuit_breaker.recovery_timeout,
                context={"request_id": request_id, "attempts": settings.retry_max_attempts},
            )
        except Exception as e:
            self.circuit_breaker.record_failure()
            logger.error(
                "[%s] Gemini generation failed: %s",
                request_id,
                str(e),
                exc_info=True,
            )
            raise LLMServiceError(
                message="AI generation failed. Please try again later.",
                context={"request_id": request_id, "error_type": type(e).__name__},
            )

    @retry(
        # The Gemini SDK raises generic exceptions for API errors
        retry=retry_if_exception_type(Exception),
        stop=stop_after_attempt(settings.retry_max_attempts),
        # wait = min(max_wait, min_wait * 2^attempt) + random(0, 1)
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _call_gemini_with_retry(
        self,
        contents: list,
        system_instruction: Optional[str],
        json_output: bool,
        request_id: str,
    ) -> str:
        start_time = time.time()

        try:
            model = self._build_model(system_instruction)
            generation_config = {"response_mime_type": "application/json"} if json_output else None
            response = await model.generate_content_async(
                contents,
                generation_config=generation_config,
                request_options={"timeout": self.REQUEST_TIMEOUT_SECONDS},
            )

            duration_ms = (time.time() - start_time) * 1000
            text = response.text.strip() if response.text else ""

            logger.info(
                "[%s] Gemini generation completed in %.0fms, %d chars",
                request_id,
                duration_ms,
                len(text),
            )
            return text

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.warning(
                "[%s] Gemini API call failed after %.0fms: %s",
                request_id,
                duration_ms,
                str(e),
            )
            raise

    async def health_check(self) -> bool:
        """Lists models (no token cost) to verify the key and connectivity."""
        try:
            models = genai.list_models()
            model_names = [m.name for m in models]
            target = f"models/{self.model_name}"
            if target not in model_names:
                logger.warning("Configured model %s not found in available models", target)
            return True
        except Exception as e:
            logger.warning("Gemini health check failed: %s", str(e))
            return False


# ── Singleton Instance ────────────────────────────────────────────────────
# Holds the circuit breaker state, which must be shared across requests
gemini_service = GeminiService()
