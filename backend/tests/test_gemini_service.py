"""
PetProject Backend - Gemini Service Unit Tests (Mocked)
=========================================================

What:  Tests for GeminiService with the Google Generative AI SDK mocked out.
How:   Patches the genai module and model to simulate success/failure.

What we test:
    ✅ Successful generation returns the stripped response text
    ✅ Inline attachments are sent before the prompt
    ✅ Failures are recorded by the circuit breaker and become LLMServiceError
    ✅ Circuit breaker opens after consecutive failures
    ✅ Circuit breaker resets after recovery timeout
    ❌ Real API calls (use integration tests for that)
"""

import time
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from petproject.exceptions import CircuitBreakerOpenError, LLMServiceError
from petproject.services.gemini_service import CircuitBreaker, GeminiService


class TestCircuitBreaker:
    """Tests for the CircuitBreaker resilience pattern."""

    def test_initial_state_is_closed(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        assert cb.state == "closed"
        assert cb.failure_count == 0

    def test_stays_closed_under_threshold(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        for _ in range(4):
            cb.record_failure()
        assert cb.state == "closed"
        assert cb.can_execute() is True

    def test_opens_at_threshold(self):
        cb = CircuitBreaker(failure_threshold=3, recovery_timeout=60)
        for _ in range(3):
            cb.record_failure()
        assert cb.state == "open"

    def test_open_circuit_rejects_calls(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=60)
        cb.record_failure()

        with pytest.raises(CircuitBreakerOpenError):
            cb.can_execute()

    def test_success_resets_failure_count(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        cb.record_failure()
        cb.record_failure()
        assert cb.failure_count == 2

        cb.record_success()
        assert cb.failure_count == 0
        assert cb.state == "closed"

    def test_half_open_after_recovery_timeout(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        assert cb.state == "open"

        time.sleep(0.01)
        assert cb.can_execute() is True
        assert cb.state == "half_open"

    def test_failure_in_half_open_reopens(self):
        cb = CircuitBreaker(failure_threshold=3, recovery_timeout=0)
        for _ in range(3):
            cb.record_failure()
        time.sleep(0.01)
        cb.can_execute()

        cb.record_failure()
        assert cb.state == "open"

    def test_success_after_half_open_closes(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        time.sleep(0.01)
        cb.can_execute()

        cb.record_success()
        assert cb.state == "closed"
        assert cb.failure_count == 0


class TestGeminiServiceMocked:
    """Tests for GeminiService with mocked Gemini API."""

    @pytest.mark.asyncio
    async def test_generate_success(self):
        with patch("petproject.services.gemini_service.genai") as mock_genai:
            mock_response = MagicMock()
            mock_response.text = '  {"answer": "Brush weekly."}\n'
            mock_model = MagicMock()
            mock_model.generate_content_async = AsyncMock(return_value=mock_response)
            mock_genai.GenerativeModel.return_value = mock_model

            service = GeminiService()
            result = await service.generate("How often to brush?", system_instruction="Be kind")

            assert result == '{"answer": "Brush weekly."}'
            mock_genai.GenerativeModel.assert_called_with(
                service.model_name, system_instruction="Be kind"
            )
            kwargs = mock_model.generate_content_async.call_args.kwargs
            assert kwargs["generation_config"] == {"response_mime_type": "application/json"}
            assert service.circuit_breaker.state == "closed"

    @pytest.mark.asyncio
    async def test_generate_sends_attachment_first(self):
        with patch("petproject.services.gemini_service.genai") as mock_genai:
            mock_response = MagicMock()
            mock_response.text = "{}"
            mock_model = MagicMock()
            mock_model.generate_content_async = AsyncMock(return_value=mock_response)
            mock_genai.GenerativeModel.return_value = mock_model

            service = GeminiService()
            await service.generate("Extract", inline_data=b"%PDF-1.4", mime_type="application/pdf")

            contents = mock_model.generate_content_async.call_args.args[0]
            assert contents == [{"mime_type": "application/pdf", "data": b"%PDF-1.4"}, "Extract"]

    @pytest.mark.asyncio
    async def test_attachment_without_mime_type(self):
        with patch("petproject.services.gemini_service.genai"):
            service = GeminiService()
            with pytest.raises(LLMServiceError):
                await service.generate("Extract", inline_data=b"data")

    @pytest.mark.asyncio
    async def test_failure_records_and_raises(self):
        with patch("petproject.services.gemini_service.genai"):
            service = GeminiService()
            service._call_gemini_with_retry = AsyncMock(side_effect=RuntimeError("quota"))

            with pytest.raises(LLMServiceError):
                await service.generate("hello")
            assert service.circuit_breaker.failure_count == 1

    @pytest.mark.asyncio
    async def test_generate_circuit_breaker_open(self):
        with patch("petproject.services.gemini_service.genai"):
            service = GeminiService()
            service._call_gemini_with_retry = AsyncMock()

            for _ in range(service.circuit_breaker.failure_threshold):
                service.circuit_breaker.record_failure()

            with pytest.raises(CircuitBreakerOpenError):
                await service.generate("hello")
            service._call_gemini_with_retry.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_health_check_returns_bool(self):
        with patch("petproject.services.gemini_service.genai") as mock_genai:
            mock_genai.list_models.return_value = [MagicMock()]

            service = GeminiService()
            assert await service.health_check() is True

            mock_genai.list_models.side_effect = RuntimeError("offline")
            assert await service.health_check() is False
