"""
Tests for the retry controller.
"""

import pytest

from chronoflux.engine.json_extractor import parse_model
from chronoflux.engine.retry import RetryController
from chronoflux.errors import (
    AIProviderError,
    ConnectivityError,
    NoJsonFoundError,
    ProviderTimeoutError,
)
from chronoflux.schemas.ai import ActionInterpretation
from chronoflux.tests.fakes import FakeProvider


def parse_interpretation(raw):
    return parse_model(raw, ActionInterpretation)


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class TestRetryController:
    """Bounded attempts with exponential backoff"""

    def test_delay_schedule(self):
        controller = RetryController(FakeProvider(), base_delay=1.0)
        assert [controller.delay_for(a) for a in (1, 2, 3)] == [1.0, 2.0, 4.0]

    @pytest.mark.asyncio
    async def test_success_first_attempt(self):
        sleep = RecordingSleep()
        provider = FakeProvider(['{"feasibility": "high"}'])
        controller = RetryController(provider, sleep=sleep)

        result = await controller.run("prompt", 0.7, parse_interpretation)

        assert result.ok
        assert result.value.feasibility == "high"
        assert result.attempts == 1
        assert result.retries == 0
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_parse_failure_is_retried(self):
        sleep = RecordingSleep()
        events = []
        provider = FakeProvider(["not json at all", '{"feasibility": "low"}'])
        controller = RetryController(provider, base_delay=0.5, sleep=sleep)

        result = await controller.run(
            "prompt", 0.7, parse_interpretation, observer=events.append
        )

        assert result.ok
        assert result.value.feasibility == "low"
        assert result.attempts == 2
        assert isinstance(result.errors[0], NoJsonFoundError)
        assert sleep.delays == [0.5]
        assert len(events) == 1
        assert events[0].attempt == 1
        assert events[0].delay == 0.5

    @pytest.mark.asyncio
    async def test_exhausted(self):
        sleep = RecordingSleep()
        provider = FakeProvider([ProviderTimeoutError("slow")] * 3)
        controller = RetryController(provider, max_attempts=3, base_delay=1.0, sleep=sleep)

        result = await controller.run("prompt", 0.7, parse_interpretation)

        assert not result.ok
        assert result.attempts == 3
        assert isinstance(result.error, ProviderTimeoutError)
        # No wait after the final attempt
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_non_retryable_returns_immediately(self):
        sleep = RecordingSleep()
        provider = FakeProvider([ConnectivityError("Ollama is down"), '{"feasibility": "high"}'])
        controller = RetryController(provider, sleep=sleep)

        result = await controller.run("prompt", 0.7, parse_interpretation)

        assert isinstance(result.error, ConnectivityError)
        assert result.attempts == 1
        assert len(provider.calls) == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        provider = FakeProvider([AIProviderError("bad request", status_code=400, retryable=False)])
        controller = RetryController(provider, sleep=RecordingSleep())

        result = await controller.run("prompt", 0.7, parse_interpretation)

        assert result.attempts == 1
        assert not result.ok

    @pytest.mark.asyncio
    async def test_empty_response_is_retried(self):
        provider = FakeProvider(["   ", '{"narrative": "ok"}'])
        controller = RetryController(provider, sleep=RecordingSleep())

        result = await controller.run("prompt", 0.7, parse_interpretation)

        assert result.ok
        assert result.attempts == 2

    @pytest.mark.asyncio
    async def test_with_retry_raises_last_error(self):
        provider = FakeProvider(["nope", "still nope"])
        controller = RetryController(provider, max_attempts=2, sleep=RecordingSleep())

        with pytest.raises(NoJsonFoundError):
            await controller.with_retry("prompt", 0.7, parse_interpretation)

    @pytest.mark.asyncio
    async def test_temperature_passed_through(self):
        provider = FakeProvider(['{"feasibility": "high"}'])
        controller = RetryController(provider, sleep=RecordingSleep())

        await controller.run("prompt", 0.8, parse_interpretation)

        assert provider.calls[0]["temperature"] == 0.8
