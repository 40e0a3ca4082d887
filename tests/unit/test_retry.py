"""Unit tests for the bounded retry combinator."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from menu_digitizer_service.extraction.errors import (
    ExtractionExhaustedError,
    ExtractionTransportError,
    InvalidJsonError,
    NoJsonFoundError,
)
from menu_digitizer_service.extraction.retry import with_retries


@pytest.mark.unit
class TestWithRetries:
    """Test suite for with_retries."""

    @pytest.mark.asyncio
    async def test_returns_first_success_without_retrying(self) -> None:
        """Test that a successful first attempt is returned immediately."""
        attempt = AsyncMock(return_value="menu")

        result = await with_retries(3, attempt)

        assert result == "menu"
        attempt.assert_awaited_once_with(1)

    @pytest.mark.asyncio
    async def test_retries_until_success(self) -> None:
        """Test that failures are retried with increasing attempt numbers."""
        attempt = AsyncMock(
            side_effect=[NoJsonFoundError("no json"), InvalidJsonError("bad"), "menu"]
        )

        result = await with_retries(3, attempt)

        assert result == "menu"
        assert [c.args for c in attempt.await_args_list] == [(1,), (2,), (3,)]

    @pytest.mark.asyncio
    async def test_exhaustion_carries_last_error(self) -> None:
        """Test that the final error is attached when all attempts fail."""
        last = InvalidJsonError("still bad")
        attempt = AsyncMock(side_effect=[NoJsonFoundError("none"), ExtractionTransportError("x"), last])

        with pytest.raises(ExtractionExhaustedError) as exc_info:
            await with_retries(3, attempt)

        assert exc_info.value.last_error is last
        assert exc_info.value.attempts == 3
        assert exc_info.value.last_reason == "InvalidJson"
        assert "after 3 attempt(s)" in str(exc_info.value)
        assert attempt.await_count == 3

    @pytest.mark.asyncio
    async def test_never_exceeds_max_attempts(self) -> None:
        """Test that the attempt count is bounded."""
        attempt = AsyncMock(side_effect=NoJsonFoundError("none"))

        with pytest.raises(ExtractionExhaustedError):
            await with_retries(2, attempt)

        assert attempt.await_count == 2

    @pytest.mark.asyncio
    async def test_on_failure_called_for_each_failed_attempt(self) -> None:
        """Test that the failure callback sees every failure in order."""
        first = NoJsonFoundError("none")
        attempt = AsyncMock(side_effect=[first, "menu"])
        on_failure = MagicMock()

        await with_retries(3, attempt, on_failure)

        on_failure.assert_called_once_with(1, first)

    @pytest.mark.asyncio
    async def test_unexpected_errors_propagate_immediately(self) -> None:
        """Test that errors outside the extraction taxonomy are not retried."""
        attempt = AsyncMock(side_effect=RuntimeError("bug"))

        with pytest.raises(RuntimeError, match="bug"):
            await with_retries(3, attempt)

        attempt.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cancellation_is_not_retried(self) -> None:
        """Test that cancellation propagates without further attempts."""
        attempt = AsyncMock(side_effect=asyncio.CancelledError())

        with pytest.raises(asyncio.CancelledError):
            await with_retries(3, attempt)

        attempt.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_rejects_non_positive_attempts(self) -> None:
        """Test that max_attempts below one is refused."""
        with pytest.raises(ValueError):
            await with_retries(0, AsyncMock())
