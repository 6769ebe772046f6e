from unittest.mock import AsyncMock, patch

import pytest

from schoolchat.utils.retry import is_retryable_error, run_with_retry


class StatusError(Exception):
    def __init__(self, message, status_code):
        super().__init__(message)
        self.status_code = status_code


class TestIsRetryable:
    @pytest.mark.parametrize("status", [429, 503, 529])
    def test_status_codes(self, status):
        assert is_retryable_error(StatusError("busy", status)) is True

    def test_other_status_codes(self):
        assert is_retryable_error(StatusError("bad request", 400)) is False

    @pytest.mark.parametrize(
        "message", ["Rate limit reached for gpt-4o", "Overloaded", "429 Too Many Requests"]
    )
    def test_messages(self, message):
        assert is_retryable_error(RuntimeError(message)) is True

    def test_plain_errors(self):
        assert is_retryable_error(ValueError("invalid api key")) is False


@pytest.mark.asyncio
async def test_returns_first_success():
    func = AsyncMock(return_value="ok")

    assert await run_with_retry(func) == "ok"
    assert func.await_count == 1


@pytest.mark.asyncio
async def test_retries_with_backoff():
    func = AsyncMock(side_effect=[RuntimeError("rate limit"), RuntimeError("overloaded"), "ok"])

    with patch("schoolchat.utils.retry.asyncio.sleep", new=AsyncMock()) as sleep:
        result = await run_with_retry(func, max_retries=3, initial_delay=1.0, backoff_factor=2.0)

    assert result == "ok"
    assert [call.args[0] for call in sleep.await_args_list] == [1.0, 2.0]


@pytest.mark.asyncio
async def test_honours_retry_hint():
    func = AsyncMock(side_effect=[RuntimeError("Rate limit reached. Please try again in 7s."), "ok"])

    with patch("schoolchat.utils.retry.asyncio.sleep", new=AsyncMock()) as sleep:
        await run_with_retry(func)

    sleep.assert_awaited_once_with(7.0)


@pytest.mark.asyncio
async def test_gives_up_after_max_retries():
    func = AsyncMock(side_effect=StatusError("overloaded_error", 529))

    with patch("schoolchat.utils.retry.asyncio.sleep", new=AsyncMock()):
        with pytest.raises(StatusError):
            await run_with_retry(func, max_retries=2)

    assert func.await_count == 3


@pytest.mark.asyncio
async def test_non_retryable_raises_immediately():
    func = AsyncMock(side_effect=ValueError("invalid api key"))

    with pytest.raises(ValueError):
        await run_with_retry(func, max_retries=5)

    assert func.await_count == 1
