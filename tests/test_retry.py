"""
重试包装测试：固定间隔、限流立即失败、非可重试错误直接抛出
"""

from unittest.mock import AsyncMock

import pytest

from tianji.ai.retry import is_rate_limited, retry_with_backoff
from tianji.errors import (
    BUSY_MESSAGE,
    GeminiAPIError,
    MissingAPIKeyError,
    ReadingParseError,
    ServiceBusyError,
)


class TestIsRateLimited:

    def test_status_code_in_message(self):
        assert is_rate_limited(RuntimeError("HTTP 429 Too Many Requests"))

    def test_quota_phrase_in_message(self):
        assert is_rate_limited(RuntimeError("Please finish what you were doing before asking again"))

    def test_status_attribute(self):
        assert is_rate_limited(GeminiAPIError(429, "quota"))

    def test_code_attribute(self):
        error = RuntimeError("resource exhausted")
        error.code = 429
        assert is_rate_limited(error)

    def test_other_errors(self):
        assert not is_rate_limited(RuntimeError("connection reset"))
        assert not is_rate_limited(GeminiAPIError(500, "internal"))


class TestRetryWithBackoff:

    @pytest.mark.asyncio
    async def test_success_first_try(self, sleep):
        operation = AsyncMock(return_value="ok")
        assert await retry_with_backoff(operation, sleep=sleep) == "ok"
        assert operation.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fails_twice_then_succeeds(self, sleep):
        """两次失败后成功：共三次调用，两次 2 秒等待"""
        operation = AsyncMock(side_effect=[RuntimeError("boom"), RuntimeError("boom"), "ok"])

        assert await retry_with_backoff(operation, retries=2, delay=2.0, sleep=sleep) == "ok"
        assert operation.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [2.0, 2.0]

    @pytest.mark.asyncio
    async def test_budget_exhausted_raises_last_error(self, sleep):
        errors = [RuntimeError("first"), RuntimeError("second"), RuntimeError("third")]
        operation = AsyncMock(side_effect=errors)

        with pytest.raises(RuntimeError, match="third"):
            await retry_with_backoff(operation, retries=2, delay=2.0, sleep=sleep)
        assert operation.await_count == 3
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_zero_retries_single_attempt(self, sleep):
        operation = AsyncMock(side_effect=RuntimeError("boom"))

        with pytest.raises(RuntimeError):
            await retry_with_backoff(operation, retries=0, sleep=sleep)
        assert operation.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rate_limit_is_busy_immediately(self, sleep):
        """限流：不重试、不等待，抛出固定文案"""
        operation = AsyncMock(side_effect=RuntimeError("429 RESOURCE_EXHAUSTED"))

        with pytest.raises(ServiceBusyError) as exc_info:
            await retry_with_backoff(operation, sleep=sleep)

        assert str(exc_info.value) == BUSY_MESSAGE
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert operation.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rate_limit_after_transient_failure(self, sleep):
        operation = AsyncMock(side_effect=[RuntimeError("timeout"), GeminiAPIError(429, "quota")])

        with pytest.raises(ServiceBusyError):
            await retry_with_backoff(operation, sleep=sleep)
        assert operation.await_count == 2
        assert sleep.await_count == 1

    @pytest.mark.asyncio
    async def test_busy_error_passes_through(self, sleep):
        busy = ServiceBusyError()
        operation = AsyncMock(side_effect=busy)

        with pytest.raises(ServiceBusyError) as exc_info:
            await retry_with_backoff(operation, sleep=sleep)
        assert exc_info.value is busy
        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_missing_key_not_retried(self, sleep):
        operation = AsyncMock(side_effect=MissingAPIKeyError())

        with pytest.raises(MissingAPIKeyError):
            await retry_with_backoff(operation, sleep=sleep)
        assert operation.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_parse_errors_are_retried(self, sleep):
        operation = AsyncMock(side_effect=[ReadingParseError("bad json"), "ok"])

        assert await retry_with_backoff(operation, sleep=sleep) == "ok"
        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_status_attribute_object(self, sleep):
        """带 status=429 属性的 SDK 异常同样视为限流"""
        class ClientError(Exception):
            pass

        error = ClientError("resource exhausted")
        error.status = 429
        operation = AsyncMock(side_effect=error)

        with pytest.raises(ServiceBusyError):
            await retry_with_backoff(operation, sleep=sleep)
        assert operation.await_count == 1
