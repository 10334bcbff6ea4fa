"""
test_retry.py - 지수 백오프 재시도 테스트
"""

import logging
from unittest.mock import MagicMock

import pytest

from src.utils.retry import retry_with_exponential_backoff


class TestRetryWithExponentialBackoff:
    """retry_with_exponential_backoff 함수 테스트."""

    def test_success_first_try(self):
        func = MagicMock(return_value="ok")
        sleep = MagicMock()

        assert retry_with_exponential_backoff(func, 1, key="k", sleep=sleep) == "ok"
        func.assert_called_once_with(1, key="k")
        sleep.assert_not_called()

    def test_retries_then_succeeds(self, caplog):
        func = MagicMock(side_effect=[ConnectionError("a"), ConnectionError("b"), "ok"])
        sleep = MagicMock()

        with caplog.at_level(logging.INFO):
            result = retry_with_exponential_backoff(
                func, initial_delay=1.0, sleep=sleep
            )

        assert result == "ok"
        assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0]
        assert "Retry succeeded on attempt 3/4" in caplog.text

    def test_gives_up_after_max_retries(self):
        func = MagicMock(side_effect=TimeoutError("slow"))
        sleep = MagicMock()

        with pytest.raises(TimeoutError):
            retry_with_exponential_backoff(func, max_retries=2, sleep=sleep)

        assert func.call_count == 3
        assert sleep.call_count == 2

    def test_delay_capped(self):
        func = MagicMock(side_effect=[OSError(), OSError(), OSError(), "ok"])
        sleep = MagicMock()

        retry_with_exponential_backoff(
            func, initial_delay=4.0, max_delay=5.0, sleep=sleep
        )

        assert [c.args[0] for c in sleep.call_args_list] == [4.0, 5.0, 5.0]

    def test_should_retry_false_raises_immediately(self):
        func = MagicMock(side_effect=ValueError("permanent"))
        sleep = MagicMock()

        with pytest.raises(ValueError):
            retry_with_exponential_backoff(
                func, should_retry=lambda e: False, sleep=sleep
            )

        func.assert_called_once()
        sleep.assert_not_called()

    def test_unlisted_exception_not_retried(self):
        func = MagicMock(side_effect=KeyError("x"))

        with pytest.raises(KeyError):
            retry_with_exponential_backoff(
                func, exceptions=(OSError,), sleep=MagicMock()
            )

        func.assert_called_once()
