from unittest.mock import MagicMock

import pytest
import stripe

from storefront.providers.errors import ErrorClass, classify_stripe_error
from storefront.providers.retry import RetryPolicy, backoff_delay, execute_with_error_handling


class FlakyCall:
    def __init__(self, *failures, result="ok"):
        self.failures = list(failures)
        self.result = result
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return self.result


def _run(callback, default=None, policy=RetryPolicy()):
    delays = []
    result = execute_with_error_handling(
        "create_payout",
        callback,
        default,
        classify=classify_stripe_error,
        policy=policy,
        sleep=delays.append,
    )
    return result, delays


class TestClassification:
    def test_rate_limit(self):
        assert classify_stripe_error(stripe.RateLimitError("slow down")) is ErrorClass.RATE_LIMIT

    def test_api_error(self):
        assert classify_stripe_error(stripe.APIError("boom")) is ErrorClass.API

    def test_anything_else_is_unexpected(self):
        assert classify_stripe_error(KeyError("id")) is ErrorClass.UNEXPECTED


class TestBackoff:
    @pytest.mark.parametrize("attempt, expected", [(1, 0.2), (2, 0.4), (3, 0.8), (4, 1.0), (10, 1.0)])
    def test_delay_doubles_up_to_the_cap(self, attempt, expected):
        assert backoff_delay(attempt) == pytest.approx(expected)


class TestExecuteWithErrorHandling:
    def test_success_is_returned_untouched(self):
        call = FlakyCall(result={"id": "po_1"})
        result, delays = _run(call)
        assert result == {"id": "po_1"}
        assert call.calls == 1
        assert delays == []

    def test_rate_limit_is_retried_until_it_succeeds(self):
        call = FlakyCall(stripe.RateLimitError("slow down"))
        result, delays = _run(call)
        assert result == "ok"
        assert call.calls == 2
        assert delays == [pytest.approx(0.2)]

    def test_persistent_rate_limit_gives_up_after_three_attempts(self):
        call = FlakyCall(*[stripe.RateLimitError("slow down") for _ in range(3)])
        result, delays = _run(call, default=False)
        assert result is False
        assert call.calls == 3
        assert delays == [pytest.approx(0.2), pytest.approx(0.4)]

    def test_exhausted_retries_log_every_attempt(self, monkeypatch):
        logger = MagicMock()
        monkeypatch.setattr("storefront.providers.retry.logger", logger)

        _run(FlakyCall(*[stripe.RateLimitError("slow down") for _ in range(3)]))

        assert logger.warning.call_count == 2
        failure = logger.error.call_args.kwargs
        assert failure["attempts"] == 3
        assert failure["classification"] == ErrorClass.RATE_LIMIT.value
        assert failure["method"] == "create_payout"

    def test_api_error_is_not_retried(self):
        call = FlakyCall(stripe.APIError("boom"))
        result, delays = _run(call, default=[])
        assert result == []
        assert call.calls == 1
        assert delays == []

    def test_unexpected_error_returns_the_default(self):
        call = FlakyCall(ValueError("bad payload"))
        result, _ = _run(call)
        assert result is None
        assert call.calls == 1

    def test_policy_limits_attempts(self):
        call = FlakyCall(*[stripe.RateLimitError("slow down") for _ in range(5)])
        result, delays = _run(call, policy=RetryPolicy(max_attempts=5, base_delay=0.5, max_delay=2.0))
        assert result is None
        assert call.calls == 5
        assert delays == [1.0, 2.0, 2.0, 2.0]
