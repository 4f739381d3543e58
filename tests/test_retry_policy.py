"""Tests for the retry policy engine"""

from __future__ import annotations

import socket

import httpx
import pytest

from printpay.domain.config.retry import RetryConfig, RetryPresetsConfig
from printpay.domain.errors import ConfigurationError, ExternalServiceError, FailureKind
from printpay.infrastructure.retry import (
    DEFAULT_CLASSIFICATION,
    RetryClassification,
    RetryPolicy,
    RetryPresets,
    compute_delay,
    describe_failure,
    presets_from_config,
    retrying,
    with_retry,
)


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _flaky(failures: int, error: Exception):
    calls = {"n": 0}

    async def operation():
        calls["n"] += 1
        if calls["n"] <= failures:
            raise error
        return "ok"

    return operation, calls


def _timeout() -> ExternalServiceError:
    return ExternalServiceError("test", "timed out", kind=FailureKind.TIMEOUT)


class TestWithRetry:
    """Tests for with_retry"""

    async def test_succeeds_after_transient_failures(self):
        """Retryable failures are retried with exponential delays"""
        operation, calls = _flaky(2, _timeout())
        sleep = RecordingSleep()
        policy = RetryPolicy(max_attempts=3, initial_delay=1.0, backoff_multiplier=2.0, jitter=False)

        result = await with_retry(operation, policy, "flaky op", sleep=sleep)

        assert result == "ok"
        assert calls["n"] == 3
        assert sleep.delays == [1.0, 2.0]

    async def test_exhausts_attempts_and_reraises_last_failure(self):
        """After max_attempts the last failure propagates"""
        operation, calls = _flaky(10, _timeout())
        sleep = RecordingSleep()
        policy = RetryPolicy(max_attempts=4, initial_delay=0.5, jitter=False)

        with pytest.raises(ExternalServiceError, match="timed out"):
            await with_retry(operation, policy, sleep=sleep)

        assert calls["n"] == 4
        assert len(sleep.delays) == 3

    async def test_non_retryable_failure_is_attempted_once(self):
        """A 400 is never retried"""
        error = ExternalServiceError("test", "bad request", kind=FailureKind.HTTP, status_code=400)
        operation, calls = _flaky(10, error)
        sleep = RecordingSleep()

        with pytest.raises(ExternalServiceError):
            await with_retry(operation, RetryPolicy(max_attempts=5, jitter=False), sleep=sleep)

        assert calls["n"] == 1
        assert sleep.delays == []

    async def test_unknown_exception_is_not_retried(self):
        operation, calls = _flaky(10, ValueError("boom"))

        with pytest.raises(ValueError):
            await with_retry(operation, RetryPolicy(max_attempts=3), sleep=RecordingSleep())

        assert calls["n"] == 1

    async def test_delay_is_capped_at_max_delay(self):
        operation, _ = _flaky(3, _timeout())
        sleep = RecordingSleep()
        policy = RetryPolicy(
            max_attempts=4, initial_delay=1.0, max_delay=5.0, backoff_multiplier=10.0, jitter=False
        )

        await with_retry(operation, policy, sleep=sleep)

        assert sleep.delays == [1.0, 5.0, 5.0]

    async def test_single_attempt_policy_never_sleeps(self):
        operation, calls = _flaky(1, _timeout())
        sleep = RecordingSleep()

        with pytest.raises(ExternalServiceError):
            await with_retry(operation, RetryPolicy(max_attempts=1), sleep=sleep)

        assert calls["n"] == 1
        assert sleep.delays == []

    async def test_logs_retry_warnings(self, caplog):
        operation, _ = _flaky(1, _timeout())
        policy = RetryPolicy(max_attempts=2, initial_delay=1.0, jitter=False)

        with caplog.at_level("WARNING", logger="printpay.infrastructure.retry"):
            await with_retry(operation, policy, "Printify upload", sleep=RecordingSleep())

        assert "[Retry] Printify upload failed on attempt 1/2" in caplog.text

    async def test_retrying_decorator(self):
        calls = {"n": 0}

        @retrying(RetryPolicy(max_attempts=2, initial_delay=0.001, max_delay=0.001, jitter=False))
        async def fetch(value):
            calls["n"] += 1
            if calls["n"] == 1:
                raise _timeout()
            return value * 2

        assert await fetch(21) == 42
        assert calls["n"] == 2


class TestJitter:
    """Tests for delay jitter"""

    def test_jitter_bounds(self):
        policy = RetryPolicy(initial_delay=2.0, jitter=True)
        assert compute_delay(policy, 1, rng=lambda a, b: a) == pytest.approx(1.5)
        assert compute_delay(policy, 1, rng=lambda a, b: b) == pytest.approx(2.5)

    def test_random_jitter_stays_within_25_percent(self):
        policy = RetryPolicy(initial_delay=4.0, max_delay=30.0, jitter=True)
        for attempt in range(1, 4):
            nominal = policy.delay_for(attempt)
            for _ in range(50):
                delay = compute_delay(policy, attempt)
                assert nominal * 0.75 <= delay <= nominal * 1.25

    def test_no_jitter_is_exact(self):
        policy = RetryPolicy(initial_delay=1.5, backoff_multiplier=1.8, jitter=False)
        assert compute_delay(policy, 2) == pytest.approx(2.7)


class TestRetryPolicyValidation:
    """Tests for RetryPolicy invariants"""

    def test_zero_attempts_rejected(self):
        with pytest.raises(ConfigurationError, match="max_attempts"):
            RetryPolicy(max_attempts=0)

    def test_initial_delay_above_max_rejected(self):
        with pytest.raises(ConfigurationError, match="initial_delay"):
            RetryPolicy(initial_delay=10.0, max_delay=5.0)

    def test_multiplier_must_exceed_one(self):
        with pytest.raises(ConfigurationError, match="backoff_multiplier"):
            RetryPolicy(backoff_multiplier=1.0)

    def test_non_positive_delay_rejected(self):
        with pytest.raises(ConfigurationError):
            RetryPolicy(initial_delay=0)


class TestClassification:
    """Tests for failure description and the retry table"""

    @pytest.mark.parametrize(
        "exception, kind",
        [
            (httpx.ConnectTimeout("slow"), FailureKind.TIMEOUT),
            (TimeoutError(), FailureKind.TIMEOUT),
            (httpx.ConnectError("refused"), FailureKind.NETWORK),
            (ConnectionResetError(), FailureKind.CONNECTION_RESET),
            (httpx.RemoteProtocolError("reset"), FailureKind.CONNECTION_RESET),
            (socket.gaierror(), FailureKind.DNS),
            (ValueError("nope"), FailureKind.UNKNOWN),
        ],
    )
    def test_describe_failure(self, exception, kind):
        assert describe_failure(exception).kind == kind

    @pytest.mark.parametrize(
        "status, retryable",
        [(500, True), (502, True), (503, True), (429, True), (400, False), (401, False), (404, False)],
    )
    def test_http_statuses(self, status, retryable):
        error = ExternalServiceError("svc", "failed", kind=FailureKind.HTTP, status_code=status)
        assert DEFAULT_CLASSIFICATION(error) is retryable

    def test_transient_kinds_are_retryable(self):
        for kind in (FailureKind.TIMEOUT, FailureKind.NETWORK, FailureKind.CONNECTION_RESET, FailureKind.DNS):
            assert DEFAULT_CLASSIFICATION(ExternalServiceError("svc", "x", kind=kind))

    def test_invalid_response_is_not_retryable(self):
        error = ExternalServiceError("svc", "garbage", kind=FailureKind.INVALID_RESPONSE)
        assert not DEFAULT_CLASSIFICATION(error)

    async def test_custom_classification(self):
        """Policies accept their own classification table"""
        only_dns = RetryClassification(retryable_kinds=frozenset({FailureKind.DNS}))
        policy = RetryPolicy(max_attempts=3, jitter=False, retry_predicate=only_dns)
        operation, calls = _flaky(10, _timeout())

        with pytest.raises(ExternalServiceError):
            await with_retry(operation, policy, sleep=RecordingSleep())

        assert calls["n"] == 1


class TestPresets:
    """Tests for named retry presets"""

    def test_preset_values(self):
        assert RetryPresets.API_CALL.max_attempts == 3
        assert RetryPresets.API_CALL.initial_delay == 0.5
        assert RetryPresets.IMAGE_GENERATION.max_delay == 30.0
        assert RetryPresets.FULFILLMENT_OPERATION.max_attempts == 4
        assert RetryPresets.FULFILLMENT_OPERATION.backoff_multiplier == 1.8
        assert RetryPresets.WORKFLOW.max_attempts == 2
        assert RetryPresets.WORKFLOW.initial_delay == 5.0

    def test_presets_from_config_applies_overrides(self):
        config = RetryPresetsConfig(workflow=RetryConfig(max_attempts=5, jitter=False))
        presets = presets_from_config(config)

        assert presets["workflow"].max_attempts == 5
        assert presets["workflow"].jitter is False
        assert presets["workflow"].initial_delay == RetryPresets.WORKFLOW.initial_delay
        assert presets["api_call"] == RetryPresets.API_CALL

    def test_presets_from_config_rejects_inconsistent_override(self):
        # max_delay below the preset's initial delay
        config = RetryPresetsConfig(image_generation=RetryConfig(max_delay=1.0))
        with pytest.raises(ConfigurationError):
            presets_from_config(config)
