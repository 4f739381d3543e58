"""Retry policy engine using tenacity.

This module provides the retry policy value object, the data-driven
classification of retryable failures, the named presets used for every
external call, and the async retry runner built on ``tenacity.AsyncRetrying``.
"""

from __future__ import annotations

import asyncio
import dataclasses
import functools
import logging
import random
import socket
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Optional, Tuple, TypeVar

import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt
from tenacity.wait import wait_base

from printpay.domain.config.retry import RetryPresetsConfig
from printpay.domain.errors import ConfigurationError, ExternalServiceError, FailureKind

logger = logging.getLogger(__name__)

T = TypeVar("T")

JITTER_RATIO = 0.25


@dataclass(frozen=True)
class FailureDescription:
    kind: FailureKind
    status_code: Optional[int] = None


def describe_failure(exception: BaseException) -> FailureDescription:
    """Map an exception onto a structured failure description."""
    if isinstance(exception, ExternalServiceError):
        return FailureDescription(exception.kind, exception.status_code)
    if isinstance(exception, httpx.HTTPStatusError):
        return FailureDescription(FailureKind.HTTP, exception.response.status_code)
    if isinstance(exception, (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)):
        return FailureDescription(FailureKind.TIMEOUT)
    if isinstance(exception, (httpx.RemoteProtocolError, httpx.ReadError, ConnectionResetError)):
        return FailureDescription(FailureKind.CONNECTION_RESET)
    if isinstance(exception, socket.gaierror):
        return FailureDescription(FailureKind.DNS)
    if isinstance(exception, (httpx.TransportError, ConnectionError)):
        return FailureDescription(FailureKind.NETWORK)
    return FailureDescription(FailureKind.UNKNOWN)


@dataclass(frozen=True)
class RetryClassification:
    """Table of which failures are worth retrying.

    Instances are callables and can be used directly as a retry predicate.
    """

    retryable_kinds: FrozenSet[FailureKind]
    retryable_statuses: FrozenSet[int] = frozenset()
    retryable_status_ranges: Tuple[range, ...] = ()

    def is_retryable(self, failure: FailureDescription) -> bool:
        if failure.status_code is not None:
            if failure.status_code in self.retryable_statuses:
                return True
            return any(failure.status_code in r for r in self.retryable_status_ranges)
        return failure.kind in self.retryable_kinds

    def __call__(self, exception: BaseException) -> bool:
        return self.is_retryable(describe_failure(exception))


TRANSIENT_KINDS = frozenset(
    {FailureKind.TIMEOUT, FailureKind.NETWORK, FailureKind.CONNECTION_RESET, FailureKind.DNS}
)

# Transient transport failures, any 5xx and 429; other 4xx are never retried
DEFAULT_CLASSIFICATION = RetryClassification(
    retryable_kinds=TRANSIENT_KINDS,
    retryable_statuses=frozenset({429}),
    retryable_status_ranges=(range(500, 600),),
)


@dataclass(frozen=True)
class RetryPolicy:
    """Immutable retry configuration.

    Attributes:
        max_attempts: Maximum number of attempts (1 = no retries)
        initial_delay: Delay before the second attempt, in seconds
        max_delay: Upper bound on the un-jittered delay, in seconds
        backoff_multiplier: Exponential backoff multiplier (> 1)
        jitter: Perturb each delay uniformly by up to +/-25%
        retry_predicate: Decides whether a failure is worth retrying
    """

    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0
    jitter: bool = True
    retry_predicate: Callable[[BaseException], bool] = field(
        default=DEFAULT_CLASSIFICATION, compare=False, repr=False
    )

    def __post_init__(self):
        if not isinstance(self.max_attempts, int) or self.max_attempts < 1:
            raise ConfigurationError("max_attempts must be a positive integer")
        if self.initial_delay <= 0 or self.max_delay <= 0:
            raise ConfigurationError("retry delays must be positive")
        if self.initial_delay > self.max_delay:
            raise ConfigurationError("initial_delay must not exceed max_delay")
        if self.backoff_multiplier <= 1:
            raise ConfigurationError("backoff_multiplier must be greater than 1")

    def delay_for(self, failed_attempt: int) -> float:
        """Un-jittered delay after the given (1-based) failed attempt."""
        exponential = self.initial_delay * self.backoff_multiplier ** (failed_attempt - 1)
        return min(exponential, self.max_delay)

    def should_retry(self, exception: BaseException) -> bool:
        return bool(self.retry_predicate(exception))

    def replace(self, **changes: Any) -> "RetryPolicy":
        return dataclasses.replace(self, **changes)


def compute_delay(
    policy: RetryPolicy, failed_attempt: int, rng: Callable[[float, float], float] = random.uniform
) -> float:
    """Delay before the next attempt, with jitter applied when enabled."""
    delay = policy.delay_for(failed_attempt)
    if policy.jitter:
        delay += rng(-JITTER_RATIO, JITTER_RATIO) * delay
    return delay


class wait_policy_backoff(wait_base):
    """tenacity wait strategy implementing a RetryPolicy's backoff."""

    def __init__(self, policy: RetryPolicy):
        self.policy = policy

    def __call__(self, retry_state: RetryCallState) -> float:
        return compute_delay(self.policy, retry_state.attempt_number)


class RetryPresets:
    """Named policies for the kinds of external calls we make."""

    # Fast operations like API calls
    API_CALL = RetryPolicy(
        max_attempts=3, initial_delay=0.5, max_delay=5.0, backoff_multiplier=2.0, jitter=True
    )
    # Image generation (slow, rate limited)
    IMAGE_GENERATION = RetryPolicy(
        max_attempts=3, initial_delay=2.0, max_delay=30.0, backoff_multiplier=2.0, jitter=True
    )
    # Printify operations; 4xx other than 429 are validation errors
    FULFILLMENT_OPERATION = RetryPolicy(
        max_attempts=4, initial_delay=1.5, max_delay=20.0, backoff_multiplier=1.8, jitter=True
    )
    # Whole workflows (fewer attempts, longer delays)
    WORKFLOW = RetryPolicy(
        max_attempts=2, initial_delay=5.0, max_delay=60.0, backoff_multiplier=2.0, jitter=True
    )

    @classmethod
    def as_dict(cls) -> Dict[str, RetryPolicy]:
        return {
            "api_call": cls.API_CALL,
            "image_generation": cls.IMAGE_GENERATION,
            "fulfillment_operation": cls.FULFILLMENT_OPERATION,
            "workflow": cls.WORKFLOW,
        }


def presets_from_config(config: Optional[RetryPresetsConfig] = None) -> Dict[str, RetryPolicy]:
    """Apply configured overrides on top of the built-in presets.

    Raises:
        ConfigurationError: If an override produces an invalid policy
    """
    presets = RetryPresets.as_dict()
    if config is None:
        return presets
    resolved = {}
    for name, policy in presets.items():
        overrides = getattr(config, name).overrides()
        resolved[name] = policy.replace(**overrides) if overrides else policy
    return resolved


def _log_before_sleep(label: str, policy: RetryPolicy) -> Callable[[RetryCallState], None]:
    def _before_sleep(retry_state: RetryCallState) -> None:
        if retry_state.outcome is None or retry_state.next_action is None:
            return
        exception = retry_state.outcome.exception()
        logger.warning(
            f"[Retry] {label} failed on attempt {retry_state.attempt_number}/{policy.max_attempts}, "
            f"retrying in {retry_state.next_action.sleep:.2f}s: {exception}"
        )

    return _before_sleep


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy = RetryPresets.API_CALL,
    label: Optional[str] = None,
    *,
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> T:
    """Run an async operation under a retry policy.

    Args:
        operation: Zero-argument coroutine function to run
        policy: Retry policy
        label: Name used in log messages
        sleep: Coroutine used for backoff waits (defaults to asyncio.sleep)

    Returns:
        The result of the first successful attempt

    Raises:
        The last failure, when attempts are exhausted or the failure is not retryable
    """
    name = label or "Operation"
    attempts = 0

    async def _attempt() -> T:
        nonlocal attempts
        attempts += 1
        return await operation()

    retryer = AsyncRetrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_policy_backoff(policy),
        retry=retry_if_exception(policy.should_retry),
        reraise=True,
        before_sleep=_log_before_sleep(name, policy),
        sleep=sleep or asyncio.sleep,
    )

    try:
        result = await retryer(_attempt)
    except Exception as e:
        if policy.should_retry(e):
            logger.error(f"[Retry] {name} failed after {attempts} attempts: {e}")
        else:
            logger.info(f"[Retry] {name} failed with non-retryable error: {e}")
        raise

    if attempts > 1:
        logger.info(f"[Retry] {name} succeeded on attempt {attempts}")
    return result


def retrying(policy: RetryPolicy, label: Optional[str] = None) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Decorator form of :func:`with_retry` for coroutine functions."""

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapped(*args: Any, **kwargs: Any) -> T:
            return await with_retry(lambda: func(*args, **kwargs), policy, label or func.__qualname__)

        return wrapped

    return decorator
