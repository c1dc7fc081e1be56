#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import random
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from .exceptions import (
    CallError,
    ClientError,
    RetryError,
    ServerError,
    ServiceError,
    ThrottlingError,
)

THROTTLING_ERROR_CODES = frozenset(
    (
        "Throttling",
        "ThrottlingException",
        "ThrottledException",
        "TooManyRequestsException",
        "RequestLimitExceeded",
        "SlowDown",
        "ProvisionedThroughputExceededException",
        "RequestThrottled",
        "RequestThrottledException",
        "BandwidthLimitExceeded",
        "PriorRequestNotComplete",
        "EC2ThrottledException",
        "LimitExceededException",
        "TransactionInProgressException",
    )
)


def service_error_class(status: int, code: str | None) -> type[ServiceError]:
    """Pick the error type for a service error response.

    Throttling is recognized by status 429 or by a throttling error code, server
    faults by a 5xx status. Everything else is a client fault.
    """
    if status == 429 or (code is not None and code in THROTTLING_ERROR_CODES):
        return ThrottlingError
    if status >= 500:
        return ServerError
    return ClientError


class ExponentialBackoffJitterType(Enum):
    """Jitter mode for exponential backoff.

    For use with :py:class:`ExponentialRetryBackoffStrategy`.
    """

    DEFAULT = 1
    """Truncated binary exponential backoff delay with equal jitter:

    .. code-block:: python

        capped = min(max_backoff, backoff_scale_value * 2 ** (retry_attempt - 1))
        (capped / 2) + random_between(0, capped / 2)

    Also known as "Equal Jitter". Similar to :py:var:`FULL` but always keep some of the
    backoff and jitters by a smaller amount.
    """

    NONE = 2
    """Truncated binary exponential backoff delay without jitter:

    .. code-block:: python

        min(max_backoff, backoff_scale_value * 2 ** (retry_attempt - 1))
    """

    FULL = 3
    """Truncated binary exponential backoff delay with full jitter:

    .. code-block:: python

        capped = min(max_backoff, backoff_scale_value * 2 ** (retry_attempt - 1))
        random_between(0, capped)
    """

    DECORRELATED = 4
    """Truncated binary exponential backoff delay with decorrelated jitter:

    .. code-block:: python

        min(max_backoff, random_between(backoff_scale_value, t_(i-1) * 3))

    Similar to :py:var:`FULL`, but also increases the maximum jitter at each retry.
    """


class RetryBackoffStrategy(Protocol):
    """Strategy for computing retry delays based on the retry attempt count."""

    def compute_next_backoff_delay(self, retry_attempt: int) -> float: ...


class ExponentialRetryBackoffStrategy(RetryBackoffStrategy):
    def __init__(
        self,
        *,
        backoff_scale_value: float = 0.1,
        max_backoff: float = 20,
        jitter_type: ExponentialBackoffJitterType = ExponentialBackoffJitterType.DEFAULT,
        random: Callable[[], float] = random.random,
    ):
        """Exponential backoff with optional jitter.

        .. seealso:: https://aws.amazon.com/blogs/architecture/exponential-backoff-and-jitter/

        :param backoff_scale_value: Factor that linearly adjusts returned backoff delay
            values. See the methods ``_next_delay_*`` for the formula used to calculate
            the delay for each jitter type.
        :param max_backoff: Upper limit for backoff delay values returned, in seconds.
        :param jitter_type: Determines the formula used to apply jitter to the backoff
            delay.
        :param random: A callable that returns random numbers between ``0`` and ``1``.
        """
        self._backoff_scale_value = backoff_scale_value
        self._max_backoff = max_backoff
        self._jitter_type = jitter_type
        self._random = random
        self._previous_delay_seconds = self._backoff_scale_value

    def compute_next_backoff_delay(self, retry_attempt: int) -> float:
        """Calculate timespan in seconds to delay before next retry.

        :param retry_attempt: The index of the retry attempt that is about to be made
            after the delay. The initial attempt, before any retries, is index ``0``,
            and will return a delay of ``0``.
        """
        if retry_attempt == 0:
            return 0

        match self._jitter_type:
            case ExponentialBackoffJitterType.NONE:
                seconds = self._next_delay_no_jitter(retry_attempt=retry_attempt)
            case ExponentialBackoffJitterType.DEFAULT:
                seconds = self._next_delay_equal_jitter(retry_attempt=retry_attempt)
            case ExponentialBackoffJitterType.FULL:
                seconds = self._next_delay_full_jitter(retry_attempt=retry_attempt)
            case ExponentialBackoffJitterType.DECORRELATED:
                seconds = self._next_delay_decorrelated_jitter(
                    previous_delay=self._previous_delay_seconds
                )

        self._previous_delay_seconds = seconds
        return seconds

    def _jitter_free_uncapped_delay(self, retry_attempt: int) -> float:
        return self._backoff_scale_value * (2.0 ** (retry_attempt - 1))

    def _next_delay_no_jitter(self, retry_attempt: int) -> float:
        no_jitter_delay = self._jitter_free_uncapped_delay(retry_attempt)
        return min(no_jitter_delay, self._max_backoff)

    def _next_delay_full_jitter(self, retry_attempt: int) -> float:
        no_jitter_delay = self._jitter_free_uncapped_delay(retry_attempt)
        return self._random() * min(no_jitter_delay, self._max_backoff)

    def _next_delay_equal_jitter(self, retry_attempt: int) -> float:
        no_jitter_delay = self._jitter_free_uncapped_delay(retry_attempt)
        return (self._random() * 0.5 + 0.5) * min(no_jitter_delay, self._max_backoff)

    def _next_delay_decorrelated_jitter(self, previous_delay: float) -> float:
        return min(
            self._backoff_scale_value + self._random() * previous_delay * 3,
            self._max_backoff,
        )


@dataclass(kw_only=True)
class SimpleRetryToken:
    """Retry token that stores the attempt count and the delay before the next one.

    Retry tokens should always be obtained from a :py:class:`RetryStrategy`.
    """

    retry_count: int
    """Retry count is the total number of attempts minus the initial attempt."""

    retry_delay: float
    """Delay in seconds to wait before the retry attempt."""

    @property
    def attempt_count(self) -> int:
        """The total number of attempts including the initial attempt and retries."""
        return self.retry_count + 1


class RetryStrategy(Protocol):
    """Issuer of :py:class:`SimpleRetryToken`s."""

    max_attempts: int

    def acquire_initial_retry_token(self) -> SimpleRetryToken: ...

    def refresh_retry_token_for_retry(
        self, *, token_to_renew: SimpleRetryToken, error: Exception
    ) -> SimpleRetryToken: ...

    def record_success(self, *, token: SimpleRetryToken) -> None: ...


class RetryPolicy(RetryStrategy):
    def __init__(
        self,
        *,
        backoff_strategy: RetryBackoffStrategy | None = None,
        throttling_backoff_strategy: RetryBackoffStrategy | None = None,
        max_attempts: int = 3,
    ):
        """Retry strategy that classifies failures and backs off exponentially.

        Transport failures, server faults and throttling errors are retried. Client
        faults and errors raised before a request was sent are not. Throttling errors
        back off from a larger base delay.

        :param backoff_strategy: The backoff strategy used for retryable errors.
            Defaults to :py:class:`ExponentialRetryBackoffStrategy`.
        :param throttling_backoff_strategy: The backoff strategy used for throttling
            errors.
        :param max_attempts: Upper limit on total number of attempts made, including
            initial attempt and retries.
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        self.backoff_strategy = backoff_strategy or ExponentialRetryBackoffStrategy()
        self.throttling_backoff_strategy = (
            throttling_backoff_strategy
            or ExponentialRetryBackoffStrategy(backoff_scale_value=0.5)
        )
        self.max_attempts = max_attempts

    @staticmethod
    def is_retryable(error: Exception) -> bool:
        """Whether the error may be retried."""
        return isinstance(error, CallError) and bool(error.is_retry_safe)

    def acquire_initial_retry_token(self) -> SimpleRetryToken:
        """Called before any retries (for the first attempt at the operation)."""
        retry_delay = self.backoff_strategy.compute_next_backoff_delay(0)
        return SimpleRetryToken(retry_count=0, retry_delay=retry_delay)

    def refresh_retry_token_for_retry(
        self,
        *,
        token_to_renew: SimpleRetryToken,
        error: Exception,
    ) -> SimpleRetryToken:
        """Replace an existing retry token from a failed attempt with a new token.

        :param token_to_renew: The token used for the previous failed attempt.
        :param error: The error that triggered the need for a retry.
        :raises RetryError: If the error isn't retryable or no further retry attempts
            are allowed.
        """
        if not self.is_retryable(error):
            raise RetryError(f"Error is not retryable: {error}")

        retry_count = token_to_renew.retry_count + 1
        if retry_count >= self.max_attempts:
            raise RetryError(
                f"Reached maximum number of allowed attempts: {self.max_attempts}"
            )

        if isinstance(error, CallError) and error.is_throttling_error:
            strategy = self.throttling_backoff_strategy
        else:
            strategy = self.backoff_strategy
        retry_delay = strategy.compute_next_backoff_delay(retry_count)
        if isinstance(error, CallError) and error.retry_after is not None:
            retry_delay = max(retry_delay, error.retry_after)
        return SimpleRetryToken(retry_count=retry_count, retry_delay=retry_delay)

    def record_success(self, *, token: SimpleRetryToken) -> None:
        """Not used by this retry strategy."""
        pass
