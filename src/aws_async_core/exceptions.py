#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
from dataclasses import dataclass, field
from typing import Any, Literal


class AsyncAwsError(Exception):
    """Base exception type for all exceptions raised by aws-async-core."""


type Fault = Literal["client", "server"] | None
"""Whether the client or server is at fault.

If None, then there was not enough information to determine fault.
"""


class ConfigurationError(AsyncAwsError):
    """Raised when a configuration option is unknown or malformed."""


class SerializationError(AsyncAwsError):
    """Base exception type for exceptions raised during serialization."""


class MissingParameterError(SerializationError):
    """Raised when a required input member is not set."""

    def __init__(self, member: str, shape: str) -> None:
        self.member = member
        self.shape = shape
        super().__init__(
            f'Missing parameter "{member}" for "{shape}". The value cannot be null.'
        )


class PaginationError(AsyncAwsError):
    """Raised when a paginated operation returns an invalid or looping token."""


class RetryError(AsyncAwsError):
    """Raised by retry strategies when no further attempt is allowed."""


@dataclass(kw_only=True)
class CallError(AsyncAwsError):
    """Base exception for errors surfaced by an operation call.

    Carries the diagnostic context of the call and the retry classification used by
    :py:class:`aws_async_core.retries.RetryPolicy`.
    """

    message: str = field(default="", kw_only=False)
    """The message of the error."""

    fault: Fault = None
    """Whether the client or server is at fault."""

    operation: str | None = None
    """The name of the operation that failed."""

    status: int | None = None
    """The HTTP status code of the response, if one was received."""

    request_id: str | None = None
    """The request id returned by the service, if any."""

    is_retry_safe: bool | None = None
    """Whether the error is safe to retry.

    A value of True does not mean a retry will occur, but rather that a retry is allowed
    to occur. A value of None indicates there is not enough information available.
    """

    retry_after: float | None = None
    """The amount of time that should pass before a retry."""

    is_throttling_error: bool = False
    """Whether the error is a throttling error."""

    attempts: int = 1
    """How many attempts were made before the error surfaced."""

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        details = []
        if self.operation is not None:
            details.append(f"operation={self.operation}")
        if self.status is not None:
            details.append(f"status={self.status}")
        if self.request_id is not None:
            details.append(f"request_id={self.request_id}")
        if not details:
            return self.message
        return f"{self.message} ({', '.join(details)})"


@dataclass(kw_only=True)
class TransportError(CallError):
    """Raised when the request could not be delivered or the response not read."""

    is_retry_safe: bool | None = True


@dataclass(kw_only=True)
class CredentialsNotFoundError(CallError):
    """Raised when no credential provider was able to supply credentials."""

    is_retry_safe: bool | None = False


@dataclass(kw_only=True)
class SigningError(CallError):
    """Raised when a request can't be signed."""

    is_retry_safe: bool | None = False


@dataclass(kw_only=True)
class ProtocolError(CallError):
    """Raised when a response body can't be parsed."""

    is_retry_safe: bool | None = False


@dataclass(kw_only=True)
class ServiceError(CallError):
    """An error response returned by the service."""

    code: str | None = None
    """The service-provided error code or type."""

    fields: dict[str, Any] = field(default_factory=dict)
    """Additional members parsed from the error body."""


@dataclass(kw_only=True)
class ClientError(ServiceError):
    """A 4xx response. Not retried unless it is a throttling error."""

    fault: Fault = "client"
    is_retry_safe: bool | None = False


@dataclass(kw_only=True)
class ServerError(ServiceError):
    """A 5xx response."""

    fault: Fault = "server"
    is_retry_safe: bool | None = True


@dataclass(kw_only=True)
class ThrottlingError(ClientError):
    """A service-signaled rate limit (429 or a throttling error code)."""

    is_retry_safe: bool | None = True
    is_throttling_error: bool = True
