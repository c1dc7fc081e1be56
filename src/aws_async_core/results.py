#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import asyncio
import logging
from collections.abc import Awaitable, Callable, Generator
from dataclasses import dataclass
from enum import Enum
from typing import Any, Self

from .aio.types import StreamingBody
from .exceptions import TransportError
from .http import Fields
from .protocols import ParsedResponse
from .shapes import OperationShape

_LOGGER = logging.getLogger(__name__)

type Execute = Callable[[], Awaitable[ParsedResponse]]


class ResultState(Enum):
    PENDING = "pending"
    """The call hasn't been made yet."""

    EXECUTING = "executing"
    """The call is in flight."""

    HYDRATED = "hydrated"
    """The call succeeded and its output is cached."""

    FAILED = "failed"
    """The call failed and its error is cached."""


@dataclass(kw_only=True, frozen=True)
class ResponseInfo:
    """HTTP metadata of a hydrated result."""

    status: int
    fields: Fields
    request_id: str | None


class Result:
    """The deferred output of an operation call.

    Nothing is sent until the result is first accessed. The first access makes the
    call, and every later access returns the cached output or re-raises the cached
    error. Concurrent accessors share the single call.

    .. code-block:: python

        result = client.call(DELETE_QUEUE, QueueUrl=url)
        await result  # sends the request
        await result.get("ResponseMetadata")  # cached
    """

    def __init__(self, execute: Execute, *, operation: OperationShape) -> None:
        """Initialize a Result.

        :param execute: Makes the call. It's invoked at most once.
        :param operation: The operation being called.
        """
        self._execute = execute
        self.operation = operation
        self._state = ResultState.PENDING
        self._task: asyncio.Task[None] | None = None
        self._response: ParsedResponse | None = None
        self._error: BaseException | None = None
        self._waiters = 0

    @property
    def state(self) -> ResultState:
        return self._state

    def start(self) -> None:
        """Start the call in the background if it hasn't been made yet."""
        if self._state is ResultState.PENDING:
            _LOGGER.debug("Executing %s", self.operation.name)
            self._state = ResultState.EXECUTING
            self._task = asyncio.create_task(self._hydrate())
            self._task.add_done_callback(self._task_done)

    def _task_done(self, task: "asyncio.Task[None]") -> None:
        # A task cancelled before it started never ran _hydrate.
        if task.cancelled() and self._state is not ResultState.FAILED:
            self._fail(self._cancelled_error())

    async def _hydrate(self) -> None:
        try:
            self._response = await self._execute()
        except asyncio.CancelledError as e:
            self._fail(self._cancelled_error(), cause=e)
            raise
        except Exception as e:
            self._fail(e)
        else:
            self._state = ResultState.HYDRATED

    def _fail(self, error: BaseException, cause: BaseException | None = None) -> None:
        if cause is not None:
            error.__cause__ = cause
        _LOGGER.debug("%s failed: %s", self.operation.name, error)
        self._error = error
        self._state = ResultState.FAILED

    def _cancelled_error(self) -> TransportError:
        return TransportError(
            f"{self.operation.name} was cancelled",
            operation=self.operation.name,
            is_retry_safe=False,
        )

    async def resolve(self) -> Self:
        """Make the call if needed and wait for it to complete.

        :raises AsyncAwsError: The cached error of a failed call.
        """
        self.start()
        if (task := self._task) is not None and not task.done():
            self._waiters += 1
            try:
                await asyncio.shield(task)
            except asyncio.CancelledError:
                current = asyncio.current_task()
                if current is not None and current.cancelling():
                    # The last waiter takes the abandoned call down with it.
                    if self._waiters == 1:
                        task.cancel()
                    raise
            finally:
                self._waiters -= 1

        if self._task is not None and self._task.done():
            self._task_done(self._task)
        if self._state is ResultState.FAILED:
            assert self._error is not None
            raise self._error
        return self

    def __await__(self) -> Generator[Any, None, Self]:
        return self.resolve().__await__()

    def cancel(self) -> None:
        """Abort the call if it is pending or in flight.

        A cancelled result fails with a :py:class:`TransportError`.
        """
        match self._state:
            case ResultState.PENDING:
                self._fail(self._cancelled_error())
            case ResultState.EXECUTING:
                assert self._task is not None
                self._task.cancel()

    async def close(self) -> None:
        """Cancel the call or release the streamed payload of its output."""
        self.cancel()
        if self._response is not None:
            for value in self._response.output.values():
                if isinstance(value, StreamingBody):
                    await value.close()

    async def get(self, name: str, default: Any = None) -> Any:
        """Get an output member, making the call if needed."""
        await self.resolve()
        assert self._response is not None
        return self._response.output.get(name, default)

    async def as_dict(self) -> dict[str, Any]:
        """Get a copy of the whole output, making the call if needed."""
        await self.resolve()
        assert self._response is not None
        return dict(self._response.output)

    async def info(self) -> ResponseInfo:
        """Get the HTTP metadata of the response, making the call if needed."""
        await self.resolve()
        assert self._response is not None
        return ResponseInfo(
            status=self._response.status,
            fields=self._response.fields,
            request_id=self._response.request_id,
        )

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(operation={self.operation.name!r}, "
            f"state={self._state.value!r})"
        )
