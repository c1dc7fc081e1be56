#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0

import asyncio
from collections import deque
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any

from ..aio.interfaces import HTTPClient
from ..aio.utils import async_list
from ..http import HTTPRequest, HTTPRequestConfiguration, HTTPResponse, tuples_to_fields


@dataclass(kw_only=True)
class _QueuedResponse:
    status: int = 200
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: bytes = b""
    delay: float = 0.0
    error: Exception | None = None


class MockHTTPClient(HTTPClient):
    """Implementation of :py:class:`.interfaces.HTTPClient` solely for testing purposes.

    Simulates HTTP request/response behavior. Responses are queued in FIFO order and
    requests are captured for inspection with their bodies read into bytes.
    """

    def __init__(self) -> None:
        self._response_queue: deque[_QueuedResponse] = deque()
        self._captured_requests: list[HTTPRequest] = []
        self.cancelled_count = 0
        self.closed = False

    def add_response(
        self,
        status: int = 200,
        headers: list[tuple[str, str]] | None = None,
        body: bytes = b"",
        *,
        delay: float = 0.0,
    ) -> None:
        """Queue a response for the next request.

        :param status: HTTP status code.
        :param headers: HTTP response headers as list of (name, value) tuples.
        :param body: Response body as bytes.
        :param delay: Seconds to wait before the response is returned.
        """
        self._response_queue.append(
            _QueuedResponse(
                status=status, headers=headers or [], body=body, delay=delay
            )
        )

    def add_error(self, error: Exception, *, delay: float = 0.0) -> None:
        """Queue an exception to be raised by the next request."""
        self._response_queue.append(_QueuedResponse(error=error, delay=delay))

    async def send(
        self,
        request: HTTPRequest,
        *,
        request_config: HTTPRequestConfiguration | None = None,
    ) -> HTTPResponse:
        """Send HTTP request and return configured response.

        :param request: The request including destination URI, fields, payload.
        :param request_config: Configuration specific to this request.
        :returns: Pre-configured HTTP response from the queue.
        :raises MockHTTPClientError: If no responses are queued.
        """
        self._captured_requests.append(
            HTTPRequest(
                destination=request.destination,
                method=request.method,
                fields=deepcopy(request.fields),
                body=await request.consume_body_async(),
            )
        )

        if not self._response_queue:
            raise MockHTTPClientError(
                "No responses queued in MockHTTPClient. "
                "Use add_response() to queue responses."
            )

        queued = self._response_queue.popleft()
        if queued.delay:
            try:
                await asyncio.sleep(queued.delay)
            except asyncio.CancelledError:
                self.cancelled_count += 1
                raise

        if queued.error is not None:
            raise queued.error

        return HTTPResponse(
            status=queued.status,
            fields=tuples_to_fields(queued.headers),
            body=async_list([queued.body]),
            reason=None,
        )

    async def close(self) -> None:
        self.closed = True

    @property
    def call_count(self) -> int:
        """The number of requests made to this client."""
        return len(self._captured_requests)

    @property
    def captured_requests(self) -> list[HTTPRequest]:
        """The list of all requests captured by this client."""
        return self._captured_requests.copy()

    def __deepcopy__(self, memo: Any) -> "MockHTTPClient":
        return self


class MockHTTPClientError(Exception):
    """Exception raised by MockHTTPClient for test setup issues."""
