#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
from collections.abc import AsyncIterable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..http import HTTPRequest, HTTPRequestConfiguration, HTTPResponse


@runtime_checkable
class AsyncByteStream(Protocol):
    """A file-like object with an async read method."""

    async def read(self, size: int = -1) -> bytes: ...


# A union of all acceptable streaming blob types.
type StreamingBlob = bytes | bytearray | AsyncByteStream | AsyncIterable[bytes]


class HTTPClient(Protocol):
    """An asynchronous HTTP client interface.

    Implementations send exactly one request per call and never retry.
    """

    async def send(
        self,
        request: "HTTPRequest",
        *,
        request_config: "HTTPRequestConfiguration | None" = None,
    ) -> "HTTPResponse":
        """Send HTTP request over the wire and return the response.

        The response body may still be streaming from the connection. Callers must
        read it to the end or close it.

        :param request: The request including destination URI, fields, payload.
        :param request_config: Configuration specific to this request.
        :raises TransportError: If the request could not be sent or the response
            could not be received.
        """
        ...

    async def close(self) -> None:
        """Release all pooled connections."""
        ...
