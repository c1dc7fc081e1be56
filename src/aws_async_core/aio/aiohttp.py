#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import asyncio
import logging
from collections.abc import AsyncIterator
from copy import copy
from inspect import isawaitable
from itertools import chain
from typing import Any

import aiohttp
from yarl import URL

from ..exceptions import TransportError
from ..http import Field, Fields, HTTPRequest, HTTPRequestConfiguration, HTTPResponse
from .interfaces import AsyncByteStream, HTTPClient, StreamingBlob

_LOGGER = logging.getLogger(__name__)

_TRANSPORT_EXCEPTIONS = (aiohttp.ClientError, OSError, TimeoutError)


class AIOHTTPClient(HTTPClient):
    """Implementation of :py:class:`.interfaces.HTTPClient` using aiohttp.

    Each call to :py:meth:`send` performs exactly one attempt. The returned response
    body streams from the connection, which goes back to the pool once the body has
    been read to the end or closed.
    """

    def __init__(
        self,
        *,
        limit: int = 100,
        _session: aiohttp.ClientSession | None = None,
    ) -> None:
        """
        :param limit: The maximum number of pooled connections.
        """
        self._limit = limit
        self._session = _session

    def _get_session(self) -> aiohttp.ClientSession:
        # The session binds to the running loop, so it's created on first use.
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                connector=aiohttp.TCPConnector(limit=self._limit),
                auto_decompress=False,
            )
        return self._session

    async def send(
        self,
        request: HTTPRequest,
        *,
        request_config: HTTPRequestConfiguration | None = None,
    ) -> HTTPResponse:
        """Send HTTP request using aiohttp client.

        :param request: The request including destination URI, fields, payload.
        :param request_config: Configuration specific to this request.
        :raises TransportError: If the attempt failed or timed out before the response
            headers were received.
        """
        request_config = request_config or HTTPRequestConfiguration()
        headers_list = list(
            chain.from_iterable(fld.as_tuples() for fld in request.fields)
        )

        # The query string was signed exactly as built, so it must not be re-encoded.
        url = URL(request.destination.build(), encoded=True)
        timeout = aiohttp.ClientTimeout(
            total=None,
            sock_connect=request_config.timeout,
            sock_read=request_config.read_timeout,
        )

        session = self._get_session()
        try:
            async with asyncio.timeout(request_config.timeout):
                resp = await session.request(
                    method=request.method,
                    url=url,
                    headers=headers_list,
                    data=_marshal_body(request.body),
                    timeout=timeout,
                    skip_auto_headers=("Content-Type",),
                )
        except _TRANSPORT_EXCEPTIONS as e:
            _LOGGER.debug("HTTP %s %s failed: %r", request.method, url, e)
            raise TransportError(f"Failed to send request to {url.host}: {e!r}") from e

        return self._marshal_response(resp)

    def _marshal_response(self, aiohttp_resp: aiohttp.ClientResponse) -> HTTPResponse:
        """Convert a ``aiohttp.ClientResponse`` to a ``HTTPResponse``."""
        headers = Fields()
        for header_name, header_val in aiohttp_resp.headers.items():
            try:
                headers[header_name].add(header_val)
            except KeyError:
                headers[header_name] = Field(name=header_name, values=[header_val])

        return HTTPResponse(
            status=aiohttp_resp.status,
            fields=headers,
            body=_AIOHTTPResponseBody(aiohttp_resp),
            reason=aiohttp_resp.reason,
        )

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()

    def __deepcopy__(self, memo: Any) -> "AIOHTTPClient":
        return AIOHTTPClient(limit=self._limit, _session=copy(self._session))


def _marshal_body(body: StreamingBlob) -> Any:
    match body:
        case bytes() | bytearray():
            return bytes(body) if body else None
        case AsyncByteStream():
            return _iter_byte_stream(body)
        case _:
            return body


async def _iter_byte_stream(
    stream: AsyncByteStream, chunk_size: int = 64 * 1024
) -> AsyncIterator[bytes]:
    while chunk := await stream.read(chunk_size):
        yield chunk


class _AIOHTTPResponseBody:
    """A streamed response body that releases its connection when closed.

    Reading to the end returns the connection to the pool; closing early drops it.
    """

    def __init__(self, resp: aiohttp.ClientResponse) -> None:
        self._resp = resp
        self._done = False

    async def read(self, size: int = -1) -> bytes:
        try:
            if size < 0:
                data = await self._resp.content.read()
                self._done = True
            else:
                data = await self._resp.content.read(size)
                self._done = not data
        except _TRANSPORT_EXCEPTIONS as e:
            self._resp.close()
            raise TransportError(f"Failed to read response body: {e!r}") from e
        return data

    async def close(self) -> None:
        if self._done:
            # Older aiohttp releases return an awaitable here.
            if isawaitable(released := self._resp.release()):
                await released
        else:
            self._resp.close()
