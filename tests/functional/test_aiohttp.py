#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import asyncio
import json
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from aiohttp import test_utils, web

from aws_async_core.aio.aiohttp import AIOHTTPClient
from aws_async_core.aio.utils import async_list
from aws_async_core.exceptions import TransportError
from aws_async_core.http import (
    URI,
    Field,
    Fields,
    HTTPRequest,
    HTTPRequestConfiguration,
)

Server = test_utils.TestServer


async def echo(request: web.Request) -> web.Response:
    return web.json_response(
        {
            "method": request.method,
            "path_qs": request.path_qs,
            "x-test": request.headers.get("X-Test"),
            "body": (await request.read()).decode(),
        },
        headers={"x-amzn-requestid": "req-1"},
    )


async def slow(request: web.Request) -> web.Response:
    await asyncio.sleep(5)
    return web.Response(text="late")


async def large(request: web.Request) -> web.Response:
    return web.Response(body=b"x" * 200_000)


@pytest_asyncio.fixture
async def server() -> AsyncIterator[Server]:
    app = web.Application()
    app.router.add_route("*", "/echo", echo)
    app.router.add_get("/slow", slow)
    app.router.add_get("/large", large)
    async with test_utils.TestServer(app) as test_server:
        yield test_server


@pytest_asyncio.fixture
async def client() -> AsyncIterator[AIOHTTPClient]:
    http_client = AIOHTTPClient()
    yield http_client
    await http_client.close()


def _request(
    server: Server, path: str, method: str = "GET", **kwargs: object
) -> HTTPRequest:
    return HTTPRequest(
        destination=URI(
            scheme="http",
            host=server.host,
            port=server.port,
            path=path,
            query=kwargs.pop("query", None),  # type: ignore[arg-type]
        ),
        method=method,
        fields=kwargs.pop("fields", Fields()),  # type: ignore[arg-type]
        body=kwargs.pop("body", b""),  # type: ignore[arg-type]
    )


@pytest.mark.asyncio
async def test_send_get(server: Server, client: AIOHTTPClient) -> None:
    request = _request(
        server,
        "/echo",
        query="a=1&b=x%2Fy",
        fields=Fields([Field(name="X-Test", values=["yes"])]),
    )

    response = await client.send(request)

    assert response.status == 200
    assert response.reason == "OK"
    assert response.fields.get_value("x-amzn-requestid") == "req-1"
    body = json.loads(await response.consume_body_async())
    assert body == {
        "method": "GET",
        "path_qs": "/echo?a=1&b=x%2Fy",
        "x-test": "yes",
        "body": "",
    }


@pytest.mark.asyncio
async def test_send_bytes_body(server: Server, client: AIOHTTPClient) -> None:
    response = await client.send(
        _request(server, "/echo", "POST", body=b"Action=ListQueues")
    )
    body = json.loads(await response.consume_body_async())
    assert body["method"] == "POST"
    assert body["body"] == "Action=ListQueues"


@pytest.mark.asyncio
async def test_send_streamed_body(server: Server, client: AIOHTTPClient) -> None:
    response = await client.send(
        _request(server, "/echo", "PUT", body=async_list([b"chunk-1;", b"chunk-2"]))
    )
    body = json.loads(await response.consume_body_async())
    assert body["body"] == "chunk-1;chunk-2"


@pytest.mark.asyncio
async def test_response_body_streams_in_chunks(
    server: Server, client: AIOHTTPClient
) -> None:
    response = await client.send(_request(server, "/large"))

    received = b""
    while chunk := await response.body.read(64 * 1024):  # type: ignore[union-attr]
        received += chunk
    await response.close()

    assert received == b"x" * 200_000


@pytest.mark.asyncio
async def test_attempt_timeout(server: Server, client: AIOHTTPClient) -> None:
    with pytest.raises(TransportError) as e:
        await client.send(
            _request(server, "/slow"),
            request_config=HTTPRequestConfiguration(timeout=0.05),
        )
    assert isinstance(e.value.__cause__, TimeoutError)
    assert e.value.is_retry_safe


@pytest.mark.asyncio
async def test_connection_refused(client: AIOHTTPClient) -> None:
    app = web.Application()
    async with test_utils.TestServer(app) as closed_server:
        request = _request(closed_server, "/echo")

    with pytest.raises(TransportError, match="Failed to send request"):
        await client.send(request)


@pytest.mark.asyncio
async def test_close_is_idempotent(server: Server) -> None:
    http_client = AIOHTTPClient()
    response = await http_client.send(_request(server, "/echo"))
    await response.consume_body_async()

    await http_client.close()
    await http_client.close()
