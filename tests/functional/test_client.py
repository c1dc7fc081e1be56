#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import asyncio
import json
import logging
import pathlib
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlsplit

import pytest

from aws_async_core.client import AwsClient
from aws_async_core.exceptions import (
    ConfigurationError,
    CredentialsNotFoundError,
    MissingParameterError,
    ProtocolError,
    ServerError,
    SigningError,
    TransportError,
)
from aws_async_core.identity import Credentials
from aws_async_core.identity.static import StaticCredentialProvider
from aws_async_core.paginators import PaginatedResult
from aws_async_core.results import Result, ResultState
from aws_async_core.testing import MockHTTPClient

from ..services import (
    DELETE_QUEUE,
    GET_OBJECT,
    LIST_OBJECTS_V2,
    LIST_QUEUES,
    QUEUE_URL,
    S3,
    SQS,
    QueueDoesNotExist,
)

QUEUE_DOES_NOT_EXIST = json.dumps(
    {
        "__type": "com.amazonaws.sqs#QueueDoesNotExist",
        "message": "The specified queue does not exist.",
    }
).encode()


@pytest.fixture
def sqs(
    http_client: MockHTTPClient,
    credential_provider: StaticCredentialProvider,
    isolated_config: dict[str, Any],
) -> AwsClient:
    return AwsClient(
        SQS,
        http_client=http_client,
        credential_provider=credential_provider,
        **isolated_config,
    )


@pytest.fixture
def s3(
    http_client: MockHTTPClient,
    credential_provider: StaticCredentialProvider,
    isolated_config: dict[str, Any],
) -> AwsClient:
    return AwsClient(
        S3,
        http_client=http_client,
        credential_provider=credential_provider,
        **isolated_config,
    )


@pytest.fixture
def no_shared_files(tmp_path: pathlib.Path) -> dict[str, str]:
    return {
        "shared_config_file": str(tmp_path / "config"),
        "shared_credentials_file": str(tmp_path / "credentials"),
    }


@pytest.fixture
def no_backoff():
    with patch("aws_async_core.aio.client.sleep", new_callable=AsyncMock) as sleep:
        yield sleep


@pytest.mark.asyncio
async def test_call_sends_signed_request(
    sqs: AwsClient, http_client: MockHTTPClient
) -> None:
    http_client.add_response(headers=[("x-amzn-RequestId", "req-1")])

    result = sqs.call(DELETE_QUEUE, QueueUrl=QUEUE_URL)
    info = await result.info()

    assert info.status == 200
    assert info.request_id == "req-1"
    request = http_client.captured_requests[0]
    assert request.method == "POST"
    assert request.destination.build() == "https://sqs.us-east-1.amazonaws.com/"
    assert request.fields.get_value("X-Amz-Target") == "AmazonSQS.DeleteQueue"
    assert request.fields.get_value("Content-Type") == "application/x-amz-json-1.0"
    assert json.loads(request.body) == {"QueueUrl": QUEUE_URL}  # type: ignore[arg-type]
    authorization = request.fields.get_value("Authorization") or ""
    assert "/us-east-1/sqs/aws4_request" in authorization


@pytest.mark.asyncio
async def test_params_mapping_and_keywords_merge(
    sqs: AwsClient, http_client: MockHTTPClient
) -> None:
    http_client.add_response(body=b"{}")
    await sqs.call(LIST_QUEUES, {"QueueNamePrefix": "a"}, QueueNamePrefix="b")
    body = json.loads(http_client.captured_requests[0].body)  # type: ignore[arg-type]
    assert body == {"QueueNamePrefix": "b"}


@pytest.mark.asyncio
async def test_invalid_input_raises_at_call(
    sqs: AwsClient, http_client: MockHTTPClient
) -> None:
    with pytest.raises(MissingParameterError, match="QueueUrl"):
        sqs.call(DELETE_QUEUE)
    assert http_client.call_count == 0


@pytest.mark.asyncio
async def test_calls_are_lazy(sqs: AwsClient, http_client: MockHTTPClient) -> None:
    http_client.add_response()

    result = sqs.call(DELETE_QUEUE, QueueUrl=QUEUE_URL)
    await asyncio.sleep(0)

    assert type(result) is Result
    assert result.state is ResultState.PENDING
    assert http_client.call_count == 0

    await result
    await result
    assert http_client.call_count == 1


@pytest.mark.asyncio
async def test_server_errors_are_retried(
    sqs: AwsClient, http_client: MockHTTPClient, no_backoff: AsyncMock
) -> None:
    for _ in range(3):
        http_client.add_response(status=500)

    with pytest.raises(ServerError) as e:
        await sqs.call(DELETE_QUEUE, QueueUrl=QUEUE_URL)

    assert e.value.attempts == 3
    assert e.value.operation == "DeleteQueue"
    assert e.value.status == 500
    assert http_client.call_count == 3
    assert no_backoff.await_count == 2


@pytest.mark.asyncio
async def test_recovers_after_transport_error(
    sqs: AwsClient, http_client: MockHTTPClient, no_backoff: AsyncMock
) -> None:
    http_client.add_error(TransportError("connection reset"))
    http_client.add_response()

    await sqs.call(DELETE_QUEUE, QueueUrl=QUEUE_URL)

    assert http_client.call_count == 2


@pytest.mark.asyncio
async def test_max_attempts_option(
    http_client: MockHTTPClient,
    credential_provider: StaticCredentialProvider,
    isolated_config: dict[str, Any],
    no_backoff: AsyncMock,
) -> None:
    client = AwsClient(
        SQS,
        {"maxAttempts": 1},
        http_client=http_client,
        credential_provider=credential_provider,
        **isolated_config,
    )
    http_client.add_response(status=503)

    with pytest.raises(ServerError):
        await client.call(DELETE_QUEUE, QueueUrl=QUEUE_URL)
    assert http_client.call_count == 1


@pytest.mark.asyncio
async def test_client_errors_are_not_retried(
    sqs: AwsClient, http_client: MockHTTPClient
) -> None:
    http_client.add_response(status=400, body=QUEUE_DOES_NOT_EXIST)

    result = sqs.call(DELETE_QUEUE, QueueUrl=QUEUE_URL)
    with pytest.raises(QueueDoesNotExist) as e:
        await result

    assert e.value.code == "QueueDoesNotExist"
    assert e.value.attempts == 1
    assert http_client.call_count == 1
    # The failure is cached.
    with pytest.raises(QueueDoesNotExist):
        await result.get("Anything")
    assert http_client.call_count == 1


@pytest.mark.asyncio
async def test_deadline(sqs: AwsClient, http_client: MockHTTPClient) -> None:
    http_client.add_response(delay=5)

    with pytest.raises(TransportError, match="did not complete within 0.05 seconds"):
        await sqs.call(DELETE_QUEUE, QueueUrl=QUEUE_URL, deadline=0.05)

    assert http_client.cancelled_count == 1


@pytest.mark.asyncio
async def test_unparsable_body_carries_call_context(
    sqs: AwsClient, http_client: MockHTTPClient
) -> None:
    http_client.add_response(
        body=b'{"QueueUrls": [', headers=[("x-amzn-RequestId", "req-1")]
    )

    with pytest.raises(ProtocolError) as e:
        await sqs.call(LIST_QUEUES)

    assert e.value.operation == "ListQueues"
    assert e.value.status == 200
    assert e.value.request_id == "req-1"
    assert "operation=ListQueues" in str(e.value)
    # Parse failures aren't retried.
    assert http_client.call_count == 1


@pytest.mark.asyncio
async def test_missing_credentials_carry_operation(
    http_client: MockHTTPClient,
    isolated_config: dict[str, Any],
    no_shared_files: dict[str, str],
) -> None:
    client = AwsClient(
        SQS, http_client=http_client, **isolated_config, **no_shared_files
    )

    with pytest.raises(CredentialsNotFoundError) as e:
        await client.call(DELETE_QUEUE, QueueUrl=QUEUE_URL)

    assert e.value.operation == "DeleteQueue"
    assert e.value.status is None
    assert http_client.call_count == 0


@pytest.mark.asyncio
async def test_signing_errors_carry_operation(
    http_client: MockHTTPClient, isolated_config: dict[str, Any]
) -> None:
    expired = Credentials(
        access_key_id="AKIDEXAMPLE",
        secret_access_key="secret",
        expiration=datetime.now(tz=UTC) - timedelta(minutes=1),
    )
    client = AwsClient(
        SQS,
        http_client=http_client,
        credential_provider=StaticCredentialProvider(credentials=expired),
        **isolated_config,
    )

    with pytest.raises(SigningError, match="expired") as e:
        await client.call(DELETE_QUEUE, QueueUrl=QUEUE_URL)

    assert e.value.operation == "DeleteQueue"
    assert http_client.call_count == 0


@pytest.mark.asyncio
async def test_presign_errors_carry_operation(
    http_client: MockHTTPClient,
    isolated_config: dict[str, Any],
    no_shared_files: dict[str, str],
) -> None:
    client = AwsClient(
        S3, http_client=http_client, **isolated_config, **no_shared_files
    )

    with pytest.raises(CredentialsNotFoundError) as e:
        await client.presign(GET_OBJECT, Bucket="my-bucket", Key="k.txt")

    assert e.value.operation == "GetObject"


@pytest.mark.asyncio
async def test_paginated_call(sqs: AwsClient, http_client: MockHTTPClient) -> None:
    http_client.add_response(body=b'{"QueueUrls": ["q1", "q2"], "NextToken": "t1"}')
    http_client.add_response(body=b'{"QueueUrls": ["q3"]}')

    result = sqs.call(LIST_QUEUES, MaxResults=2)
    assert isinstance(result, PaginatedResult)

    assert [url async for url in result] == ["q1", "q2", "q3"]
    first, second = (
        json.loads(request.body)  # type: ignore[arg-type]
        for request in http_client.captured_requests
    )
    assert first == {"MaxResults": 2}
    assert second == {"MaxResults": 2, "NextToken": "t1"}


@pytest.mark.asyncio
async def test_s3_virtual_host(s3: AwsClient, http_client: MockHTTPClient) -> None:
    http_client.add_response(body=b"<ListBucketResult></ListBucketResult>")

    await s3.call(LIST_OBJECTS_V2, Bucket="my-bucket", Prefix="logs/")

    request = http_client.captured_requests[0]
    assert request.destination.host == "my-bucket.s3.us-east-1.amazonaws.com"
    assert request.destination.path == "/"
    assert request.destination.query == "list-type=2&prefix=logs%2F"
    assert request.fields.get_value("x-amz-content-sha256") is not None


@pytest.mark.asyncio
async def test_s3_path_style(
    http_client: MockHTTPClient,
    credential_provider: StaticCredentialProvider,
    isolated_config: dict[str, Any],
) -> None:
    client = AwsClient(
        S3,
        path_style_endpoint=True,
        http_client=http_client,
        credential_provider=credential_provider,
        **isolated_config,
    )
    http_client.add_response(body=b"0123")

    result = client.call(GET_OBJECT, Bucket="my-bucket", Key="a/b.txt")
    body = await result.get("Body")

    assert await body.content() == b"0123"
    request = http_client.captured_requests[0]
    assert request.destination.host == "s3.us-east-1.amazonaws.com"
    assert request.destination.path == "/my-bucket/a/b.txt"


@pytest.mark.asyncio
async def test_presign(s3: AwsClient, http_client: MockHTTPClient) -> None:
    url = await s3.presign(GET_OBJECT, Bucket="my-bucket", Key="k.txt", expires=600)

    parts = urlsplit(url)
    query = parse_qs(parts.query)
    assert parts.netloc == "my-bucket.s3.us-east-1.amazonaws.com"
    assert parts.path == "/k.txt"
    assert query["X-Amz-Expires"] == ["600"]
    assert query["X-Amz-Credential"][0].startswith("AKIDEXAMPLE/")
    assert "X-Amz-Signature" in query
    assert http_client.call_count == 0


@pytest.mark.asyncio
async def test_debug_logging(
    http_client: MockHTTPClient,
    credential_provider: StaticCredentialProvider,
    isolated_config: dict[str, Any],
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.DEBUG, logger="aws_async_core")
    client = AwsClient(
        SQS,
        debug=True,
        http_client=http_client,
        credential_provider=credential_provider,
        **isolated_config,
    )
    http_client.add_response()

    await client.call(DELETE_QUEUE, QueueUrl=QUEUE_URL)

    assert "Sending request for DeleteQueue" in caplog.text
    assert "POST https://sqs.us-east-1.amazonaws.com/ -> 200" in caplog.text
    # Secrets are never logged.
    assert "wJalrXUtnFEMI" not in caplog.text


def test_unknown_option(
    http_client: MockHTTPClient, isolated_config: dict[str, Any]
) -> None:
    with pytest.raises(ConfigurationError, match="colour"):
        AwsClient(SQS, colour="blue", http_client=http_client, **isolated_config)


@pytest.mark.asyncio
async def test_close_keeps_injected_http_client(
    sqs: AwsClient, http_client: MockHTTPClient
) -> None:
    async with sqs as client:
        assert client is sqs
    assert not http_client.closed
