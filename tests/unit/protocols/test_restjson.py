#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import pytest

from aws_async_core.exceptions import ClientError, SerializationError
from aws_async_core.protocols import RestJSONCodec, create_codec
from aws_async_core.protocols._rest import expand_path, split_request_uri

from ...services import CREATE_ALIAS, LAMBDA, LIST_ALIASES
from .responses import response


@pytest.fixture
def codec() -> RestJSONCodec:
    return RestJSONCodec(LAMBDA)


def test_create_codec() -> None:
    assert isinstance(create_codec(LAMBDA), RestJSONCodec)


def test_split_request_uri() -> None:
    assert split_request_uri("/{Bucket}?list-type=2") == ("/{Bucket}", "list-type=2")
    assert split_request_uri("/{Bucket}") == ("/{Bucket}", "")


@pytest.mark.parametrize(
    "pattern, labels, expected",
    [
        ("/{Bucket}", {"Bucket": "b"}, "/b"),
        ("/{Bucket}/{Key+}", {"Bucket": "b", "Key": "a/b c.txt"}, "/b/a/b%20c.txt"),
        ("/functions/{Name}", {"Name": "a/b"}, "/functions/a%2Fb"),
        ("/functions/{Name}", {"Name": "x~y"}, "/functions/x~y"),
    ],
)
def test_expand_path(pattern: str, labels: dict[str, str], expected: str) -> None:
    assert expand_path(pattern, labels) == expected


def test_serialize_labels_and_body(codec: RestJSONCodec) -> None:
    request = codec.serialize_request(
        CREATE_ALIAS,
        {"FunctionName": "my-function", "Name": "live", "FunctionVersion": "3"},
    )

    assert request.method == "POST"
    assert request.destination.path == "/2015-03-31/functions/my-function/aliases"
    assert request.destination.query is None
    assert request.fields.get_value("Content-Type") == "application/json"
    assert request.body == b'{"Name":"live","FunctionVersion":"3"}'


def test_serialize_label_is_encoded(codec: RestJSONCodec) -> None:
    request = codec.serialize_request(
        CREATE_ALIAS,
        {
            "FunctionName": "arn:aws:lambda:us-east-1:123456789012:function:f",
            "Name": "live",
            "FunctionVersion": "3",
        },
    )
    assert request.destination.path == (
        "/2015-03-31/functions/"
        "arn%3Aaws%3Alambda%3Aus-east-1%3A123456789012%3Afunction%3Af/aliases"
    )


def test_serialize_empty_label(codec: RestJSONCodec) -> None:
    with pytest.raises(SerializationError, match="FunctionName"):
        codec.serialize_request(
            CREATE_ALIAS,
            {"FunctionName": "", "Name": "live", "FunctionVersion": "3"},
        )


def test_serialize_query_without_body(codec: RestJSONCodec) -> None:
    request = codec.serialize_request(
        LIST_ALIASES,
        {"FunctionName": "f", "Marker": "m 1", "MaxItems": 10, "Versions": ["1", "2"]},
    )

    assert request.method == "GET"
    assert request.destination.path == "/2015-03-31/functions/f/aliases"
    assert request.destination.query == "Marker=m%201&MaxItems=10&Version=1&Version=2"
    assert request.body == b""
    assert "Content-Type" not in request.fields


@pytest.mark.asyncio
async def test_parse_status_headers_and_body(codec: RestJSONCodec) -> None:
    parsed = await codec.deserialize_response(
        CREATE_ALIAS,
        response(
            201,
            headers=[("x-amzn-RequestId", "req-5")],
            body=b'{"AliasArn":"arn:aws:lambda:us-east-1:123456789012:function:f:live",'
            b'"Name":"live","FunctionVersion":"3"}',
        ),
    )

    assert parsed.output == {
        "StatusCode": 201,
        "RequestId": "req-5",
        "AliasArn": "arn:aws:lambda:us-east-1:123456789012:function:f:live",
        "Name": "live",
        "FunctionVersion": "3",
    }
    assert parsed.request_id == "req-5"


@pytest.mark.asyncio
async def test_parse_nested_list(codec: RestJSONCodec) -> None:
    parsed = await codec.deserialize_response(
        LIST_ALIASES,
        response(body=b'{"Aliases":[{"Name":"a"},{"Name":"b"}],"NextMarker":"n"}'),
    )
    assert parsed.output == {
        "Aliases": [{"Name": "a"}, {"Name": "b"}],
        "NextMarker": "n",
    }


@pytest.mark.asyncio
async def test_parse_error(codec: RestJSONCodec) -> None:
    with pytest.raises(ClientError) as e:
        await codec.deserialize_response(
            CREATE_ALIAS,
            response(
                404,
                headers=[
                    (
                        "x-amzn-ErrorType",
                        "ResourceNotFoundException:http://internal.amazon.com/",
                    ),
                    ("x-amzn-RequestId", "req-6"),
                ],
                body=b'{"Type":"User","Message":"Function not found"}',
            ),
        )

    assert e.value.code == "ResourceNotFoundException"
    assert e.value.message == "ResourceNotFoundException: Function not found"
    assert e.value.fields == {"Type": "User"}
    assert e.value.request_id == "req-6"
