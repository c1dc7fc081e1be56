#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import logging
from base64 import b64decode, b64encode
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..aio.types import StreamingBody
from ..exceptions import (
    MissingParameterError,
    ProtocolError,
    SerializationError,
    ServiceError,
)
from ..http import URI, Fields, HTTPRequest, HTTPResponse
from ..retries import THROTTLING_ERROR_CODES, service_error_class
from ..shapes import Member, OperationShape, ServiceShape, Shape, ShapeType
from ..types import TimestampFormat
from ..utils import ensure_utc, epoch_seconds_to_datetime, serialize_float

_LOGGER = logging.getLogger(__name__)

# Endpoint resolution replaces this destination before the request is signed.
UNRESOLVED = URI(host="", path="/")

_REQUEST_ID_HEADERS = ("x-amzn-requestid", "x-amz-request-id", "x-amzn-request-id")


@dataclass(kw_only=True)
class ParsedResponse:
    """The parsed output of a successful call and its HTTP metadata."""

    output: dict[str, Any]
    status: int
    fields: Fields
    request_id: str | None = None


@dataclass(kw_only=True)
class ErrorInfo:
    """What a protocol extracted from an error response."""

    code: str | None = None
    message: str | None = None
    request_id: str | None = None
    fields: dict[str, Any] = field(default_factory=dict)


def iter_members(
    shape: Shape, params: Mapping[str, Any]
) -> Iterator[tuple[str, Member, Any]]:
    """Iterate over the members of a structure that are set in ``params``.

    :raises SerializationError: If ``params`` has a key that isn't a member.
    :raises MissingParameterError: If a required member isn't set.
    """
    if not isinstance(params, Mapping):
        raise SerializationError(
            f"Expected a mapping of parameters for {shape.name}, got "
            f"{type(params).__name__}"
        )
    for name in params:
        if name not in shape.members:
            raise SerializationError(f'Unknown parameter "{name}" for "{shape.name}".')
    for name, member in shape.members.items():
        value = params.get(name)
        if value is None:
            if member.required:
                raise MissingParameterError(name, shape.name)
            continue
        yield name, member, value


def timestamp_format_for(
    member: Member | None, default: TimestampFormat
) -> TimestampFormat:
    if member is not None:
        if member.timestamp_format is not None:
            return member.timestamp_format
        if member.target.timestamp_format is not None:
            return member.target.timestamp_format
    return default


def coerce_datetime(value: Any) -> datetime:
    match value:
        case datetime():
            return ensure_utc(value)
        case int() | float() if not isinstance(value, bool):
            return epoch_seconds_to_datetime(value)
        case str():
            try:
                return ensure_utc(datetime.fromisoformat(value))
            except ValueError as e:
                raise SerializationError(f"Invalid timestamp {value!r}") from e
    raise SerializationError(f"Expected a timestamp, got {type(value).__name__}")


def coerce_bytes(value: Any) -> bytes:
    match value:
        case bytes():
            return value
        case bytearray():
            return bytes(value)
        case str():
            return value.encode("utf-8")
    raise SerializationError(f"Expected bytes, got {type(value).__name__}")


def serialize_scalar(
    shape: Shape, value: Any, timestamp_format: TimestampFormat
) -> str:
    """Serialize a scalar to the string form used by query strings, headers, labels
    and XML text."""
    match shape.type:
        case ShapeType.BOOLEAN:
            if not isinstance(value, bool):
                raise SerializationError(f"Expected a boolean, got {value!r}")
            return "true" if value else "false"
        case ShapeType.INTEGER | ShapeType.LONG:
            if isinstance(value, bool) or not isinstance(value, int):
                raise SerializationError(f"Expected an integer, got {value!r}")
            return str(value)
        case ShapeType.FLOAT | ShapeType.DOUBLE:
            if isinstance(value, bool) or not isinstance(value, int | float):
                raise SerializationError(f"Expected a number, got {value!r}")
            return serialize_float(value)
        case ShapeType.TIMESTAMP:
            return str(timestamp_format.serialize(coerce_datetime(value)))
        case ShapeType.BLOB:
            return b64encode(coerce_bytes(value)).decode("ascii")
        case ShapeType.STRING:
            if not isinstance(value, str):
                raise SerializationError(f"Expected a string, got {value!r}")
            return value
        case _:
            raise SerializationError(f"{shape.name} is not a scalar shape")


def parse_scalar(shape: Shape, text: str, timestamp_format: TimestampFormat) -> Any:
    """Parse the string form of a scalar."""
    try:
        match shape.type:
            case ShapeType.BOOLEAN:
                return text.strip().lower() == "true"
            case ShapeType.INTEGER | ShapeType.LONG:
                return int(text)
            case ShapeType.FLOAT | ShapeType.DOUBLE:
                return float(text)
            case ShapeType.TIMESTAMP:
                return timestamp_format.deserialize(text)
            case ShapeType.BLOB:
                return b64decode(text)
            case _:
                return text
    except (ValueError, TypeError) as e:
        raise ProtocolError(f"Unable to parse {shape.name} from {text!r}") from e


class HttpProtocolCodec:
    """Base class of protocol codecs.

    Subclasses build the wire request from input parameters and parse response
    bodies. This class handles response status dispatch, streaming payloads and
    error creation.
    """

    def __init__(self, service: ServiceShape) -> None:
        self.service = service

    def serialize_request(
        self, operation: OperationShape, params: Mapping[str, Any]
    ) -> HTTPRequest:
        """Build the HTTP request of an operation call.

        The destination holds only the path and query. The host is set by endpoint
        resolution.

        :raises SerializationError: If the parameters don't match the input shape.
        """
        raise NotImplementedError

    async def deserialize_response(
        self, operation: OperationShape, response: HTTPResponse
    ) -> ParsedResponse:
        """Parse a response, consuming its body unless the output is streamed.

        :raises ServiceError: If the response is an error response.
        :raises ProtocolError: If the body can't be parsed.
        """
        if not 200 <= response.status < 300:
            body = await response.consume_body_async()
            raise self.create_error(operation, response, body)

        if operation.streaming_output:
            with self._response_context(response):
                output = self._parse_headers(operation, response)
            payload = operation.output.payload_member  # type: ignore[union-attr]
            output[payload[0]] = StreamingBody(response.body)  # type: ignore[index]
            return ParsedResponse(
                output=output,
                status=response.status,
                fields=response.fields,
                request_id=self._header_request_id(response),
            )

        body = await response.consume_body_async()
        with self._response_context(response):
            output, request_id = self._parse_body(operation, response, body)
        return ParsedResponse(
            output=output,
            status=response.status,
            fields=response.fields,
            request_id=request_id or self._header_request_id(response),
        )

    def _parse_headers(
        self, operation: OperationShape, response: HTTPResponse
    ) -> dict[str, Any]:
        return {}

    def _parse_body(
        self, operation: OperationShape, response: HTTPResponse, body: bytes
    ) -> tuple[dict[str, Any], str | None]:
        """Parse a successful response body into the output and the request id."""
        raise NotImplementedError

    def _parse_error(self, response: HTTPResponse, body: bytes) -> ErrorInfo:
        raise NotImplementedError

    @contextmanager
    def _response_context(self, response: HTTPResponse) -> Iterator[None]:
        try:
            yield
        except ProtocolError as e:
            e.status = response.status
            if e.request_id is None:
                e.request_id = self._header_request_id(response)
            raise

    def _header_request_id(self, response: HTTPResponse) -> str | None:
        for name in _REQUEST_ID_HEADERS:
            if (value := response.fields.get_value(name)) is not None:
                return value
        return None

    def create_error(
        self, operation: OperationShape, response: HTTPResponse, body: bytes
    ) -> ServiceError:
        try:
            info = self._parse_error(response, body)
        except ProtocolError as e:
            _LOGGER.debug("Unable to parse error body of %s: %s", operation.name, e)
            info = ErrorInfo()
        request_id = info.request_id or self._header_request_id(response)

        error_cls = None
        if info.code is not None:
            error_cls = self.service.errors.get(info.code)
        if error_cls is None:
            error_cls = service_error_class(response.status, info.code)

        kwargs: dict[str, Any] = {}
        if response.status == 429 or info.code in THROTTLING_ERROR_CODES:
            kwargs.update(is_throttling_error=True, is_retry_safe=True)
        if (retry_after := response.fields.get_value("retry-after")) is not None:
            try:
                kwargs["retry_after"] = float(retry_after)
            except ValueError:
                _LOGGER.debug("Ignoring non-numeric Retry-After: %s", retry_after)

        message = info.message or (
            f"{operation.name} failed with status {response.status}"
            + (f" ({response.reason})" if response.reason else "")
        )
        if info.code is not None:
            message = f"{info.code}: {message}"

        return error_cls(
            message,
            code=info.code,
            operation=operation.name,
            status=response.status,
            request_id=request_id,
            fields=info.fields,
            **kwargs,
        )
