#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import json
from base64 import b64decode, b64encode
from collections.abc import Mapping
from decimal import Decimal
from io import BytesIO
from math import isinf, isnan
from typing import Any

import ijson  # type: ignore

from ..exceptions import ProtocolError, SerializationError
from ..http import HTTPResponse
from ..shapes import Location, Member, Shape, ShapeType
from ..types import TimestampFormat
from ._xml import expect_list, expect_map
from .base import (
    ErrorInfo,
    coerce_bytes,
    coerce_datetime,
    iter_members,
    timestamp_format_for,
)

_BODY_LOCATIONS = (Location.BODY,)


def dumps(value: Any) -> bytes:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


class JSONShapeSerializer:
    """Converts input parameters into JSON-compatible values described by shapes."""

    def __init__(
        self,
        *,
        default_timestamp_format: TimestampFormat = TimestampFormat.EPOCH_SECONDS,
    ) -> None:
        self._default_timestamp_format = default_timestamp_format

    def serialize_structure(
        self, shape: Shape, params: Mapping[str, Any], *, body_only: bool = False
    ) -> dict[str, Any]:
        """Serialize the members of a structure.

        :param body_only: Whether to skip members bound outside the body.
        """
        result: dict[str, Any] = {}
        for name, member, value in iter_members(shape, params):
            if body_only and member.location not in _BODY_LOCATIONS:
                continue
            wire_name = member.wire_name(name)
            result[wire_name] = self.serialize(member.target, value, member)
        return result

    def serialize(
        self, shape: Shape, value: Any, member: Member | None = None
    ) -> Any:
        match shape.type:
            case ShapeType.STRUCTURE:
                return self.serialize_structure(shape, value)
            case ShapeType.LIST:
                item = shape.member
                assert item is not None
                return [
                    self.serialize(item.target, entry, item)
                    for entry in expect_list(shape, value)
                ]
            case ShapeType.MAP:
                value_member = shape.value
                assert value_member is not None
                return {
                    str(key): self.serialize(value_member.target, entry, value_member)
                    for key, entry in expect_map(shape, value).items()
                }
            case ShapeType.BOOLEAN:
                if not isinstance(value, bool):
                    raise SerializationError(f"Expected a boolean, got {value!r}")
                return value
            case ShapeType.INTEGER | ShapeType.LONG:
                if isinstance(value, bool) or not isinstance(value, int):
                    raise SerializationError(f"Expected an integer, got {value!r}")
                return value
            case ShapeType.FLOAT | ShapeType.DOUBLE:
                if isinstance(value, bool) or not isinstance(value, int | float):
                    raise SerializationError(f"Expected a number, got {value!r}")
                if isnan(value):
                    return "NaN"
                if isinf(value):
                    return "-Infinity" if value < 0 else "Infinity"
                return value
            case ShapeType.TIMESTAMP:
                return timestamp_format_for(
                    member, self._default_timestamp_format
                ).serialize(coerce_datetime(value))
            case ShapeType.BLOB:
                return b64encode(coerce_bytes(value)).decode("ascii")
            case _:
                if not isinstance(value, str):
                    raise SerializationError(f"Expected a string, got {value!r}")
                return value


def loads(body: bytes) -> Any:
    """Parse a JSON document with ijson. An empty body parses as an empty object.

    :raises ProtocolError: If the document is malformed.
    """
    if not body.strip():
        return {}
    try:
        return next(ijson.items(BytesIO(body), ""))
    except (ijson.JSONError, ValueError, StopIteration) as e:
        raise ProtocolError(f"Unable to parse JSON body: {e}") from e


class JSONShapeParser:
    """Converts parsed JSON values into Python values described by shapes."""

    def __init__(
        self,
        *,
        default_timestamp_format: TimestampFormat = TimestampFormat.EPOCH_SECONDS,
    ) -> None:
        self._default_timestamp_format = default_timestamp_format

    def parse_structure(
        self, shape: Shape, document: Any, *, body_only: bool = False
    ) -> dict[str, Any]:
        if not isinstance(document, Mapping):
            raise ProtocolError(f"Expected a JSON object for {shape.name}")
        result: dict[str, Any] = {}
        for name, member in shape.members.items():
            if body_only and member.location not in _BODY_LOCATIONS:
                continue
            value = document.get(member.wire_name(name))
            if value is not None:
                result[name] = self.parse(member.target, value, member)
        return result

    def parse(self, shape: Shape, value: Any, member: Member | None = None) -> Any:
        try:
            match shape.type:
                case ShapeType.STRUCTURE:
                    return self.parse_structure(shape, value)
                case ShapeType.LIST:
                    item = shape.member
                    assert item is not None
                    return [
                        None if entry is None else self.parse(item.target, entry, item)
                        for entry in value
                    ]
                case ShapeType.MAP:
                    value_member = shape.value
                    assert value_member is not None
                    return {
                        key: None
                        if entry is None
                        else self.parse(value_member.target, entry, value_member)
                        for key, entry in value.items()
                    }
                case ShapeType.FLOAT | ShapeType.DOUBLE:
                    return float(value)
                case ShapeType.INTEGER | ShapeType.LONG:
                    return int(value)
                case ShapeType.TIMESTAMP:
                    if isinstance(value, int | float | Decimal):
                        return TimestampFormat.EPOCH_SECONDS.deserialize(value)
                    return timestamp_format_for(
                        member, self._default_timestamp_format
                    ).deserialize(value)
                case ShapeType.BLOB:
                    return b64decode(value)
                case _:
                    return value
        except (TypeError, ValueError, AttributeError) as e:
            raise ProtocolError(f"Unable to parse {shape.name} from {value!r}") from e


def sanitize_error_code(code: str) -> str:
    """Strip the namespace and the trailing URI from an error type.

    ``aws.protocoltests#FooError:http://internal.amazon.com/`` becomes ``FooError``.
    """
    code = code.split(":", 1)[0]
    return code.rsplit("#", 1)[-1]


def parse_json_error(response: HTTPResponse, body: bytes) -> ErrorInfo:
    document = loads(body)
    if not isinstance(document, Mapping):
        document = {}

    code = response.fields.get_value("x-amzn-errortype") or document.get("__type")
    if code is None and isinstance(document.get("code"), str):
        code = document["code"]
    message = document.get("message") or document.get("Message")
    fields = {
        key: value
        for key, value in document.items()
        if key not in ("__type", "message", "Message", "code")
    }
    return ErrorInfo(
        code=sanitize_error_code(code) if code else None,
        message=message,
        fields=fields,
    )
