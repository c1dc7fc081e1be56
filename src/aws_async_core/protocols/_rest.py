#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
"""HTTP bindings shared by the REST protocols.

Members of an input structure may be bound to URI labels, query string parameters,
headers or the whole payload instead of the body. The REST codecs serialize those
bindings here and only write the body themselves.
"""

import re
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote, urlencode

from ..aio.interfaces import StreamingBlob
from ..exceptions import SerializationError
from ..http import URI, Field, Fields, HTTPRequest, HTTPResponse
from ..shapes import Location, Member, OperationShape, Shape, ShapeType
from ..types import TimestampFormat
from ._xml import expect_list, expect_map
from .base import (
    HttpProtocolCodec,
    coerce_bytes,
    iter_members,
    parse_scalar,
    serialize_scalar,
    timestamp_format_for,
)

_LABEL = re.compile(r"\{([^}]+?)(\+?)\}")


def urlquote(value: str, safe: str = "/") -> str:
    return quote(value, safe=safe)


def split_request_uri(request_uri: str) -> tuple[str, str]:
    """Split a URI template into its path pattern and its literal query."""
    path, _, query = request_uri.partition("?")
    return path, query


def expand_path(pattern: str, labels: Mapping[str, str]) -> str:
    """Substitute percent-encoded label values into a path pattern.

    Greedy labels such as ``{Key+}`` keep their ``/`` separators.

    :raises SerializationError: If a label has no value.
    """

    def _replace(match: re.Match[str]) -> str:
        name, greedy = match.group(1), match.group(2)
        if not (value := labels.get(name)):
            raise SerializationError(f"URI label {name!r} must be set and non-empty")
        return urlquote(value, safe="/~" if greedy else "~")

    return _LABEL.sub(_replace, pattern)


def _scalar_text(member: Member, value: Any, default: TimestampFormat) -> str:
    return serialize_scalar(
        member.target, value, timestamp_format_for(member, default)
    )


class RestCodec(HttpProtocolCodec):
    """Base class of the ``rest-json`` and ``rest-xml`` protocols."""

    content_type: str
    """The media type of serialized bodies."""

    _default_content_type = "application/octet-stream"

    def serialize_request(
        self, operation: OperationShape, params: Mapping[str, Any]
    ) -> HTTPRequest:
        path_pattern, literal_query = split_request_uri(operation.request_uri)
        labels: dict[str, str] = {}
        query: list[tuple[str, str]] = []
        fields = Fields()

        for name, member, value in iter_members(operation.input, params):
            wire_name = member.wire_name(name)
            match member.location:
                case Location.URI:
                    labels[wire_name] = _scalar_text(
                        member, value, TimestampFormat.DATE_TIME
                    )
                case Location.QUERY:
                    self._serialize_query(query, wire_name, member, value)
                case Location.HEADER:
                    self._serialize_header(fields, wire_name, member, value)
                case Location.PREFIX_HEADERS:
                    for key, entry in expect_map(member.target, value).items():
                        fields.set_field(
                            Field(name=f"{wire_name}{key}", values=[str(entry)])
                        )

        body, content_type = self._serialize_payload(operation, params)
        if content_type is not None and "content-type" not in fields:
            fields.set_field(Field(name="Content-Type", values=[content_type]))

        query_string = literal_query
        if query:
            encoded = urlencode(query, safe="-_.~", quote_via=quote)
            query_string = f"{literal_query}&{encoded}" if literal_query else encoded

        return HTTPRequest(
            destination=URI(
                host="",
                path=expand_path(path_pattern, labels),
                query=query_string or None,
            ),
            method=operation.http_method,
            fields=fields,
            body=body,
        )

    def _serialize_query(
        self,
        query: list[tuple[str, str]],
        key: str,
        member: Member,
        value: Any,
    ) -> None:
        target = member.target
        match target.type:
            case ShapeType.LIST:
                item = target.member
                assert item is not None
                for entry in expect_list(target, value):
                    query.append(
                        (key, _scalar_text(item, entry, TimestampFormat.DATE_TIME))
                    )
            case ShapeType.MAP:
                # A map bound to the query string contributes one parameter per key.
                value_member = target.value
                assert value_member is not None
                for map_key, entry in expect_map(target, value).items():
                    if value_member.target.type is ShapeType.LIST:
                        self._serialize_query(query, map_key, value_member, entry)
                    else:
                        query.append(
                            (
                                map_key,
                                _scalar_text(
                                    value_member, entry, TimestampFormat.DATE_TIME
                                ),
                            )
                        )
            case _:
                query.append(
                    (key, _scalar_text(member, value, TimestampFormat.DATE_TIME))
                )

    def _serialize_header(
        self, fields: Fields, name: str, member: Member, value: Any
    ) -> None:
        target = member.target
        if target.type is ShapeType.LIST:
            item = target.member
            assert item is not None
            values = [
                _scalar_text(item, entry, TimestampFormat.HTTP_DATE)
                for entry in expect_list(target, value)
            ]
        else:
            values = [_scalar_text(member, value, TimestampFormat.HTTP_DATE)]
        fields.set_field(Field(name=name, values=values))

    def _serialize_payload(
        self, operation: OperationShape, params: Mapping[str, Any]
    ) -> tuple[StreamingBlob, str | None]:
        """Serialize the body and pick its content type.

        A member bound to the payload is written as the whole body. Blobs and
        strings are passed through, structures are serialized by the codec. Without
        a payload member, the members left over after binding form the body.
        """
        shape = operation.input
        if (payload := shape.payload_member) is not None:
            name, member = payload
            value = params.get(name)
            if value is None:
                return b"", None
            match member.target.type:
                case ShapeType.BLOB:
                    if member.streaming and not isinstance(value, bytes | str):
                        return value, self._default_content_type
                    return coerce_bytes(value), self._default_content_type
                case ShapeType.STRING:
                    return coerce_bytes(value), "text/plain"
                case _:
                    document = self._serialize_document(
                        member.wire_name(name), member.target, value, member
                    )
                    return document, self.content_type

        if not any(m.location is Location.BODY for m in shape.members.values()):
            return b"", None
        body = self._serialize_body(shape, params)
        if body is None:
            return b"", None
        return body, self.content_type

    def _serialize_document(
        self, name: str, shape: Shape, value: Any, member: Member
    ) -> bytes:
        """Serialize a structure bound to the payload."""
        raise NotImplementedError

    def _serialize_body(self, shape: Shape, params: Mapping[str, Any]) -> bytes | None:
        """Serialize the body members of the input, or return None for no body."""
        raise NotImplementedError

    def _parse_headers(
        self, operation: OperationShape, response: HTTPResponse
    ) -> dict[str, Any]:
        output: dict[str, Any] = {}
        if operation.output is None:
            return output
        for name, member in operation.output.members.items():
            wire_name = member.wire_name(name)
            match member.location:
                case Location.STATUS:
                    output[name] = response.status
                case Location.HEADER:
                    if (found := response.fields.get(wire_name)) is not None:
                        output[name] = self._parse_header(member, found)
                case Location.PREFIX_HEADERS:
                    prefix = wire_name.lower()
                    prefixed = {
                        field.name[len(prefix) :]: field.as_string()
                        for field in response.fields
                        if field.name.lower().startswith(prefix)
                    }
                    if prefixed:
                        output[name] = prefixed
        return output

    def _parse_header(self, member: Member, field: Field) -> Any:
        target = member.target
        if target.type is ShapeType.LIST:
            item = target.member
            assert item is not None
            values = [
                part.strip() for value in field.values for part in _split(item, value)
            ]
            return [
                parse_scalar(
                    item.target,
                    value,
                    timestamp_format_for(item, TimestampFormat.HTTP_DATE),
                )
                for value in values
            ]
        return parse_scalar(
            target,
            field.as_string(),
            timestamp_format_for(member, TimestampFormat.HTTP_DATE),
        )

    def _parse_body(
        self, operation: OperationShape, response: HTTPResponse, body: bytes
    ) -> tuple[dict[str, Any], str | None]:
        output = self._parse_headers(operation, response)
        if operation.output is None:
            return output, None

        if (payload := operation.output.payload_member) is not None:
            name, member = payload
            match member.target.type:
                case ShapeType.BLOB:
                    output[name] = body
                case ShapeType.STRING:
                    output[name] = body.decode("utf-8")
                case _:
                    if body.strip():
                        output[name] = self._parse_document(member.target, body)
            return output, None

        if body.strip():
            output.update(self._parse_document(operation.output, body))
        return output, None

    def _parse_document(self, shape: Shape, body: bytes) -> dict[str, Any]:
        """Parse the body members of a structure."""
        raise NotImplementedError


def _split(item: Member, value: str) -> list[str]:
    # HTTP dates contain a comma, so lists of them split on every second comma.
    if item.target.type is ShapeType.TIMESTAMP and (
        timestamp_format_for(item, TimestampFormat.HTTP_DATE)
        is TimestampFormat.HTTP_DATE
    ):
        parts = value.split(",")
        return [",".join(parts[i : i + 2]) for i in range(0, len(parts), 2)]
    return value.split(",")
