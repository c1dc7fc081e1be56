#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote, urlencode

from ..http import Field, Fields, HTTPRequest, HTTPResponse
from ..shapes import Member, OperationShape, ServiceShape, Shape, ShapeType
from ..types import TimestampFormat
from ._xml import (
    XMLShapeParser,
    expect_list,
    expect_map,
    find_text,
    parse_xml,
    parse_xml_error,
)
from .base import (
    UNRESOLVED,
    ErrorInfo,
    HttpProtocolCodec,
    iter_members,
    serialize_scalar,
    timestamp_format_for,
)

_CONTENT_TYPE = "application/x-www-form-urlencoded; charset=utf-8"


class QueryCodec(HttpProtocolCodec):
    """The ``query`` protocol and its ``ec2`` dialect.

    Requests are form-encoded ``Action``/``Version`` parameters with flattened member
    keys. Responses are XML documents.
    """

    def __init__(self, service: ServiceShape, *, ec2: bool = False) -> None:
        super().__init__(service)
        self._ec2 = ec2
        self._parser = XMLShapeParser()

    def serialize_request(
        self, operation: OperationShape, params: Mapping[str, Any]
    ) -> HTTPRequest:
        pairs: list[tuple[str, str]] = [
            ("Action", operation.name),
            ("Version", self.service.api_version),
        ]
        self._serialize_structure(pairs, "", operation.input, params)
        body = urlencode(pairs, safe="-_.~", quote_via=quote).encode("utf-8")
        return HTTPRequest(
            destination=UNRESOLVED,
            method="POST",
            fields=Fields([Field(name="Content-Type", values=[_CONTENT_TYPE])]),
            body=body,
        )

    def _member_key(self, name: str, member: Member) -> str:
        if self._ec2:
            if member.query_name:
                return member.query_name
            wire_name = member.wire_name(name)
            return wire_name[:1].upper() + wire_name[1:]
        return member.wire_name(name)

    def _serialize_structure(
        self,
        pairs: list[tuple[str, str]],
        prefix: str,
        shape: Shape,
        params: Mapping[str, Any],
    ) -> None:
        for name, member, value in iter_members(shape, params):
            key = self._member_key(name, member)
            if prefix:
                key = f"{prefix}.{key}"
            self._serialize_value(pairs, key, member.target, value, member)

    def _serialize_value(
        self,
        pairs: list[tuple[str, str]],
        key: str,
        shape: Shape,
        value: Any,
        member: Member,
    ) -> None:
        match shape.type:
            case ShapeType.STRUCTURE:
                self._serialize_structure(pairs, key, shape, value)
            case ShapeType.LIST:
                self._serialize_list(pairs, key, shape, value, member)
            case ShapeType.MAP:
                self._serialize_map(pairs, key, shape, value, member)
            case _:
                pairs.append(
                    (
                        key,
                        serialize_scalar(
                            shape,
                            value,
                            timestamp_format_for(member, TimestampFormat.DATE_TIME),
                        ),
                    )
                )

    def _serialize_list(
        self,
        pairs: list[tuple[str, str]],
        key: str,
        shape: Shape,
        value: Any,
        member: Member,
    ) -> None:
        items = expect_list(shape, value)
        item = shape.member
        assert item is not None
        if not items:
            # An empty list is sent as an empty value, except in ec2.
            if not self._ec2:
                pairs.append((key, ""))
            return

        if self._ec2 or member.is_flattened():
            item_prefix = key
        else:
            item_prefix = f"{key}.{item.location_name or 'member'}"
        for index, entry in enumerate(items, start=1):
            self._serialize_value(
                pairs, f"{item_prefix}.{index}", item.target, entry, item
            )

    def _serialize_map(
        self,
        pairs: list[tuple[str, str]],
        key: str,
        shape: Shape,
        value: Any,
        member: Member,
    ) -> None:
        key_member, value_member = shape.key, shape.value
        assert key_member is not None and value_member is not None
        entry_prefix = key if member.is_flattened() else f"{key}.entry"
        key_name = key_member.location_name or "key"
        value_name = value_member.location_name or "value"
        for index, (entry_key, entry_value) in enumerate(
            expect_map(shape, value).items(), start=1
        ):
            pairs.append((f"{entry_prefix}.{index}.{key_name}", entry_key))
            self._serialize_value(
                pairs,
                f"{entry_prefix}.{index}.{value_name}",
                value_member.target,
                entry_value,
                value_member,
            )

    def _parse_body(
        self, operation: OperationShape, response: HTTPResponse, body: bytes
    ) -> tuple[dict[str, Any], str | None]:
        if not body.strip():
            return {}, None
        root = parse_xml(body)
        request_id = find_text(root, "RequestId", "requestId")
        if operation.output is None:
            return {}, request_id

        if self._ec2:
            return self._parser.parse_structure(root, operation.output), request_id

        wrapper_name = operation.result_wrapper or f"{operation.name}Result"
        wrapper = root.find(wrapper_name)
        if wrapper is None:
            return {}, request_id
        return self._parser.parse_structure(wrapper, operation.output), request_id

    def _parse_error(self, response: HTTPResponse, body: bytes) -> ErrorInfo:
        return parse_xml_error(body)


class EC2QueryCodec(QueryCodec):
    """The ``ec2`` dialect of the query protocol.

    Lists are always flattened, keys are capitalized and responses have no result
    wrapper.
    """

    def __init__(self, service: ServiceShape) -> None:
        super().__init__(service, ec2=True)
