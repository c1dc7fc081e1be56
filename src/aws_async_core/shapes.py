#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
"""Descriptors of the shapes, operations and services a client works with.

Generated service code instantiates these descriptors once, at import time. The
protocol codecs walk them to serialize input parameters and parse responses.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from .types import TimestampFormat

if TYPE_CHECKING:
    from .exceptions import ServiceError


class ShapeType(Enum):
    STRUCTURE = "structure"
    LIST = "list"
    MAP = "map"
    STRING = "string"
    INTEGER = "integer"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    BLOB = "blob"


class Location(Enum):
    """Where a member is bound in an HTTP message."""

    BODY = "body"
    """The member is part of the serialized body."""

    URI = "uri"
    """The member is a label of the request URI."""

    QUERY = "querystring"
    """The member is a query string parameter."""

    HEADER = "header"
    """The member is a single header."""

    PREFIX_HEADERS = "headers"
    """The member is a map of headers sharing a common name prefix."""

    STATUS = "statusCode"
    """The member is the response status code."""

    PAYLOAD = "payload"
    """The member is the entire body."""


@dataclass(kw_only=True, frozen=True)
class Member:
    """A member of a structure, list or map."""

    target: "Shape"
    """The shape the member targets."""

    location: Location = Location.BODY
    """The part of the HTTP message the member is bound to."""

    location_name: str | None = None
    """The name used on the wire, if it differs from the member name."""

    required: bool = False
    """Whether input serialization fails when the member is unset."""

    timestamp_format: TimestampFormat | None = None
    """Overrides the protocol's default timestamp format."""

    flattened: bool | None = None
    """Overrides whether the targeted list or map is flattened in XML and query."""

    xml_attribute: bool = False
    """Whether the member is serialized as an XML attribute."""

    xml_namespace: str | None = None
    """The XML namespace the member is serialized with."""

    query_name: str | None = None
    """The name used by the ec2 query dialect, if it differs from the default."""

    streaming: bool = False
    """Whether a payload member is streamed instead of buffered."""

    def wire_name(self, member_name: str) -> str:
        """The name of the member on the wire."""
        return self.location_name or member_name

    def is_flattened(self) -> bool:
        if self.flattened is not None:
            return self.flattened
        return self.target.flattened


@dataclass(kw_only=True, frozen=True)
class Shape:
    """A shape and, for aggregate shapes, the members it contains."""

    name: str
    type: ShapeType
    members: Mapping[str, Member] = field(default_factory=dict)
    """Members of a structure, keyed by member name."""

    member: Member | None = None
    """The member of a list."""

    key: Member | None = None
    """The key member of a map."""

    value: Member | None = None
    """The value member of a map."""

    flattened: bool = False
    timestamp_format: TimestampFormat | None = None
    xml_namespace: str | None = None

    @property
    def payload_member(self) -> tuple[str, Member] | None:
        """The member bound to the entire body, if any."""
        for name, member in self.members.items():
            if member.location is Location.PAYLOAD:
                return name, member
        return None


def structure(name: str, members: Mapping[str, Member] | None = None) -> Shape:
    """Create a structure shape."""
    return Shape(name=name, type=ShapeType.STRUCTURE, members=members or {})


def list_of(
    name: str,
    target: Shape,
    *,
    member_name: str | None = None,
    flattened: bool = False,
) -> Shape:
    """Create a list shape.

    :param member_name: The XML element name of each item.
    """
    return Shape(
        name=name,
        type=ShapeType.LIST,
        member=Member(target=target, location_name=member_name),
        flattened=flattened,
    )


def map_of(
    name: str,
    key: Shape,
    value: Shape,
    *,
    key_name: str | None = None,
    value_name: str | None = None,
    flattened: bool = False,
) -> Shape:
    """Create a map shape."""
    return Shape(
        name=name,
        type=ShapeType.MAP,
        key=Member(target=key, location_name=key_name),
        value=Member(target=value, location_name=value_name),
        flattened=flattened,
    )


STRING = Shape(name="String", type=ShapeType.STRING)
INTEGER = Shape(name="Integer", type=ShapeType.INTEGER)
LONG = Shape(name="Long", type=ShapeType.LONG)
FLOAT = Shape(name="Float", type=ShapeType.FLOAT)
DOUBLE = Shape(name="Double", type=ShapeType.DOUBLE)
BOOLEAN = Shape(name="Boolean", type=ShapeType.BOOLEAN)
TIMESTAMP = Shape(name="Timestamp", type=ShapeType.TIMESTAMP)
BLOB = Shape(name="Blob", type=ShapeType.BLOB)


@dataclass(kw_only=True, frozen=True)
class Pagination:
    """Describes how an operation's results are split into pages."""

    input_token: str | tuple[str, ...]
    """The input member(s) that carry the token of the page to fetch."""

    output_token: str | tuple[str, ...]
    """The output member(s) that carry the token of the next page."""

    result_key: str | None = None
    """The output member listing the items of a page."""

    more_results: str | None = None
    """An output boolean member that is false on the last page."""

    limit_key: str | None = None
    """The input member that limits the number of items per page."""

    @property
    def input_tokens(self) -> tuple[str, ...]:
        if isinstance(self.input_token, str):
            return (self.input_token,)
        return self.input_token

    @property
    def output_tokens(self) -> tuple[str, ...]:
        if isinstance(self.output_token, str):
            return (self.output_token,)
        return self.output_token


@dataclass(kw_only=True, frozen=True)
class OperationShape:
    """Describes an operation of a service."""

    name: str
    input: Shape = field(default_factory=lambda: structure("Unit"))
    output: Shape | None = None
    http_method: str = "POST"
    request_uri: str = "/"
    """The URI template, for example ``/{Bucket}/{Key+}?uploads``."""

    result_wrapper: str | None = None
    """The element wrapping the output in query responses.

    Defaults to ``<name>Result``.
    """

    pagination: Pagination | None = None
    unsigned: bool = False
    """Whether requests are sent without a signature."""

    @property
    def streaming_input(self) -> bool:
        payload = self.input.payload_member
        return payload is not None and payload[1].streaming

    @property
    def streaming_output(self) -> bool:
        if self.output is None:
            return False
        payload = self.output.payload_member
        return payload is not None and payload[1].streaming


@dataclass(kw_only=True, frozen=True)
class ServiceShape:
    """Describes a service and the protocol it speaks."""

    name: str
    protocol: str
    """One of ``query``, ``ec2``, ``json``, ``rest-json`` or ``rest-xml``."""

    api_version: str
    endpoint_prefix: str
    """The service part of the endpoint host."""

    signing_name: str | None = None
    """The service name used in the signature scope, if it differs from the
    endpoint prefix."""

    target_prefix: str | None = None
    """The ``X-Amz-Target`` prefix of JSON-RPC services."""

    json_version: str = "1.0"
    xml_namespace: str | None = None
    """The namespace of XML request bodies."""

    errors: Mapping[str, type["ServiceError"]] = field(default_factory=dict)
    """Modeled error codes and the exception types raised for them."""

    @property
    def signing_service(self) -> str:
        return self.signing_name or self.endpoint_prefix
