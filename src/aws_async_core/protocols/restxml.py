#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
from collections.abc import Mapping
from typing import Any

from ..http import HTTPResponse
from ..shapes import Location, Member, ServiceShape, Shape
from ._rest import RestCodec
from ._xml import XMLShapeParser, XMLShapeSerializer, parse_xml, parse_xml_error
from .base import ErrorInfo


class RestXMLCodec(RestCodec):
    """The ``rest-xml`` protocol.

    Bodies are XML documents whose root element is named after the payload member,
    or after the input shape when the body holds the unbound members.
    """

    content_type = "application/xml"

    def __init__(self, service: ServiceShape) -> None:
        super().__init__(service)
        self._serializer = XMLShapeSerializer()
        self._parser = XMLShapeParser()

    def _serialize_document(
        self, name: str, shape: Shape, value: Any, member: Member
    ) -> bytes:
        return self._serializer.serialize(
            name,
            shape,
            value,
            namespace=member.xml_namespace
            or shape.xml_namespace
            or self.service.xml_namespace,
            member=member,
        )

    def _serialize_body(self, shape: Shape, params: Mapping[str, Any]) -> bytes | None:
        has_body = any(
            params.get(name) is not None
            for name, member in shape.members.items()
            if member.location is Location.BODY
        )
        if not has_body:
            return None
        return self._serializer.serialize(
            shape.name,
            shape,
            params,
            namespace=shape.xml_namespace or self.service.xml_namespace,
        )

    def _parse_document(self, shape: Shape, body: bytes) -> dict[str, Any]:
        return self._parser.parse_structure(parse_xml(body), shape)

    def _parse_error(self, response: HTTPResponse, body: bytes) -> ErrorInfo:
        return parse_xml_error(body)
