#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
from collections.abc import Mapping
from typing import Any

from ..http import HTTPResponse
from ..shapes import Member, ServiceShape, Shape
from ._json import JSONShapeParser, JSONShapeSerializer, dumps, loads, parse_json_error
from ._rest import RestCodec
from .base import ErrorInfo


class RestJSONCodec(RestCodec):
    """The ``rest-json`` protocol.

    Members not bound to the URI, query string or headers are written as a JSON
    object, unless a member is bound to the whole payload.
    """

    content_type = "application/json"

    def __init__(self, service: ServiceShape) -> None:
        super().__init__(service)
        self._serializer = JSONShapeSerializer()
        self._parser = JSONShapeParser()

    def _serialize_document(
        self, name: str, shape: Shape, value: Any, member: Member
    ) -> bytes:
        return dumps(self._serializer.serialize(shape, value, member))

    def _serialize_body(self, shape: Shape, params: Mapping[str, Any]) -> bytes | None:
        body = self._serializer.serialize_structure(shape, params, body_only=True)
        if not body:
            return None
        return dumps(body)

    def _parse_document(self, shape: Shape, body: bytes) -> dict[str, Any]:
        return self._parser.parse_structure(shape, loads(body), body_only=True)

    def _parse_error(self, response: HTTPResponse, body: bytes) -> ErrorInfo:
        return parse_json_error(response, body)
