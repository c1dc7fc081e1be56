#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
from collections.abc import Mapping
from typing import Any

from ..http import Field, Fields, HTTPRequest, HTTPResponse
from ..shapes import OperationShape, ServiceShape
from ._json import JSONShapeParser, JSONShapeSerializer, dumps, loads, parse_json_error
from .base import UNRESOLVED, ErrorInfo, HttpProtocolCodec


class JSONRPCCodec(HttpProtocolCodec):
    """The ``json`` protocol.

    Every operation is a POST to ``/`` with the operation named by the
    ``X-Amz-Target`` header and the whole input serialized as one JSON document.
    """

    def __init__(self, service: ServiceShape) -> None:
        super().__init__(service)
        self._serializer = JSONShapeSerializer()
        self._parser = JSONShapeParser()
        self._content_type = f"application/x-amz-json-{service.json_version}"

    def serialize_request(
        self, operation: OperationShape, params: Mapping[str, Any]
    ) -> HTTPRequest:
        body = self._serializer.serialize_structure(operation.input, params)
        target = f"{self.service.target_prefix}.{operation.name}"
        return HTTPRequest(
            destination=UNRESOLVED,
            method="POST",
            fields=Fields(
                [
                    Field(name="Content-Type", values=[self._content_type]),
                    Field(name="X-Amz-Target", values=[target]),
                ]
            ),
            body=dumps(body),
        )

    def _parse_body(
        self, operation: OperationShape, response: HTTPResponse, body: bytes
    ) -> tuple[dict[str, Any], str | None]:
        if operation.output is None:
            return {}, None
        return self._parser.parse_structure(operation.output, loads(body)), None

    def _parse_error(self, response: HTTPResponse, body: bytes) -> ErrorInfo:
        return parse_json_error(response, body)
