#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
from ..exceptions import ConfigurationError
from ..shapes import ServiceShape
from .base import UNRESOLVED, ErrorInfo, HttpProtocolCodec, ParsedResponse
from .jsonrpc import JSONRPCCodec
from .query import EC2QueryCodec, QueryCodec
from .restjson import RestJSONCodec
from .restxml import RestXMLCodec

__all__ = (
    "UNRESOLVED",
    "EC2QueryCodec",
    "ErrorInfo",
    "HttpProtocolCodec",
    "JSONRPCCodec",
    "ParsedResponse",
    "QueryCodec",
    "RestJSONCodec",
    "RestXMLCodec",
    "create_codec",
)

_CODECS: dict[str, type[HttpProtocolCodec]] = {
    "query": QueryCodec,
    "ec2": EC2QueryCodec,
    "json": JSONRPCCodec,
    "rest-json": RestJSONCodec,
    "rest-xml": RestXMLCodec,
}


def create_codec(service: ServiceShape) -> HttpProtocolCodec:
    """Create the codec of the protocol a service speaks.

    :raises ConfigurationError: If the protocol isn't supported.
    """
    try:
        codec_cls = _CODECS[service.protocol]
    except KeyError:
        raise ConfigurationError(
            f"Unsupported protocol {service.protocol!r} for {service.name}. Expected "
            f"one of: {', '.join(_CODECS)}"
        ) from None
    return codec_cls(service)
