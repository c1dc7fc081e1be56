#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import logging
import re
from dataclasses import replace
from urllib.parse import quote

from .config import DEFAULT_ENDPOINT
from .exceptions import ConfigurationError
from .http import URI, HTTPRequest
from .shapes import ServiceShape

_LOGGER = logging.getLogger(__name__)

_DNS_COMPATIBLE_BUCKET = re.compile(r"^[a-z0-9][a-z0-9-]{1,61}[a-z0-9]$")
_IP_ADDRESS = re.compile(r"^\d+\.\d+\.\d+\.\d+$")


def is_dns_compatible_bucket(bucket: str) -> bool:
    """Whether a bucket name can be used as a host label.

    Names with dots are excluded because they don't match the TLS certificate of
    the regional host.
    """
    return bool(_DNS_COMPATIBLE_BUCKET.match(bucket)) and not _IP_ADDRESS.match(
        bucket
    )


def expand_template(template: str, *, service: str, region: str) -> URI:
    """Substitute ``%service%`` and ``%region%`` into an endpoint template.

    :raises ConfigurationError: If the result isn't an absolute URL.
    """
    url = template.replace("%service%", service).replace("%region%", region)
    try:
        return URI.from_string(url)
    except ValueError as e:
        raise ConfigurationError(f"Invalid endpoint {url!r}: {e}") from e


class EndpointResolver:
    """Sets the scheme, host and base path of requests built by the codecs."""

    def __init__(
        self,
        *,
        region: str,
        endpoint: str = DEFAULT_ENDPOINT,
        path_style: bool = False,
    ) -> None:
        """Initialize an EndpointResolver.

        :param region: The region substituted into the endpoint template.
        :param endpoint: The endpoint template.
        :param path_style: Whether S3 buckets stay in the path instead of the host.
        """
        self._region = region
        self._endpoint = endpoint
        self._path_style = path_style

    def resolve_endpoint(self, service: ServiceShape) -> URI:
        return expand_template(
            self._endpoint, service=service.endpoint_prefix, region=self._region
        )

    def resolve(
        self,
        service: ServiceShape,
        request: HTTPRequest,
        *,
        bucket: str | None = None,
    ) -> HTTPRequest:
        """Set the destination of a request to the service endpoint.

        The path of the request is appended to the path of the endpoint. S3 requests
        addressing a bucket are sent to ``<bucket>.<host>`` when the bucket name
        allows it and path-style addressing isn't enabled.

        :param bucket: The bucket the request addresses, if any.
        """
        endpoint = self.resolve_endpoint(service)
        path = request.destination.path or "/"
        host = endpoint.host

        if (
            bucket is not None
            and service.endpoint_prefix == "s3"
            and not self._path_style
            and is_dns_compatible_bucket(bucket)
        ):
            bucket_path = "/" + quote(bucket, safe="~")
            if path == bucket_path or path.startswith(bucket_path + "/"):
                path = path[len(bucket_path) :] or "/"
                host = f"{bucket}.{host}"

        base_path = (endpoint.path or "").rstrip("/")
        destination = replace(
            request.destination,
            scheme=endpoint.scheme,
            host=host,
            port=endpoint.port,
            path=base_path + path,
        )
        _LOGGER.debug("Resolved endpoint %s", destination.build())
        return replace(request, destination=destination)
