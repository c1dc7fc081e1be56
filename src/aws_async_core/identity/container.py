#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import asyncio
import ipaddress
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..aio.interfaces import HTTPClient
from ..exceptions import CredentialsNotFoundError, TransportError
from ..http import URI, Field, Fields, HTTPRequest, HTTPRequestConfiguration
from ..utils import ensure_utc
from .components import CredentialProvider, Credentials

_LOGGER = logging.getLogger(__name__)

CONTAINER_METADATA_IP = "169.254.170.2"
_CONTAINER_METADATA_ALLOWED_HOSTS = {
    CONTAINER_METADATA_IP,
    "169.254.170.23",
    "fd00:ec2::23",
    "localhost",
}
_DEFAULT_TIMEOUT = 2
_DEFAULT_RETRIES = 3
_SLEEP_SECONDS = 1


@dataclass
class ContainerCredentialsConfig:
    """Configuration for container credential retrieval operations."""

    timeout: float = _DEFAULT_TIMEOUT
    retries: int = _DEFAULT_RETRIES
    retry_delay: float = _SLEEP_SECONDS


class ContainerMetadataClient:
    """Client for remote credential retrieval in Container environments like ECS/EKS."""

    def __init__(self, http_client: HTTPClient, config: ContainerCredentialsConfig):
        self._http_client = http_client
        self._config = config

    def _validate_allowed_url(self, uri: URI) -> None:
        if self._is_loopback(uri.host):
            return

        if not self._is_allowed_container_metadata_host(uri.host):
            raise CredentialsNotFoundError(
                f"Unsupported host '{uri.host}'. "
                f"Can only retrieve metadata from a loopback address or "
                f"one of: {', '.join(sorted(_CONTAINER_METADATA_ALLOWED_HOSTS))}"
            )

    async def get_credentials(self, uri: URI, fields: Fields) -> dict[str, Any]:
        self._validate_allowed_url(uri)
        fields.set_field(Field(name="Accept", values=["application/json"]))
        request_config = HTTPRequestConfiguration(
            timeout=self._config.timeout, read_timeout=self._config.timeout
        )

        last_exc: Exception | None = None
        for attempt in range(self._config.retries):
            if attempt:
                await asyncio.sleep(self._config.retry_delay)
            try:
                return await self._fetch(uri, fields, request_config)
            except (CredentialsNotFoundError, TransportError) as e:
                _LOGGER.debug("Container metadata attempt %s failed: %s", attempt, e)
                last_exc = e

        raise CredentialsNotFoundError(
            f"Failed to retrieve container metadata after {self._config.retries} "
            "attempt(s)"
        ) from last_exc

    async def _fetch(
        self, uri: URI, fields: Fields, request_config: HTTPRequestConfiguration
    ) -> dict[str, Any]:
        request = HTTPRequest(method="GET", destination=uri, fields=fields)
        response = await self._http_client.send(request, request_config=request_config)
        body = await response.consume_body_async()
        if response.status != 200:
            raise CredentialsNotFoundError(
                f"Container metadata service returned {response.status}: "
                f"{body.decode('utf-8', errors='replace')}"
            )
        try:
            document = json.loads(body.decode("utf-8"))
        except ValueError as e:
            raise CredentialsNotFoundError(
                "Unable to parse JSON from container metadata: "
                f"{body.decode('utf-8', errors='replace')}"
            ) from e
        if not isinstance(document, dict):
            raise CredentialsNotFoundError(
                "Container metadata must be a JSON object, got "
                f"{type(document).__name__}"
            )
        return document

    def _is_loopback(self, hostname: str) -> bool:
        try:
            return ipaddress.ip_address(hostname).is_loopback
        except ValueError:
            return False

    def _is_allowed_container_metadata_host(self, hostname: str) -> bool:
        return hostname in _CONTAINER_METADATA_ALLOWED_HOSTS


def credentials_from_metadata(creds: dict[str, Any]) -> Credentials:
    """Build credentials from a container metadata response document."""
    access_key_id = creds.get("AccessKeyId")
    secret_access_key = creds.get("SecretAccessKey")
    expiration = creds.get("Expiration")

    if not access_key_id or not secret_access_key:
        raise CredentialsNotFoundError(
            "AccessKeyId and SecretAccessKey are required for container credentials"
        )

    if expiration:
        try:
            expiration = ensure_utc(datetime.fromisoformat(expiration))
        except (TypeError, ValueError) as e:
            raise CredentialsNotFoundError(
                f"Invalid Expiration in container metadata: {expiration!r}"
            ) from e

    return Credentials(
        access_key_id=access_key_id,
        secret_access_key=secret_access_key,
        session_token=creds.get("Token"),
        expiration=expiration or None,
    )


class ContainerCredentialProvider(CredentialProvider):
    """Resolves AWS credentials from the ECS container metadata endpoint."""

    def __init__(
        self,
        http_client: HTTPClient,
        relative_uri: str | None,
        config: ContainerCredentialsConfig | None = None,
    ):
        self._relative_uri = relative_uri
        self._client = ContainerMetadataClient(
            http_client, config or ContainerCredentialsConfig()
        )

    async def get_credentials(self) -> Credentials:
        if not self._relative_uri:
            raise CredentialsNotFoundError(
                "AWS_CONTAINER_CREDENTIALS_RELATIVE_URI is not set."
            )

        uri = URI(scheme="http", host=CONTAINER_METADATA_IP, path=self._relative_uri)
        creds = await self._client.get_credentials(uri, Fields())
        return credentials_from_metadata(creds)
