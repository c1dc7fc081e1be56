#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import asyncio

from ..aio.interfaces import HTTPClient
from ..exceptions import CredentialsNotFoundError
from ..http import URI, Field, Fields
from .components import CredentialProvider, Credentials
from .container import (
    ContainerCredentialsConfig,
    ContainerMetadataClient,
    credentials_from_metadata,
)


class PodIdentityCredentialProvider(CredentialProvider):
    """Resolves AWS credentials from the EKS Pod Identity agent.

    The authorization token file is read again on every call, since the agent rotates
    it.
    """

    def __init__(
        self,
        http_client: HTTPClient,
        full_uri: str | None,
        token_file: str | None,
        config: ContainerCredentialsConfig | None = None,
    ):
        self._full_uri = full_uri
        self._token_file = token_file
        self._client = ContainerMetadataClient(
            http_client, config or ContainerCredentialsConfig()
        )

    async def get_credentials(self) -> Credentials:
        if not self._full_uri or not self._token_file:
            raise CredentialsNotFoundError(
                "AWS_CONTAINER_CREDENTIALS_FULL_URI and "
                "AWS_CONTAINER_AUTHORIZATION_TOKEN_FILE are required."
            )

        try:
            uri = URI.from_string(self._full_uri)
        except ValueError as e:
            raise CredentialsNotFoundError(
                f"Invalid pod identity URI {self._full_uri!r}"
            ) from e

        try:
            auth_token = await asyncio.to_thread(self._read_file, self._token_file)
        except (OSError, UnicodeDecodeError) as e:
            raise CredentialsNotFoundError(f"Unable to open {self._token_file}.") from e

        fields = Fields([Field(name="Authorization", values=[auth_token])])
        creds = await self._client.get_credentials(uri, fields)
        return credentials_from_metadata(creds)

    def _read_file(self, filename: str) -> str:
        with open(filename, encoding="utf-8") as f:
            return f.read().strip()
