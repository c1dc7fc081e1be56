#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import asyncio
import logging
from pathlib import Path

from ..exceptions import CredentialsNotFoundError
from .assume_role import default_session_name
from .components import CredentialProvider, Credentials
from .sts import StsClient

_LOGGER = logging.getLogger(__name__)


class WebIdentityCredentialProvider(CredentialProvider):
    """Exchanges an OIDC token read from a file for role credentials.

    The token file is read again on every resolution, since the issuer rotates it.
    """

    def __init__(
        self,
        *,
        sts_client: StsClient,
        role_arn: str | None,
        token_file: str | None,
        role_session_name: str | None = None,
    ) -> None:
        self._sts_client = sts_client
        self._role_arn = role_arn
        self._token_file = token_file
        self._role_session_name = role_session_name or default_session_name()

    async def get_credentials(self) -> Credentials:
        if not self._role_arn or not self._token_file:
            raise CredentialsNotFoundError(
                "AWS_ROLE_ARN and AWS_WEB_IDENTITY_TOKEN_FILE are required for web "
                "identity credentials"
            )

        token = await asyncio.to_thread(self._read_token, self._token_file)
        _LOGGER.debug("Assuming %s with web identity token", self._role_arn)
        return await self._sts_client.assume_role_with_web_identity(
            RoleArn=self._role_arn,
            RoleSessionName=self._role_session_name,
            WebIdentityToken=token,
        )

    @staticmethod
    def _read_token(path: str) -> str:
        try:
            token = Path(path).expanduser().read_text(encoding="utf-8").strip()
        except OSError as e:
            raise CredentialsNotFoundError(
                f"Unable to read web identity token file {path}: {e}"
            ) from e
        if not token:
            raise CredentialsNotFoundError(f"Web identity token file {path} is empty")
        return token
