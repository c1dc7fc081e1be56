#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import os
from collections.abc import Callable, Mapping

from ..exceptions import CredentialsNotFoundError
from .components import CredentialProvider, Credentials


class EnvironmentCredentialProvider(CredentialProvider):
    """Resolves AWS credentials from system environment variables."""

    def __init__(
        self, *, environment_loader: Callable[[], Mapping[str, str]] | None = None
    ) -> None:
        self._environment_loader = environment_loader or (lambda: os.environ)

    async def get_credentials(self) -> Credentials:
        environ = self._environment_loader()
        access_key_id = environ.get("AWS_ACCESS_KEY_ID") or environ.get(
            "AWS_ACCESS_KEY"
        )
        secret_access_key = environ.get("AWS_SECRET_ACCESS_KEY") or environ.get(
            "AWS_SECRET_KEY"
        )

        if not access_key_id or not secret_access_key:
            raise CredentialsNotFoundError(
                "AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY are required"
            )

        return Credentials(
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            session_token=environ.get("AWS_SESSION_TOKEN") or None,
        )
