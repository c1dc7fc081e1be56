#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
from uuid import uuid4

from .components import CredentialProvider, Credentials
from .sts import StsClient


def default_session_name() -> str:
    return f"aws-async-core-{uuid4().hex[:16]}"


class AssumeRoleCredentialProvider(CredentialProvider):
    """Resolves temporary credentials of a role assumed with base credentials.

    The STS client given to the provider signs ``AssumeRole`` with the base
    credentials.
    """

    def __init__(
        self,
        *,
        sts_client: StsClient,
        role_arn: str,
        role_session_name: str | None = None,
        external_id: str | None = None,
        duration_seconds: int | None = None,
    ) -> None:
        self._sts_client = sts_client
        self._role_arn = role_arn
        self._role_session_name = role_session_name or default_session_name()
        self._external_id = external_id
        self._duration_seconds = duration_seconds

    async def get_credentials(self) -> Credentials:
        return await self._sts_client.assume_role(
            RoleArn=self._role_arn,
            RoleSessionName=self._role_session_name,
            ExternalId=self._external_id,
            DurationSeconds=self._duration_seconds,
        )
