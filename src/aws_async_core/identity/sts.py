#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
"""A minimal STS client for the calls credential providers make."""

import logging
from collections.abc import Mapping
from typing import Any

from ..aio.client import RequestPipeline
from ..aio.interfaces import HTTPClient
from ..config import DEFAULT_ENDPOINT
from ..endpoints import EndpointResolver
from ..exceptions import AsyncAwsError, CredentialsNotFoundError
from ..protocols import QueryCodec
from ..retries import RetryStrategy
from ..shapes import (
    INTEGER,
    STRING,
    TIMESTAMP,
    Member,
    OperationShape,
    ServiceShape,
    structure,
)
from .components import CredentialProvider, Credentials

_LOGGER = logging.getLogger(__name__)

STS_SERVICE = ServiceShape(
    name="STS",
    protocol="query",
    api_version="2011-06-15",
    endpoint_prefix="sts",
)

_CREDENTIALS = structure(
    "Credentials",
    {
        "AccessKeyId": Member(target=STRING, required=True),
        "SecretAccessKey": Member(target=STRING, required=True),
        "SessionToken": Member(target=STRING, required=True),
        "Expiration": Member(target=TIMESTAMP, required=True),
    },
)
_ASSUMED_ROLE_USER = structure(
    "AssumedRoleUser",
    {
        "AssumedRoleId": Member(target=STRING),
        "Arn": Member(target=STRING),
    },
)

ASSUME_ROLE = OperationShape(
    name="AssumeRole",
    input=structure(
        "AssumeRoleRequest",
        {
            "RoleArn": Member(target=STRING, required=True),
            "RoleSessionName": Member(target=STRING, required=True),
            "DurationSeconds": Member(target=INTEGER),
            "ExternalId": Member(target=STRING),
            "Policy": Member(target=STRING),
        },
    ),
    output=structure(
        "AssumeRoleResponse",
        {
            "Credentials": Member(target=_CREDENTIALS),
            "AssumedRoleUser": Member(target=_ASSUMED_ROLE_USER),
        },
    ),
)

ASSUME_ROLE_WITH_WEB_IDENTITY = OperationShape(
    name="AssumeRoleWithWebIdentity",
    input=structure(
        "AssumeRoleWithWebIdentityRequest",
        {
            "RoleArn": Member(target=STRING, required=True),
            "RoleSessionName": Member(target=STRING, required=True),
            "WebIdentityToken": Member(target=STRING, required=True),
            "ProviderId": Member(target=STRING),
            "DurationSeconds": Member(target=INTEGER),
        },
    ),
    output=structure(
        "AssumeRoleWithWebIdentityResponse",
        {
            "Credentials": Member(target=_CREDENTIALS),
            "SubjectFromWebIdentityToken": Member(target=STRING),
            "AssumedRoleUser": Member(target=_ASSUMED_ROLE_USER),
        },
    ),
    unsigned=True,
)


class StsClient:
    """Exchanges credentials and identity tokens for temporary role credentials."""

    def __init__(
        self,
        *,
        http_client: HTTPClient,
        region: str,
        endpoint: str = DEFAULT_ENDPOINT,
        credential_provider: CredentialProvider | None = None,
        retry_strategy: RetryStrategy | None = None,
    ) -> None:
        """Initialize an StsClient.

        :param credential_provider: The credentials ``AssumeRole`` is signed with.
            ``AssumeRoleWithWebIdentity`` is always sent unsigned.
        """
        self._pipeline = RequestPipeline(
            service=STS_SERVICE,
            codec=QueryCodec(STS_SERVICE),
            http_client=http_client,
            endpoint_resolver=EndpointResolver(region=region, endpoint=endpoint),
            region=region,
            credential_provider=credential_provider,
            retry_strategy=retry_strategy,
        )

    async def assume_role(self, **params: Any) -> Credentials:
        """Call ``AssumeRole``.

        :raises CredentialsNotFoundError: If the call fails.
        """
        return await self._call(ASSUME_ROLE, params)

    async def assume_role_with_web_identity(self, **params: Any) -> Credentials:
        """Call ``AssumeRoleWithWebIdentity``.

        :raises CredentialsNotFoundError: If the call fails.
        """
        return await self._call(ASSUME_ROLE_WITH_WEB_IDENTITY, params)

    async def _call(
        self, operation: OperationShape, params: Mapping[str, Any]
    ) -> Credentials:
        try:
            call = self._pipeline.prepare(operation, params)
            response = await self._pipeline(call)
        except AsyncAwsError as e:
            raise CredentialsNotFoundError(
                f"{operation.name} for {params.get('RoleArn')} failed: {e}"
            ) from e

        credentials = response.output.get("Credentials") or {}
        if not {"AccessKeyId", "SecretAccessKey", "SessionToken"} <= credentials.keys():
            raise CredentialsNotFoundError(
                f"{operation.name} response contains no credentials"
            )
        _LOGGER.debug(
            "Assumed role %s, credentials expire at %s",
            params.get("RoleArn"),
            credentials.get("Expiration"),
        )
        return Credentials(
            access_key_id=credentials["AccessKeyId"],
            secret_access_key=credentials["SecretAccessKey"],
            session_token=credentials["SessionToken"],
            expiration=credentials.get("Expiration"),
        )
