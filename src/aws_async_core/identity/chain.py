#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import asyncio
import logging
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from typing import Final

from ..aio.interfaces import HTTPClient
from ..config import Configuration, EnvironmentLoader
from ..exceptions import CredentialsNotFoundError
from .assume_role import AssumeRoleCredentialProvider
from .components import DEFAULT_REFRESH_MARGIN, CredentialProvider, Credentials
from .container import ContainerCredentialProvider
from .environment import EnvironmentCredentialProvider
from .pod_identity import PodIdentityCredentialProvider
from .profile import ProfileCredentialProvider
from .static import StaticCredentialProvider
from .sts import StsClient
from .web_identity import WebIdentityCredentialProvider

logger: Final = logging.getLogger(__name__)

DEFAULT_MIN_REFRESH_INTERVAL = timedelta(seconds=30)


class CachedCredentialProvider(CredentialProvider):
    """Caches the credentials of another provider until they need a refresh.

    At most one refresh runs at a time and concurrent callers share it. Callers
    without usable credentials wait for the refresh. While credentials are inside
    the refresh window but not yet expired, callers keep getting them and a refresh
    runs in the background, at most once per ``min_refresh_interval`` so that
    credentials issued inside the window aren't refetched on every call. A failed
    background refresh is logged and the cached credentials stay in use until they
    expire.
    """

    def __init__(
        self,
        provider: CredentialProvider,
        *,
        refresh_margin: timedelta = DEFAULT_REFRESH_MARGIN,
        min_refresh_interval: timedelta = DEFAULT_MIN_REFRESH_INTERVAL,
    ) -> None:
        self._provider = provider
        self._refresh_margin = refresh_margin
        self._min_refresh_interval = min_refresh_interval
        self._last_refresh: datetime | None = None
        self._cached: Credentials | None = None
        self._refresh: asyncio.Task[Credentials] | None = None

    async def get_credentials(self) -> Credentials:
        cached = self._cached
        if cached is None or cached.is_expired:
            # Shielded so that a cancelled caller doesn't cancel the shared refresh.
            return await asyncio.shield(self._start_refresh())
        if cached.is_stale(self._refresh_margin) and self._background_refresh_due():
            self._start_refresh()
        return cached

    def _start_refresh(self) -> "asyncio.Task[Credentials]":
        if self._refresh is None:
            logger.debug("Refreshing credentials from %s", type(self._provider))
            self._refresh = asyncio.create_task(self._load())
            self._refresh.add_done_callback(self._refresh_done)
        return self._refresh

    async def _load(self) -> Credentials:
        credentials = await self._provider.get_credentials()
        self._cached = credentials
        logger.debug("Credentials refreshed, expiring at %s", credentials.expiration)
        return credentials

    def _background_refresh_due(self) -> bool:
        if self._last_refresh is None:
            return True
        return datetime.now(tz=UTC) - self._last_refresh >= self._min_refresh_interval

    def _refresh_done(self, task: "asyncio.Task[Credentials]") -> None:
        self._refresh = None
        self._last_refresh = datetime.now(tz=UTC)
        if not task.cancelled() and (error := task.exception()) is not None:
            logger.debug("Failed to refresh credentials: %s", error)


class ChainedCredentialProvider(CredentialProvider):
    """Attempts to resolve credentials by checking a sequence of providers.

    If a provider raises a :py:class:`CredentialsNotFoundError`, the next provider in
    the chain will be attempted.
    """

    def __init__(self, providers: Sequence[CredentialProvider]) -> None:
        """Construct a ChainedCredentialProvider.

        :param providers: The sequence of providers to resolve credentials from.
        """
        self._providers = providers

    async def get_credentials(self) -> Credentials:
        logger.debug("Attempting to resolve credentials from provider chain.")
        failures: list[str] = []
        for provider in self._providers:
            try:
                logger.debug(
                    "Attempting to resolve credentials from %s.", type(provider)
                )
                return await provider.get_credentials()
            except CredentialsNotFoundError as e:
                logger.debug(
                    "Failed to resolve credentials from %s: %s", type(provider), e
                )
                failures.append(f"{type(provider).__name__}: {e}")

        raise CredentialsNotFoundError(
            "Failed to resolve credentials from provider chain. Tried "
            + "; ".join(failures)
        )


def create_default_chain(
    config: Configuration,
    http_client: HTTPClient,
    *,
    environment_loader: EnvironmentLoader | None = None,
) -> CachedCredentialProvider:
    """Creates the default AWS credential provider chain.

    Providers are tried in order: static keys given to the client, environment
    variables, the shared files profile, AssumeRole when a role is configured, web
    identity federation, the EKS Pod Identity agent and the ECS container endpoint.
    """
    static: list[CredentialProvider] = []
    if config.access_key_id and config.access_key_secret:
        static.append(
            StaticCredentialProvider(
                credentials=Credentials(
                    access_key_id=config.access_key_id,
                    secret_access_key=config.access_key_secret,
                    session_token=config.session_token,
                )
            )
        )

    environment = EnvironmentCredentialProvider(environment_loader=environment_loader)
    profile = ProfileCredentialProvider(
        http_client=http_client,
        region=config.region,
        profile=config.profile,
        credentials_file=config.shared_credentials_file,
        config_file=config.shared_config_file,
        endpoint=config.endpoint,
    )
    pod_identity = PodIdentityCredentialProvider(
        http_client,
        config.pod_identity_credentials_full_uri,
        config.pod_identity_authorization_token_file,
    )
    container = ContainerCredentialProvider(
        http_client, config.container_credentials_relative_uri
    )

    providers: list[CredentialProvider] = [*static, environment, profile]
    if config.role_arn and not config.web_identity_token_file:
        base = ChainedCredentialProvider(
            [*static, environment, profile, pod_identity, container]
        )
        providers.append(
            AssumeRoleCredentialProvider(
                sts_client=StsClient(
                    http_client=http_client,
                    region=config.region,
                    endpoint=config.endpoint,
                    credential_provider=CachedCredentialProvider(base),
                ),
                role_arn=config.role_arn,
                role_session_name=config.role_session_name,
            )
        )
    providers.append(
        WebIdentityCredentialProvider(
            sts_client=StsClient(
                http_client=http_client,
                region=config.region,
                endpoint=config.endpoint,
            ),
            role_arn=config.role_arn,
            token_file=config.web_identity_token_file,
            role_session_name=config.role_session_name,
        )
    )
    providers.extend((pod_identity, container))
    return CachedCredentialProvider(ChainedCredentialProvider(providers))
