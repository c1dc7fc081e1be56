#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import asyncio
import logging

from ..aio.interfaces import HTTPClient
from ..config import DEFAULT_ENDPOINT
from ..exceptions import ConfigurationError, CredentialsNotFoundError
from ..shared_files import (
    DEFAULT_CONFIG_FILE,
    DEFAULT_CREDENTIALS_FILE,
    DEFAULT_PROFILE,
    Profiles,
    load_shared_file,
)
from .assume_role import AssumeRoleCredentialProvider
from .components import CredentialProvider, Credentials
from .static import StaticCredentialProvider
from .sts import StsClient
from .web_identity import WebIdentityCredentialProvider

_LOGGER = logging.getLogger(__name__)


class ProfileCredentialProvider(CredentialProvider):
    """Resolves credentials from a profile of the shared credentials and config files.

    A profile may hold static keys, name a role to assume with the keys of a
    ``source_profile``, or name a role to assume with a web identity token file.
    """

    def __init__(
        self,
        *,
        http_client: HTTPClient,
        region: str,
        profile: str = DEFAULT_PROFILE,
        credentials_file: str = DEFAULT_CREDENTIALS_FILE,
        config_file: str = DEFAULT_CONFIG_FILE,
        endpoint: str = DEFAULT_ENDPOINT,
    ) -> None:
        self._http_client = http_client
        self._region = region
        self._profile = profile
        self._credentials_file = credentials_file
        self._config_file = config_file
        self._endpoint = endpoint

    async def get_credentials(self) -> Credentials:
        profiles = await asyncio.to_thread(self._load_profiles)
        return await self._resolve(profiles, self._profile, visited=())

    def _load_profiles(self) -> Profiles:
        try:
            config = load_shared_file(self._config_file, is_config_file=True)
            credentials = load_shared_file(self._credentials_file)
        except ConfigurationError as e:
            raise CredentialsNotFoundError(str(e)) from e

        # Values of the credentials file win over the config file.
        profiles: Profiles = {name: dict(values) for name, values in config.items()}
        for name, values in credentials.items():
            profiles.setdefault(name, {}).update(values)
        return profiles

    async def _resolve(
        self, profiles: Profiles, name: str, visited: tuple[str, ...]
    ) -> Credentials:
        if name in visited:
            chain = " -> ".join((*visited, name))
            raise CredentialsNotFoundError(
                f"Circular source_profile reference: {chain}"
            )
        if (profile := profiles.get(name)) is None:
            raise CredentialsNotFoundError(f"Profile {name!r} not found")

        if role_arn := profile.get("role_arn"):
            session_name = profile.get("role_session_name")
            if token_file := profile.get("web_identity_token_file"):
                _LOGGER.debug("Profile %s assumes %s with web identity", name, role_arn)
                return await WebIdentityCredentialProvider(
                    sts_client=self._sts_client(profile),
                    role_arn=role_arn,
                    token_file=token_file,
                    role_session_name=session_name,
                ).get_credentials()

            if source_profile := profile.get("source_profile"):
                _LOGGER.debug(
                    "Profile %s assumes %s with profile %s",
                    name,
                    role_arn,
                    source_profile,
                )
                duration = _duration_seconds(name, profile.get("duration_seconds"))
                base = await self._resolve(profiles, source_profile, (*visited, name))
                return await AssumeRoleCredentialProvider(
                    sts_client=self._sts_client(
                        profile, StaticCredentialProvider(credentials=base)
                    ),
                    role_arn=role_arn,
                    role_session_name=session_name,
                    external_id=profile.get("external_id"),
                    duration_seconds=duration,
                ).get_credentials()

            if profile.get("credential_source"):
                raise CredentialsNotFoundError(
                    f"Profile {name!r} uses credential_source, which is not supported"
                )
            raise CredentialsNotFoundError(
                f"Profile {name!r} sets role_arn without source_profile or "
                "web_identity_token_file"
            )

        access_key_id = profile.get("aws_access_key_id")
        secret_access_key = profile.get("aws_secret_access_key")
        if not access_key_id or not secret_access_key:
            raise CredentialsNotFoundError(f"Profile {name!r} has no credentials")
        return Credentials(
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            session_token=profile.get("aws_session_token") or None,
        )

    def _sts_client(
        self,
        profile: dict[str, str],
        credential_provider: CredentialProvider | None = None,
    ) -> StsClient:
        return StsClient(
            http_client=self._http_client,
            region=profile.get("region") or self._region,
            endpoint=self._endpoint,
            credential_provider=credential_provider,
        )


def _duration_seconds(profile: str, value: str | None) -> int | None:
    if not value:
        return None
    try:
        return int(value)
    except ValueError as e:
        raise CredentialsNotFoundError(
            f"Profile {profile!r} has an invalid duration_seconds: {value!r}"
        ) from e
