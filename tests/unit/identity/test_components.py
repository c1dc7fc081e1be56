#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
from datetime import UTC, datetime, timedelta, timezone

import pytest
from freezegun import freeze_time

from aws_async_core.exceptions import CredentialsNotFoundError
from aws_async_core.identity import Credentials
from aws_async_core.identity.environment import EnvironmentCredentialProvider
from aws_async_core.identity.static import StaticCredentialProvider


def test_expiration_is_normalized_to_utc() -> None:
    plus_two = timezone(timedelta(hours=2))
    credentials = Credentials(
        access_key_id="AKID",
        secret_access_key="secret",
        expiration=datetime(2030, 1, 1, 12, tzinfo=plus_two),
    )
    assert credentials.expiration == datetime(2030, 1, 1, 10, tzinfo=UTC)
    assert credentials.expiration.tzinfo is UTC


def test_repr_hides_secrets() -> None:
    credentials = Credentials(
        access_key_id="AKID", secret_access_key="secret", session_token="token"
    )
    assert "AKID" in repr(credentials)
    assert "secret" not in repr(credentials)
    assert "token" not in repr(credentials)


@pytest.mark.parametrize(
    "expiration, expired, stale",
    [
        (None, False, False),
        (datetime(2030, 1, 1, 13, tzinfo=UTC), False, False),
        (datetime(2030, 1, 1, 12, tzinfo=UTC), False, True),
        (datetime(2030, 1, 1, 11, 56, tzinfo=UTC), True, True),
        (datetime(2030, 1, 1, 11, tzinfo=UTC), True, True),
    ],
)
@freeze_time("2030-01-01 11:56:00")
def test_expiry(expiration: datetime | None, expired: bool, stale: bool) -> None:
    credentials = Credentials(
        access_key_id="AKID", secret_access_key="secret", expiration=expiration
    )
    assert credentials.is_expired is expired
    assert credentials.is_stale() is stale


@pytest.mark.asyncio
async def test_static_provider() -> None:
    credentials = Credentials(access_key_id="AKID", secret_access_key="secret")
    provider = StaticCredentialProvider(credentials=credentials)
    assert await provider.get_credentials() is credentials


@pytest.mark.asyncio
async def test_environment_provider() -> None:
    provider = EnvironmentCredentialProvider(
        environment_loader=lambda: {
            "AWS_ACCESS_KEY_ID": "AKID",
            "AWS_SECRET_ACCESS_KEY": "secret",
            "AWS_SESSION_TOKEN": "token",
        }
    )
    credentials = await provider.get_credentials()
    assert credentials.access_key_id == "AKID"
    assert credentials.secret_access_key == "secret"
    assert credentials.session_token == "token"
    assert credentials.expiration is None


@pytest.mark.asyncio
async def test_environment_provider_legacy_names() -> None:
    provider = EnvironmentCredentialProvider(
        environment_loader=lambda: {
            "AWS_ACCESS_KEY": "AKID",
            "AWS_SECRET_KEY": "secret",
            "AWS_SESSION_TOKEN": "",
        }
    )
    credentials = await provider.get_credentials()
    assert credentials.access_key_id == "AKID"
    assert credentials.session_token is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "environment",
    [{}, {"AWS_ACCESS_KEY_ID": "AKID"}, {"AWS_SECRET_ACCESS_KEY": "secret"}],
)
async def test_environment_provider_incomplete(environment: dict[str, str]) -> None:
    provider = EnvironmentCredentialProvider(environment_loader=lambda: environment)
    with pytest.raises(CredentialsNotFoundError):
        await provider.get_credentials()


@pytest.mark.asyncio
async def test_environment_provider_defaults_to_os_environ(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "akid")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "secret")
    credentials = await EnvironmentCredentialProvider().get_credentials()
    assert credentials.access_key_id == "akid"
