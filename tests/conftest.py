#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
from collections.abc import Mapping
from typing import Any

import pytest

from aws_async_core.identity import Credentials
from aws_async_core.identity.static import StaticCredentialProvider
from aws_async_core.testing import MockHTTPClient

STATIC_CREDENTIALS = Credentials(
    access_key_id="AKIDEXAMPLE",
    secret_access_key="wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
)


def _no_environment() -> Mapping[str, str]:
    return {}


def _no_profile(path: str, profile: str) -> Mapping[str, str]:
    return {}


@pytest.fixture
def http_client() -> MockHTTPClient:
    return MockHTTPClient()


@pytest.fixture
def credential_provider() -> StaticCredentialProvider:
    return StaticCredentialProvider(credentials=STATIC_CREDENTIALS)


@pytest.fixture
def isolated_config() -> dict[str, Any]:
    """Client keyword arguments that keep the host environment and files out."""
    return {
        "environment_loader": _no_environment,
        "config_file_loader": _no_profile,
        "credentials_file_loader": _no_profile,
    }
