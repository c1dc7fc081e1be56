#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

from ..utils import ensure_utc

DEFAULT_REFRESH_MARGIN = timedelta(minutes=5)
"""How long before expiration credentials are considered stale."""


@dataclass(kw_only=True, frozen=True)
class Credentials:
    """AWS credentials used to sign requests."""

    access_key_id: str
    """A unique identifier for an AWS user or role."""

    secret_access_key: str = field(repr=False)
    """A secret key used in conjunction with the access key ID to authenticate
    programmatic access to AWS services."""

    session_token: str | None = field(default=None, repr=False)
    """A temporary token used to specify the current session for the supplied
    credentials."""

    expiration: datetime | None = None
    """The expiration time of the credentials.

    If time zone is provided, it is updated to UTC. The value must always be in UTC.
    """

    def __post_init__(self) -> None:
        if self.expiration is not None:
            object.__setattr__(self, "expiration", ensure_utc(self.expiration))

    @property
    def is_expired(self) -> bool:
        """Whether the credentials are expired.

        Credentials without an expiration never expire.
        """
        if self.expiration is None:
            return False
        return datetime.now(tz=UTC) >= self.expiration

    def is_stale(self, margin: timedelta = DEFAULT_REFRESH_MARGIN) -> bool:
        """Whether the credentials are inside the refresh window before expiration."""
        if self.expiration is None:
            return False
        return datetime.now(tz=UTC) >= self.expiration - margin


class CredentialProvider(Protocol):
    """Supplies credentials.

    Providers that can't supply credentials raise
    :py:class:`aws_async_core.exceptions.CredentialsNotFoundError`.
    """

    async def get_credentials(self) -> Credentials:
        """Resolve credentials from the provider's source."""
        ...
