#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
from .components import CredentialProvider, Credentials


class StaticCredentialProvider(CredentialProvider):
    """Resolve static AWS credentials given to the client."""

    def __init__(self, *, credentials: Credentials) -> None:
        self._credentials = credentials

    async def get_credentials(self) -> Credentials:
        return self._credentials
