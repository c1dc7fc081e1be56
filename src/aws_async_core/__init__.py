#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
"""Asynchronous request pipeline for AWS service clients: credentials, SigV4
signing, wire protocols, retries and lazily hydrated, paginated results."""

from .client import AwsClient
from .config import Configuration
from .identity import CredentialProvider, Credentials
from .paginators import PaginatedResult
from .results import ResponseInfo, Result, ResultState

__license__ = "Apache-2.0"
__version__ = "0.1.0"

__all__ = (
    "AwsClient",
    "Configuration",
    "CredentialProvider",
    "Credentials",
    "PaginatedResult",
    "ResponseInfo",
    "Result",
    "ResultState",
)
