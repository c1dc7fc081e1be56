#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
from .components import CredentialProvider, Credentials

__all__ = ("CredentialProvider", "Credentials")
