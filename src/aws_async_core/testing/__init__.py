#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
"""Shared utilities for testing code built on aws-async-core."""

from .mockhttp import MockHTTPClient, MockHTTPClientError

__all__ = ("MockHTTPClient", "MockHTTPClientError")
