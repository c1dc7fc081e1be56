#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import asyncio
import logging
from asyncio import sleep
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from ..endpoints import EndpointResolver
from ..exceptions import (
    CallError,
    CredentialsNotFoundError,
    RetryError,
    TransportError,
)
from ..http import HTTPRequest, HTTPRequestConfiguration
from ..identity.components import CredentialProvider
from ..protocols import HttpProtocolCodec, ParsedResponse
from ..retries import RetryPolicy, RetryStrategy
from ..shapes import OperationShape, ServiceShape
from ..signers import SigV4Signer, SigV4SigningProperties
from .interfaces import HTTPClient

_LOGGER = logging.getLogger(__name__)


@dataclass(kw_only=True, frozen=True)
class ClientCall:
    """A data class containing all the initial information about an operation
    invocation."""

    operation: OperationShape
    """The operation being invoked."""

    params: Mapping[str, Any] = field(repr=False)
    """The input parameters of the operation."""

    request: HTTPRequest = field(repr=False)
    """The serialized request before endpoint resolution and signing."""

    def retryable(self) -> bool:
        # One-shot streams can't be sent twice.
        return isinstance(self.request.body, bytes | bytearray)


class RequestPipeline:
    """Invokes operations of one service: resolve, sign, send with retries, parse."""

    def __init__(
        self,
        *,
        service: ServiceShape,
        codec: HttpProtocolCodec,
        http_client: HTTPClient,
        endpoint_resolver: EndpointResolver,
        region: str,
        credential_provider: CredentialProvider | None = None,
        retry_strategy: RetryStrategy | None = None,
        signer: SigV4Signer | None = None,
        request_config: HTTPRequestConfiguration | None = None,
        send_chunked_body: bool = False,
        log_wire: bool = False,
    ) -> None:
        """Initialize a RequestPipeline.

        :param credential_provider: The source of signing credentials. Requests are
            sent unsigned when it's None.
        :param send_chunked_body: Whether streamed S3 uploads are signed in
            ``aws-chunked`` chunks.
        :param log_wire: Whether summaries of every request and response are logged.
        """
        self.service = service
        self.codec = codec
        self.http_client = http_client
        self.endpoint_resolver = endpoint_resolver
        self.region = region
        self.credential_provider = credential_provider
        self.retry_strategy = retry_strategy or RetryPolicy()
        self.signer = signer or SigV4Signer()
        self.request_config = request_config
        self._send_chunked_body = send_chunked_body
        self._log_wire = log_wire

    def prepare(
        self, operation: OperationShape, params: Mapping[str, Any]
    ) -> ClientCall:
        """Serialize the input of a call.

        This happens when the call is made so that invalid input is reported before
        anything is sent.

        :raises SerializationError: If the parameters don't match the input shape.
        """
        _LOGGER.debug("Serializing input of %s", operation.name)
        request = self.codec.serialize_request(operation, params)
        return ClientCall(operation=operation, params=params, request=request)

    async def __call__(
        self, call: ClientCall, /, *, deadline: float | None = None
    ) -> ParsedResponse:
        """Invoke an operation asynchronously.

        :param call: The prepared call.
        :param deadline: Seconds all attempts of the call, backoff included, may take.
        :raises TransportError: If the deadline expires.
        """
        if deadline is None:
            return await self._retry(call)
        try:
            async with asyncio.timeout(deadline):
                return await self._retry(call)
        except TimeoutError as e:
            raise TransportError(
                f"{call.operation.name} did not complete within {deadline} seconds",
                operation=call.operation.name,
                is_retry_safe=False,
            ) from e

    async def _retry(self, call: ClientCall) -> ParsedResponse:
        if not call.retryable():
            result = await self._handle_attempt(call)
            if isinstance(result, Exception):
                raise result
            return result

        retry_strategy = self.retry_strategy
        retry_token = retry_strategy.acquire_initial_retry_token()

        while True:
            if retry_token.retry_delay:
                await sleep(retry_token.retry_delay)

            result = await self._handle_attempt(call)

            if isinstance(result, Exception):
                if isinstance(result, CallError):
                    result.attempts = retry_token.attempt_count
                try:
                    retry_token = retry_strategy.refresh_retry_token_for_retry(
                        token_to_renew=retry_token,
                        error=result,
                    )
                except RetryError:
                    raise result

                _LOGGER.debug(
                    "Retry needed. Attempting request #%s in %.4f seconds.",
                    retry_token.retry_count + 1,
                    retry_token.retry_delay,
                )
            else:
                retry_strategy.record_success(token=retry_token)
                return result

    async def _handle_attempt(self, call: ClientCall) -> ParsedResponse | Exception:
        operation = call.operation
        try:
            bucket = call.params.get("Bucket")
            request = self.endpoint_resolver.resolve(
                self.service,
                call.request,
                bucket=bucket if isinstance(bucket, str) else None,
            )

            if not operation.unsigned and self.credential_provider is not None:
                request = await self._sign(operation, request)

            _LOGGER.debug("Sending request for %s", operation.name)
            if self._log_wire:
                _LOGGER.debug(
                    "%s %s headers=%s",
                    request.method,
                    request.destination.build(),
                    [f.name for f in request.fields],
                )
            response = await self.http_client.send(
                request, request_config=self.request_config
            )
            _LOGGER.debug("Received response with status %s", response.status)
            if self._log_wire:
                _LOGGER.debug(
                    "%s %s -> %s %s",
                    request.method,
                    request.destination.build(),
                    response.status,
                    response.reason or "",
                )

            _LOGGER.debug("Deserializing response of %s", operation.name)
            parsed = await self.codec.deserialize_response(operation, response)
            _LOGGER.debug("Deserialization complete. Request id: %s", parsed.request_id)
            return parsed
        except CallError as e:
            if e.operation is None:
                e.operation = operation.name
            return e

    async def _sign(
        self, operation: OperationShape, request: HTTPRequest
    ) -> HTTPRequest:
        assert self.credential_provider is not None
        try:
            credentials = await self.credential_provider.get_credentials()
        except CredentialsNotFoundError as e:
            # Concurrent calls may share the error of one credential refresh.
            raise replace(e, operation=operation.name) from e
        is_s3 = self.service.signing_service == "s3"
        properties = SigV4SigningProperties(
            region=self.region,
            service=self.service.signing_service,
            uri_encode_path=not is_s3,
            content_checksum_enabled=is_s3,
        )
        _LOGGER.debug("Signing request for %s", operation.name)
        if self._send_chunked_body and is_s3 and operation.streaming_input:
            return self.signer.sign_chunked(
                signing_properties=properties,
                http_request=request,
                identity=credentials,
            )
        return self.signer.sign(
            signing_properties=properties,
            http_request=request,
            identity=credentials,
        )
