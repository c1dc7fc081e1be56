#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import logging
from collections.abc import Mapping
from dataclasses import replace
from typing import Any, Self

from .aio.aiohttp import AIOHTTPClient
from .aio.client import RequestPipeline
from .aio.interfaces import HTTPClient
from .config import Configuration, EnvironmentLoader, ProfileLoader
from .endpoints import EndpointResolver
from .exceptions import CallError
from .identity.chain import create_default_chain
from .identity.components import CredentialProvider
from .paginators import PaginatedResult
from .protocols import ParsedResponse, create_codec
from .results import Result
from .retries import RetryPolicy, RetryStrategy
from .shapes import OperationShape, ServiceShape
from .signers import DEFAULT_PRESIGN_EXPIRES, SigV4SigningProperties

_LOGGER = logging.getLogger(__name__)


class AwsClient:
    """A client for the operations of one service.

    Calls are lazy: :py:meth:`call` validates and serializes the input right away,
    but the request is only sent once the returned result is awaited or read.

    .. code-block:: python

        async with AwsClient(SQS, region="eu-west-1") as sqs:
            await sqs.call(DELETE_QUEUE, QueueUrl=url)
    """

    def __init__(
        self,
        service: ServiceShape,
        options: Mapping[str, Any] | None = None,
        *,
        http_client: HTTPClient | None = None,
        credential_provider: CredentialProvider | None = None,
        retry_strategy: RetryStrategy | None = None,
        environment_loader: EnvironmentLoader | None = None,
        config_file_loader: ProfileLoader | None = None,
        credentials_file_loader: ProfileLoader | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize an AwsClient.

        :param service: The service the client calls.
        :param options: Configuration options. See :py:class:`Configuration`.
        :param http_client: The transport. Defaults to an aiohttp client owned and
            closed by this client.
        :param credential_provider: The source of signing credentials. Defaults to
            the standard credential provider chain.
        :param retry_strategy: Decides which failed attempts are retried. Defaults to
            a :py:class:`RetryPolicy` honoring the ``max_attempts`` option.
        :param kwargs: Configuration options given as keyword arguments.
        :raises ConfigurationError: If an option is unknown or malformed.
        """
        self.service = service
        self.config = Configuration.create(
            options,
            environment_loader=environment_loader,
            config_file_loader=config_file_loader,
            credentials_file_loader=credentials_file_loader,
            **kwargs,
        )
        if self.config.debug:
            logging.getLogger("aws_async_core").setLevel(logging.DEBUG)
        _LOGGER.debug("Creating %s client with %r", service.name, self.config)

        self._owns_http_client = http_client is None
        self.http_client = http_client or AIOHTTPClient()
        self.credential_provider = credential_provider or create_default_chain(
            self.config, self.http_client, environment_loader=environment_loader
        )
        self._pipeline = RequestPipeline(
            service=service,
            codec=create_codec(service),
            http_client=self.http_client,
            endpoint_resolver=EndpointResolver(
                region=self.config.region,
                endpoint=self.config.endpoint,
                path_style=self.config.path_style_endpoint,
            ),
            region=self.config.region,
            credential_provider=self.credential_provider,
            retry_strategy=retry_strategy
            or RetryPolicy(max_attempts=self.config.max_attempts),
            send_chunked_body=self.config.send_chunked_body,
            log_wire=self.config.debug,
        )

    def call(
        self,
        operation: OperationShape,
        params: Mapping[str, Any] | None = None,
        /,
        *,
        deadline: float | None = None,
        **kwargs: Any,
    ) -> Result:
        """Call an operation.

        The input is serialized immediately, so invalid input raises here and no
        result is created. Nothing is sent until the result is accessed.

        :param operation: The operation to call.
        :param params: The input parameters.
        :param deadline: Seconds all attempts of the call may take.
        :param kwargs: Input parameters given as keyword arguments.
        :returns: A :py:class:`PaginatedResult` for paginated operations and a
            :py:class:`Result` otherwise.
        :raises SerializationError: If the input doesn't match the operation.
        """
        merged = {**(params or {}), **kwargs}
        prepared = self._pipeline.prepare(operation, merged)

        async def execute() -> ParsedResponse:
            return await self._pipeline(prepared, deadline=deadline)

        if operation.pagination is None:
            return Result(execute, operation=operation)

        def next_page(page_params: Mapping[str, Any]) -> PaginatedResult:
            result = self.call(operation, page_params, deadline=deadline)
            assert isinstance(result, PaginatedResult)
            return result

        return PaginatedResult(
            execute, operation=operation, params=merged, next_page=next_page
        )

    async def presign(
        self,
        operation: OperationShape,
        params: Mapping[str, Any] | None = None,
        /,
        *,
        expires: int = DEFAULT_PRESIGN_EXPIRES,
        **kwargs: Any,
    ) -> str:
        """Create a URL that performs a call without further credentials.

        :param expires: Seconds the URL stays valid, at most seven days.
        :raises CredentialsNotFoundError: If no credentials can be resolved.
        :raises SigningError: If ``expires`` is out of range.
        """
        merged = {**(params or {}), **kwargs}
        prepared = self._pipeline.prepare(operation, merged)
        bucket = merged.get("Bucket")
        request = self._pipeline.endpoint_resolver.resolve(
            self.service,
            prepared.request,
            bucket=bucket if isinstance(bucket, str) else None,
        )
        is_s3 = self.service.signing_service == "s3"
        try:
            credentials = await self.credential_provider.get_credentials()
            presigned = self._pipeline.signer.presign(
                signing_properties=SigV4SigningProperties(
                    region=self.config.region,
                    service=self.service.signing_service,
                    uri_encode_path=not is_s3,
                ),
                http_request=request,
                identity=credentials,
                expires=expires,
            )
        except CallError as e:
            raise replace(e, operation=operation.name) from e
        _LOGGER.debug("Presigned %s for %s seconds", operation.name, expires)
        return presigned.destination.build()

    async def close(self) -> None:
        """Close the transport if the client created it."""
        if self._owns_http_client and isinstance(self.http_client, AIOHTTPClient):
            await self.http_client.close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
