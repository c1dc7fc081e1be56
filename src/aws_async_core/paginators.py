#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import logging
from collections.abc import AsyncIterator, Callable, Mapping
from typing import Any, Self

from .exceptions import PaginationError
from .results import Execute, Result, ResultState
from .shapes import OperationShape, Pagination

_LOGGER = logging.getLogger(__name__)


def _lookup(output: Mapping[str, Any], path: str) -> Any:
    """Resolve a dotted path like ``NextMarker`` or ``Page.NextToken``."""
    value: Any = output
    for part in path.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


class PaginatedResult(Result):
    """A result whose items may span several pages.

    Iterating over the result yields the items of every page in order. While the
    items of a page are consumed, the request for the next page is already in
    flight. At most one page is fetched ahead of consumption, and abandoning the
    iteration cancels that request.

    .. code-block:: python

        async for queue_url in client.call(LIST_QUEUES):
            print(queue_url)
    """

    def __init__(
        self,
        execute: Execute,
        *,
        operation: OperationShape,
        params: Mapping[str, Any],
        next_page: Callable[[Mapping[str, Any]], "PaginatedResult"],
    ) -> None:
        """Initialize a PaginatedResult.

        :param params: The input parameters of the call of this page.
        :param next_page: Creates the result of a call with the given parameters.
        """
        super().__init__(execute, operation=operation)
        if operation.pagination is None:
            raise ValueError(f"{operation.name} is not paginated")
        self.pagination: Pagination = operation.pagination
        self.params = params
        self._next_page_factory = next_page

    def __aiter__(self) -> AsyncIterator[Any]:
        return self.iter_items()

    async def iter_items(
        self, *, current_page_only: bool = False
    ) -> AsyncIterator[Any]:
        """Iterate over the items of the result.

        :param current_page_only: Whether to stop after the items of this page.
        """
        if current_page_only:
            await self.resolve()
            for item in self._page_items():
                yield item
            return

        pages = self.iter_pages()
        try:
            async for page in pages:
                for item in page._page_items():
                    yield item
        finally:
            await pages.aclose()

    async def iter_pages(self) -> AsyncIterator[Self]:
        """Iterate over this page and the pages that follow it.

        The request for the next page is started before a page is yielded.

        :raises PaginationError: If a page repeats the token it was requested with.
        """
        page = self
        next_page: Self | None = None
        try:
            await page.resolve()
            while True:
                next_page = page.next_page()
                if next_page is not None:
                    _LOGGER.debug("Prefetching next page of %s", self.operation.name)
                    next_page.start()
                yield page
                if next_page is None:
                    return
                page = next_page
                await page.resolve()
        finally:
            if next_page is not None and next_page.state is ResultState.EXECUTING:
                _LOGGER.debug("Cancelling prefetched page of %s", self.operation.name)
                next_page.cancel()

    def next_page(self) -> Self | None:
        """Create the result of the next page, or None if this is the last page.

        The result must be hydrated.

        :raises PaginationError: If the next token equals the token of this page.
        """
        assert self._response is not None
        output = self._response.output
        pagination = self.pagination

        if pagination.more_results is not None:
            if not _lookup(output, pagination.more_results):
                return None

        tokens = [_lookup(output, path) for path in pagination.output_tokens]
        if all(token in (None, "") for token in tokens):
            return None

        sent = [self.params.get(name) for name in pagination.input_tokens]
        if tokens == sent:
            raise PaginationError(
                f"{self.operation.name} returned the token it was called with: "
                f"{tokens!r}"
            )

        params = dict(self.params)
        for name, token in zip(pagination.input_tokens, tokens, strict=True):
            if token in (None, ""):
                params.pop(name, None)
            else:
                params[name] = token
        return self._next_page_factory(params)  # type: ignore[return-value]

    def _page_items(self) -> list[Any]:
        assert self._response is not None
        if self.pagination.result_key is None:
            return []
        return list(_lookup(self._response.output, self.pagination.result_key) or [])
