#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
from collections import Counter, OrderedDict
from collections.abc import Iterable, Iterator
from copy import deepcopy
from dataclasses import dataclass, field, replace
from functools import cached_property
from typing import Any, Self
from urllib.parse import quote, urlencode, urlparse, urlunparse

from .aio.interfaces import StreamingBlob
from .aio.utils import close, read_streaming_blob_async


class Field:
    """A name-value pair representing a single field in an HTTP Request or Response.

    All field names are case insensitive and case-variance must be treated as
    equivalent. Names may be normalized but should be preserved for accuracy during
    transmission.
    """

    def __init__(self, *, name: str, values: Iterable[str] | None = None):
        self.name = name
        self.values: list[str] = list(values) if values is not None else []

    def add(self, value: str) -> None:
        """Append a value to a field."""
        self.values.append(value)

    def set(self, values: list[str]) -> None:
        """Overwrite existing field values."""
        self.values = values

    def as_string(self, delimiter: str = ",") -> str:
        """Get delimited string of all values.

        If the ``Field`` has zero values, the empty string is returned. If the ``Field``
        has exactly one value, the value is returned unmodified. For multi-valued
        fields, values that contain commas or double quotes are quoted and escaped.
        """
        value_count = len(self.values)
        if value_count == 0:
            return ""
        if value_count == 1:
            return self.values[0]
        return delimiter.join(quote_and_escape_field_value(val) for val in self.values)

    def as_tuples(self) -> list[tuple[str, str]]:
        """Get list of ``name``, ``value`` tuples where each tuple represents one
        value."""
        return [(self.name, val) for val in self.values]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Field):
            return False
        return self.name == other.name and self.values == other.values

    def __repr__(self) -> str:
        return f"Field(name={self.name!r}, value={self.values!r})"


class Fields:
    def __init__(self, initial: Iterable[Field] | None = None):
        """Collection of header entries mapped by case-insensitive name.

        :param initial: Initial list of ``Field`` objects. Names must be unique.
        """
        init_fields = list(initial) if initial is not None else []
        init_field_names = [self._normalize_field_name(fld.name) for fld in init_fields]
        fname_counter = Counter(init_field_names)
        non_unique_names = [name for name, num in fname_counter.items() if num > 1]
        if non_unique_names:
            raise ValueError(
                "Field names of the initial list of fields must be unique. The "
                "following normalized field names appear more than once: "
                f"{', '.join(non_unique_names)}."
            )
        self.entries: OrderedDict[str, Field] = OrderedDict(
            zip(init_field_names, init_fields)
        )

    def set_field(self, field: Field) -> None:
        """Alias for __setitem__ to utilize the field.name for the entry key."""
        self.__setitem__(field.name, field)

    def __setitem__(self, name: str, field: Field) -> None:
        """Set or override entry for a Field name."""
        normalized_name = self._normalize_field_name(name)
        if normalized_name != self._normalize_field_name(field.name):
            raise ValueError(
                f"Supplied key {name} does not match Field.name provided: {field.name}"
            )
        self.entries[normalized_name] = field

    def get(self, key: str, default: Field | None = None) -> Field | None:
        return self[key] if key in self else default

    def get_value(self, key: str) -> str | None:
        """Get the joined string value of a field, or None if it isn't set."""
        if (found := self.get(key)) is None:
            return None
        return found.as_string()

    def __getitem__(self, name: str) -> Field:
        return self.entries[self._normalize_field_name(name)]

    def __delitem__(self, name: str) -> None:
        del self.entries[self._normalize_field_name(name)]

    def extend(self, other: "Fields") -> None:
        """Merges ``entries`` of ``other`` into the current ``entries``.

        Values of fields that already exist are appended, other fields are added.
        """
        for other_field in other:
            try:
                cur_field = self.__getitem__(other_field.name)
                for other_value in other_field.values:
                    cur_field.add(other_value)
            except KeyError:
                self.__setitem__(other_field.name, other_field)

    def _normalize_field_name(self, name: str) -> str:
        return name.lower()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Fields):
            return False
        return self.entries == other.entries

    def __iter__(self) -> Iterator[Field]:
        yield from self.entries.values()

    def __len__(self) -> int:
        return len(self.entries)

    def __repr__(self) -> str:
        return f"Fields({self.entries})"

    def __contains__(self, key: str) -> bool:
        return self._normalize_field_name(key) in self.entries


def quote_and_escape_field_value(value: str) -> str:
    """Escapes and quotes a single :class:`Field` value if necessary."""
    chars_to_quote = (",", '"')
    if any(char in chars_to_quote for char in value):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    else:
        return value


def tuples_to_fields(tuples: Iterable[tuple[str, str]]) -> Fields:
    """Convert ``name``, ``value`` tuples to a ``Fields`` object.

    Each tuple represents one Field value.
    """
    fields = Fields()
    for name, value in tuples:
        try:
            fields[name].add(value)
        except KeyError:
            fields[name] = Field(name=name, values=[value])

    return fields


@dataclass(kw_only=True, frozen=True)
class URI:
    """Universal Resource Identifier, target location for a :py:class:`HTTPRequest`."""

    scheme: str = "https"
    """For example ``http`` or ``https``."""

    host: str
    """The hostname, for example ``amazonaws.com``."""

    port: int | None = None
    """An explicit port number."""

    path: str | None = None
    """Path component of the URI."""

    query: str | None = None
    """Query component of the URI as an already encoded string."""

    @property
    def netloc(self) -> str:
        """Construct netloc string in format ``{host}:{port}``.

        The port is only included if set. IPv6 hosts are wrapped in brackets.
        """
        return self._netloc

    # cached_property does NOT behave like property, it actually allows for setting.
    # Therefore we need a layer of indirection.
    @cached_property
    def _netloc(self) -> str:
        host = self.host
        if ":" in host and not host.startswith("["):
            host = f"[{host}]"
        if self.port is not None:
            return f"{host}:{self.port}"
        return host

    def build(self) -> str:
        """Construct URI string representation.

        Returns a string of the form ``{scheme}://{host}:{port}{path}?{query}``
        """
        components = (self.scheme, self.netloc, self.path or "", "", self.query, "")
        return urlunparse(components)

    def with_query_params(self, params: Iterable[tuple[str, str]]) -> Self:
        """Return a copy of the URI with the given parameters appended to the query."""
        extra = urlencode(list(params), safe="-_.~", quote_via=quote)
        if not extra:
            return self
        query = f"{self.query}&{extra}" if self.query else extra
        return replace(self, query=query)

    @classmethod
    def from_string(cls, value: str) -> Self:
        parsed = urlparse(value)
        if not parsed.scheme or not parsed.hostname:
            raise ValueError(f"Expected an absolute URL, found: {value!r}")
        return cls(
            scheme=parsed.scheme,
            host=parsed.hostname,
            port=parsed.port,
            path=parsed.path or None,
            query=parsed.query or None,
        )


@dataclass(kw_only=True)
class HTTPRequest:
    """Wire-level HTTP request.

    :param destination: The URI where the request should be sent to.
    :param method: The HTTP method of the request, for example "GET".
    :param fields: ``Fields`` object containing HTTP headers.
    :param body: The payload, either bytes or an async stream of bytes.
    """

    destination: URI
    method: str
    fields: Fields = field(default_factory=Fields)
    body: StreamingBlob = field(repr=False, default=b"")

    def __deepcopy__(self, memo: dict[int, Any] | None = None) -> "HTTPRequest":
        # The destination is immutable and the body may be a one-shot stream, so only
        # the fields are copied.
        return HTTPRequest(
            destination=self.destination,
            method=self.method,
            fields=deepcopy(self.fields, memo),
            body=self.body,
        )

    async def consume_body_async(self) -> bytes:
        """Iterate over request body and return as bytes."""
        return await read_streaming_blob_async(self.body)


@dataclass(kw_only=True)
class HTTPResponse:
    """Wire-level HTTP response whose body is consumed exactly once."""

    status: int
    """The 3 digit response status code (1xx, 2xx, 3xx, 4xx, 5xx)."""

    fields: Fields
    """HTTP header fields."""

    body: StreamingBlob = field(repr=False, default=b"")
    """The response payload as bytes or a stream of bytes."""

    reason: str | None = None
    """Optional string provided by the server explaining the status."""

    async def consume_body_async(self) -> bytes:
        """Read the whole body and release the underlying connection."""
        try:
            return await read_streaming_blob_async(self.body)
        finally:
            await self.close()

    async def close(self) -> None:
        """Release the underlying connection without reading the rest of the body."""
        await close(self.body)


@dataclass(kw_only=True)
class HTTPRequestConfiguration:
    """Request-level HTTP configuration.

    :param timeout: How long, in seconds, a single attempt may take to connect and
        receive the response status and headers.
    :param read_timeout: How long, in seconds, the client will wait for each chunk of
        the response body before timing out.
    """

    timeout: float | None = 60.0
    read_timeout: float | None = 60.0
