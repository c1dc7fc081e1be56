#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import datetime
import hmac
from collections.abc import AsyncIterator
from copy import deepcopy
from dataclasses import replace
from hashlib import sha256
from typing import Required, TypedDict
from urllib.parse import parse_qsl, quote

from .aio.interfaces import StreamingBlob
from .aio.types import AsyncBytesReader
from .exceptions import SigningError
from .http import URI, Field, HTTPRequest
from .identity.components import Credentials
from .utils import remove_dot_segments

HEADERS_EXCLUDED_FROM_SIGNING: tuple[str, ...] = (
    "accept",
    "accept-encoding",
    "authorization",
    "connection",
    "expect",
    "user-agent",
    "x-amzn-trace-id",
)
DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443}

SIGV4_TIMESTAMP_FORMAT: str = "%Y%m%dT%H%M%SZ"
SIGNING_ALGORITHM = "AWS4-HMAC-SHA256"
UNSIGNED_PAYLOAD: str = "UNSIGNED-PAYLOAD"
STREAMING_PAYLOAD = "STREAMING-AWS4-HMAC-SHA256-PAYLOAD"
EMPTY_SHA256_HASH = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"

DEFAULT_PRESIGN_EXPIRES = 3600
MAX_PRESIGN_EXPIRES = 7 * 24 * 60 * 60

CHUNK_SIZE = 64 * 1024
# The hex size, the ";chunk-signature=" extension, the signature and two CRLFs
# surround each chunk.
_CHUNK_SIGNATURE_EXTENSION = ";chunk-signature="
_SIGNATURE_LENGTH = 64


class SigV4SigningProperties(TypedDict, total=False):
    region: Required[str]
    service: Required[str]
    date: str
    payload_signing_enabled: bool
    content_checksum_enabled: bool
    uri_encode_path: bool


class SigV4Signer:
    """Request signer for applying the AWS Signature Version 4 algorithm."""

    def sign(
        self,
        *,
        signing_properties: SigV4SigningProperties,
        http_request: HTTPRequest,
        identity: Credentials,
    ) -> HTTPRequest:
        """Generate and apply a SigV4 Signature to a copy of the supplied request.

        Byte bodies are hashed into the signature. Streamed bodies are sent as
        ``UNSIGNED-PAYLOAD`` over TLS. Use :py:meth:`sign_chunked` to sign them.

        :param signing_properties: SigV4SigningProperties to define signing primitives
            such as the target service, region, and date.
        :param http_request: The request to sign prior to sending to the service.
        :param identity: The credentials to sign with.
        :raises SigningError: If the credentials are expired, the properties are
            incomplete or the payload can't be hashed.
        """
        self._validate_identity(identity=identity)
        properties = self._normalize_signing_properties(
            signing_properties=signing_properties
        )
        new_request = deepcopy(http_request)
        self._apply_required_fields(
            request=new_request, signing_properties=properties, identity=identity
        )
        payload_hash = self._compute_payload_hash(
            request=new_request, signing_properties=properties
        )
        return self._sign_with_payload_hash(
            request=new_request,
            signing_properties=properties,
            identity=identity,
            payload_hash=payload_hash,
        )[0]

    def presign(
        self,
        *,
        signing_properties: SigV4SigningProperties,
        http_request: HTTPRequest,
        identity: Credentials,
        expires: int = DEFAULT_PRESIGN_EXPIRES,
    ) -> HTTPRequest:
        """Generate a copy of the request whose signature is carried by its query.

        The returned request's destination is a URL that can be handed to another
        party and used without credentials until it expires.

        :param expires: Seconds the URL stays valid, at most seven days.
        :raises SigningError: If ``expires`` is out of range or the signing inputs
            are invalid.
        """
        if not 0 < expires <= MAX_PRESIGN_EXPIRES:
            raise SigningError(
                f"Pre-signed URLs expire after 1 to {MAX_PRESIGN_EXPIRES} seconds, "
                f"got {expires}"
            )
        self._validate_identity(identity=identity)
        properties = self._normalize_signing_properties(
            signing_properties=signing_properties
        )
        assert "date" in properties
        new_request = deepcopy(http_request)
        signed_fields = self._normalize_signing_fields(request=new_request)

        params = [
            ("X-Amz-Algorithm", SIGNING_ALGORITHM),
            (
                "X-Amz-Credential",
                f"{identity.access_key_id}/{self._scope(properties)}",
            ),
            ("X-Amz-Date", properties["date"]),
            ("X-Amz-Expires", str(expires)),
            ("X-Amz-SignedHeaders", ";".join(signed_fields)),
        ]
        if identity.session_token is not None:
            params.append(("X-Amz-Security-Token", identity.session_token))
        new_request.destination = new_request.destination.with_query_params(params)

        canonical_request = self.canonical_request(
            signing_properties=properties,
            request=new_request,
            payload_hash=UNSIGNED_PAYLOAD,
        )
        signature = self._signature(
            string_to_sign=self.string_to_sign(
                canonical_request=canonical_request, signing_properties=properties
            ),
            secret_key=identity.secret_access_key,
            signing_properties=properties,
        )
        new_request.destination = new_request.destination.with_query_params(
            [("X-Amz-Signature", signature)]
        )
        return new_request

    def sign_chunked(
        self,
        *,
        signing_properties: SigV4SigningProperties,
        http_request: HTTPRequest,
        identity: Credentials,
    ) -> HTTPRequest:
        """Sign a request whose body is sent in signed ``aws-chunked`` chunks.

        The seed signature covers the headers. Each chunk carries a signature that
        chains from the previous one, so the payload is hashed once as it streams.
        The decoded length is taken from ``Content-Length`` or from a byte body.

        :raises SigningError: If the decoded length of the body is unknown.
        """
        self._validate_identity(identity=identity)
        properties = self._normalize_signing_properties(
            signing_properties=signing_properties
        )
        new_request = deepcopy(http_request)
        decoded_length = _decoded_length(new_request)

        fields = new_request.fields
        if (encoding := fields.get("Content-Encoding")) is not None:
            if "aws-chunked" not in encoding.values:
                encoding.values.insert(0, "aws-chunked")
        else:
            fields.set_field(Field(name="Content-Encoding", values=["aws-chunked"]))
        fields.set_field(
            Field(name="X-Amz-Decoded-Content-Length", values=[str(decoded_length)])
        )
        fields.set_field(
            Field(
                name="Content-Length",
                values=[str(encoded_content_length(decoded_length))],
            )
        )
        fields.set_field(Field(name="X-Amz-Content-SHA256", values=[STREAMING_PAYLOAD]))

        self._apply_required_fields(
            request=new_request, signing_properties=properties, identity=identity
        )
        signed, seed_signature = self._sign_with_payload_hash(
            request=new_request,
            signing_properties=properties,
            identity=identity,
            payload_hash=STREAMING_PAYLOAD,
        )
        signed.body = _ChunkedBody(
            body=http_request.body,
            seed_signature=seed_signature,
            signing_key=self._signing_key(
                secret_key=identity.secret_access_key, signing_properties=properties
            ),
            signing_properties=properties,
            scope=self._scope(properties),
        )
        return signed

    def _sign_with_payload_hash(
        self,
        *,
        request: HTTPRequest,
        signing_properties: SigV4SigningProperties,
        identity: Credentials,
        payload_hash: str,
    ) -> tuple[HTTPRequest, str]:
        if signing_properties.get("content_checksum_enabled", False):
            if "X-Amz-Content-SHA256" not in request.fields:
                request.fields.set_field(
                    Field(name="X-Amz-Content-SHA256", values=[payload_hash])
                )

        canonical_request = self.canonical_request(
            signing_properties=signing_properties,
            request=request,
            payload_hash=payload_hash,
        )
        string_to_sign = self.string_to_sign(
            canonical_request=canonical_request,
            signing_properties=signing_properties,
        )
        signature = self._signature(
            string_to_sign=string_to_sign,
            secret_key=identity.secret_access_key,
            signing_properties=signing_properties,
        )

        signing_fields = self._normalize_signing_fields(request=request)
        credential = f"{identity.access_key_id}/{self._scope(signing_properties)}"
        request.fields.set_field(
            self.generate_authorization_field(
                credential=credential,
                signed_headers=list(signing_fields.keys()),
                signature=signature,
            )
        )
        return request, signature

    def generate_authorization_field(
        self, *, credential: str, signed_headers: list[str], signature: str
    ) -> Field:
        """Generate the `Authorization` field.

        :param credential:
            Credential scope string for generating the Authorization header.
            Defined as:
                <access_key>/<date>/<region>/<service>/<request_type>
        :param signed_headers:
            A list of the field names used in signing.
        :param signature:
            Final hash of the SigV4 signing algorithm generated from the
            canonical request and string to sign.
        """
        signed_headers_str = ";".join(signed_headers)
        auth_str = (
            f"{SIGNING_ALGORITHM} Credential={credential}, "
            f"SignedHeaders={signed_headers_str}, Signature={signature}"
        )
        return Field(name="Authorization", values=[auth_str])

    def _signing_key(
        self, *, secret_key: str, signing_properties: SigV4SigningProperties
    ) -> bytes:
        # Components of Signing Key Calculation
        #
        # DateKey              = HMAC-SHA256("AWS4"+"<SecretAccessKey>", "<YYYYMMDD>")
        # DateRegionKey        = HMAC-SHA256(<DateKey>, "<aws-region>")
        # DateRegionServiceKey = HMAC-SHA256(<DateRegionKey>, "<aws-service>")
        # SigningKey = HMAC-SHA256(<DateRegionServiceKey>, "aws4_request")
        assert "date" in signing_properties
        k_date = _hash(
            key=f"AWS4{secret_key}".encode(), value=signing_properties["date"][0:8]
        )
        k_region = _hash(key=k_date, value=signing_properties["region"])
        k_service = _hash(key=k_region, value=signing_properties["service"])
        return _hash(key=k_service, value="aws4_request")

    def _signature(
        self,
        *,
        string_to_sign: str,
        secret_key: str,
        signing_properties: SigV4SigningProperties,
    ) -> str:
        """Sign the string to sign.

        In SigV4, a signing key is created that is scoped to a specific region and
        service. The date, region, service and resulting signing key are individually
        hashed, then the composite hash is used to sign the string to sign.
        """
        signing_key = self._signing_key(
            secret_key=secret_key, signing_properties=signing_properties
        )
        return _hash(key=signing_key, value=string_to_sign).hex()

    def _validate_identity(self, *, identity: Credentials) -> None:
        """Perform runtime and expiration checks before attempting signing."""
        if not isinstance(identity, Credentials):
            raise SigningError(
                "Received unexpected value for identity parameter. Expected "
                f"Credentials but received {type(identity)}."
            )
        elif identity.is_expired:
            raise SigningError(
                f"Provided identity expired at {identity.expiration}. Please "
                "refresh the credentials or update the expiration parameter."
            )

    def _normalize_signing_properties(
        self, *, signing_properties: SigV4SigningProperties
    ) -> SigV4SigningProperties:
        # Create copy of signing properties to avoid mutating the original
        new_signing_properties = SigV4SigningProperties(**signing_properties)
        for key in ("region", "service"):
            if not new_signing_properties.get(key):
                raise SigningError(f"A {key} is required to sign requests.")
        if "date" not in new_signing_properties:
            date_obj = datetime.datetime.now(datetime.UTC)
            new_signing_properties["date"] = date_obj.strftime(SIGV4_TIMESTAMP_FORMAT)
        return new_signing_properties

    def _apply_required_fields(
        self,
        *,
        request: HTTPRequest,
        signing_properties: SigV4SigningProperties,
        identity: Credentials,
    ) -> None:
        # Apply required X-Amz-Date if neither X-Amz-Date nor Date are present.
        if "Date" not in request.fields and "X-Amz-Date" not in request.fields:
            assert "date" in signing_properties
            request.fields.set_field(
                Field(name="X-Amz-Date", values=[signing_properties["date"]])
            )
        # Apply required X-Amz-Security-Token if token present on identity
        if (
            "X-Amz-Security-Token" not in request.fields
            and identity.session_token is not None
        ):
            request.fields.set_field(
                Field(name="X-Amz-Security-Token", values=[identity.session_token])
            )

    def canonical_request(
        self,
        *,
        signing_properties: SigV4SigningProperties,
        request: HTTPRequest,
        payload_hash: str,
    ) -> str:
        """The canonical request is a standardized string laying out the components used
        in the SigV4 signing algorithm. This is useful to quickly compare inputs to find
        signature mismatches and unintended variances.

        SigV4 defines the canonical request as:
            <HTTPMethod>\n
            <CanonicalURI>\n
            <CanonicalQueryString>\n
            <CanonicalHeaders>\n
            <SignedHeaders>\n
            <HashedPayload>

        :param signing_properties:
            SigV4SigningProperties to define signing primitives such as
            the target service, region, and date.
        :param request:
            The request to use for generating a SigV4 signature.
        :param payload_hash:
            The hex digest of the payload or one of the payload placeholders.
        """
        canonical_path = self._format_canonical_path(
            path=request.destination.path, signing_properties=signing_properties
        )
        canonical_query = self._format_canonical_query(query=request.destination.query)
        normalized_fields = self._normalize_signing_fields(request=request)
        canonical_fields = self._format_canonical_fields(fields=normalized_fields)
        return (
            f"{request.method.upper()}\n"
            f"{canonical_path}\n"
            f"{canonical_query}\n"
            f"{canonical_fields}\n"
            f"{';'.join(normalized_fields)}\n"
            f"{payload_hash}"
        )

    def string_to_sign(
        self,
        *,
        canonical_request: str,
        signing_properties: SigV4SigningProperties,
    ) -> str:
        """The string to sign is the second step of our signing algorithm which
        concatenates the formal identifier of our signing algorithm, the signing
        DateTime, the scope of our credentials, and a hash of our previously generated
        canonical request.

        SigV4 defines the string to sign as:
            Algorithm \n
            RequestDateTime \n
            CredentialScope  \n
            HashedCanonicalRequest
        """
        date = signing_properties.get("date")
        if date is None:
            raise SigningError(
                "Cannot generate string_to_sign without a valid date "
                f"in your signing_properties. Current value: {date}"
            )
        return (
            f"{SIGNING_ALGORITHM}\n"
            f"{date}\n"
            f"{self._scope(signing_properties)}\n"
            f"{sha256(canonical_request.encode()).hexdigest()}"
        )

    def _scope(self, signing_properties: SigV4SigningProperties) -> str:
        assert "date" in signing_properties
        formatted_date = signing_properties["date"][0:8]
        region = signing_properties["region"]
        service = signing_properties["service"]
        # Scope format: <YYYYMMDD>/<AWS Region>/<AWS Service>/aws4_request
        return f"{formatted_date}/{region}/{service}/aws4_request"

    def _format_canonical_path(
        self, *, path: str | None, signing_properties: SigV4SigningProperties
    ) -> str:
        if path is None:
            path = "/"

        if signing_properties.get("uri_encode_path", True):
            normalized_path = remove_dot_segments(path, remove_consecutive_slashes=True)
            return quote(string=normalized_path, safe="/")
        else:
            return remove_dot_segments(path)

    def _format_canonical_query(self, *, query: str | None) -> str:
        if query is None:
            return ""

        query_params = parse_qsl(qs=query, keep_blank_values=True)
        query_parts = (
            (quote(string=key, safe="-_.~"), quote(string=value, safe="-_.~"))
            for key, value in query_params
        )
        # key-value pairs must be in sorted order for their encoded forms.
        return "&".join(f"{key}={value}" for key, value in sorted(query_parts))

    def _normalize_signing_fields(self, *, request: HTTPRequest) -> dict[str, str]:
        normalized_fields = {
            field.name.lower(): field.as_string()
            for field in request.fields
            if field.name.lower() not in HEADERS_EXCLUDED_FROM_SIGNING
        }
        if "host" not in normalized_fields:
            normalized_fields["host"] = self._normalize_host_field(
                uri=request.destination
            )

        return dict(sorted(normalized_fields.items()))

    def _normalize_host_field(self, *, uri: URI) -> str:
        if uri.port is not None and DEFAULT_PORTS.get(uri.scheme) == uri.port:
            uri = replace(uri, port=None)
        return uri.netloc

    def _format_canonical_fields(self, *, fields: dict[str, str]) -> str:
        return "".join(
            f"{key}:{' '.join(value.split())}\n" for key, value in fields.items()
        )

    def _compute_payload_hash(
        self, *, request: HTTPRequest, signing_properties: SigV4SigningProperties
    ) -> str:
        body = request.body
        is_bytes = isinstance(body, bytes | bytearray)
        # All insecure connections should be signed
        if request.destination.scheme == "https" and (
            not signing_properties.get("payload_signing_enabled", True) or not is_bytes
        ):
            return UNSIGNED_PAYLOAD

        if not is_bytes:
            raise SigningError(
                "Streamed bodies sent without TLS must be signed in chunks."
            )
        if not body:
            return EMPTY_SHA256_HASH
        return sha256(body).hexdigest()  # type: ignore[arg-type]


def encoded_content_length(decoded_length: int) -> int:
    """The length of an ``aws-chunked`` body wrapping ``decoded_length`` bytes."""
    full_chunks, remainder = divmod(decoded_length, CHUNK_SIZE)
    sizes = [CHUNK_SIZE] * full_chunks + ([remainder] if remainder else []) + [0]
    return sum(
        len(f"{size:x}")
        + len(_CHUNK_SIGNATURE_EXTENSION)
        + _SIGNATURE_LENGTH
        + 4
        + size
        for size in sizes
    )


def _decoded_length(request: HTTPRequest) -> int:
    if (length := request.fields.get_value("Content-Length")) is not None:
        try:
            return int(length)
        except ValueError as e:
            raise SigningError(f"Invalid Content-Length: {length!r}") from e
    if isinstance(request.body, bytes | bytearray):
        return len(request.body)
    raise SigningError(
        "Chunked signing requires a Content-Length for streamed bodies."
    )


class _ChunkedBody:
    """Wraps a body into signed ``aws-chunked`` chunks as it is read."""

    def __init__(
        self,
        *,
        body: StreamingBlob,
        seed_signature: str,
        signing_key: bytes,
        signing_properties: SigV4SigningProperties,
        scope: str,
    ) -> None:
        self._reader = AsyncBytesReader(body)
        self._previous_signature = seed_signature
        self._signing_key = signing_key
        self._date = signing_properties.get("date", "")
        self._scope = scope

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._iter_chunks()

    async def _iter_chunks(self) -> AsyncIterator[bytes]:
        buffer = b""
        while True:
            data = await self._reader.read(CHUNK_SIZE - len(buffer))
            if data:
                buffer += data
                if len(buffer) < CHUNK_SIZE:
                    continue
            if buffer:
                yield self._frame(buffer)
                buffer = b""
            if not data:
                break
        yield self._frame(b"")
        await self._reader.close()

    def _frame(self, chunk: bytes) -> bytes:
        string_to_sign = (
            "AWS4-HMAC-SHA256-PAYLOAD\n"
            f"{self._date}\n"
            f"{self._scope}\n"
            f"{self._previous_signature}\n"
            f"{EMPTY_SHA256_HASH}\n"
            f"{sha256(chunk).hexdigest()}"
        )
        signature = _hash(key=self._signing_key, value=string_to_sign).hex()
        self._previous_signature = signature
        header = f"{len(chunk):x}{_CHUNK_SIGNATURE_EXTENSION}{signature}\r\n"
        return header.encode() + chunk + b"\r\n"


def _hash(key: bytes, value: str) -> bytes:
    return hmac.new(key=key, msg=value.encode(), digestmod=sha256).digest()
