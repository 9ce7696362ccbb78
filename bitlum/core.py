"""Low level transport which delivers GraphQL requests to the exchange.

The client talks to the exchange only through a ``Transport``, which
decouples operations from the real HTTP backend:

1. ``GraphQLTransport``: authenticated HTTP POST to the exchange.
2. Tests substitute their own transport or an ``httpx.MockTransport``.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any

import httpx
from pydantic_core import PydanticSerializationError

from bitlum import telemetry
from bitlum.auth import Credential
from bitlum.envelope import GraphQLRequest
from bitlum.errors import (
    BodyReadError,
    CredentialError,
    EncodingError,
    HTTPStatusError,
    NetworkError,
)
from bitlum.schemas import format_money

logger = logging.getLogger(__name__)


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return format_money(value)
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


def encode_request(request: GraphQLRequest) -> bytes:
    """Serialize the request envelope to JSON.

    Pydantic models inside ``variables`` are dumped by alias and
    ``Decimal`` values as fixed-point strings, wherever they appear.

    Raises:
        EncodingError: If ``variables`` holds something JSON can't carry.
    """
    try:
        payload = request.model_dump(by_alias=True)
        return json.dumps(payload, default=_json_default, separators=(",", ":")).encode()
    except (PydanticSerializationError, TypeError, ValueError) as e:
        raise EncodingError(f"failed to encode request: {e}") from e


class Transport(ABC):
    """Delivers a request and returns the raw response body."""

    @abstractmethod
    def do(self, authenticated: bool, request: GraphQLRequest) -> bytes:
        """Send ``request`` and return the response body unparsed."""

    def close(self) -> None:
        """Release any resources held by the transport."""


class GraphQLTransport(Transport):
    """Sends requests to the exchange GraphQL endpoint over HTTP.

    One instance may be shared between threads. Mutable state is the
    credential's nonce counter, which guards itself, and the lazily
    created httpx client, which is created under a lock.
    """

    def __init__(
        self,
        url: str,
        credential: Credential,
        http_client: httpx.Client | None = None,
    ):
        """Initialize the transport.

        Args:
            url: Full URL of the GraphQL endpoint
            credential: Source of the Authorization header
            http_client: Optional preconfigured httpx client; by default
                one is created without timeouts or redirects
        """
        self.url = url
        self.credential = credential
        self._client = http_client
        self._owns_client = http_client is None
        self._client_lock = threading.Lock()

    @property
    def client(self) -> httpx.Client:
        """Get the HTTP client, creating one if needed.

        Threads racing on the first request all get the same client.
        """
        with self._client_lock:
            if self._client is None:
                self._client = httpx.Client(timeout=None, follow_redirects=False)
            return self._client

    def close(self) -> None:
        with self._client_lock:
            if self._client is not None and self._owns_client:
                self._client.close()
                self._client = None

    def __enter__(self) -> "GraphQLTransport":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def _headers(self, authenticated: bool) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        try:
            authorization = self.credential.auth_header(authenticated)
        except CredentialError:
            telemetry.record_failure("credential")
            raise
        if authorization is not None:
            headers["Authorization"] = authorization
        return headers

    def do(self, authenticated: bool, request: GraphQLRequest) -> bytes:
        """Perform a single POST of ``request`` and return the response body.

        Exactly one network attempt is made; nothing is retried.

        Raises:
            EncodingError: Request could not be serialized
            CredentialDerivationError: Authorization could not be derived
            NetworkError: Connection or request failed
            HTTPStatusError: Response status was not 200
            BodyReadError: Response body could not be read
        """
        try:
            body = encode_request(request)
        except EncodingError:
            telemetry.record_failure("encode")
            raise

        headers = self._headers(authenticated)

        telemetry.record_request(authenticated)
        logger.debug(f"POST {self.url} ({len(body)} bytes, authenticated={authenticated})")

        try:
            http_request = self.client.build_request("POST", self.url, content=body, headers=headers)
            response = self.client.send(http_request, stream=True)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            telemetry.record_failure("network")
            logger.warning(f"Request to {self.url} failed: {e}")
            raise NetworkError(f"failed to do http request: {e}") from e

        try:
            if response.status_code != httpx.codes.OK:
                telemetry.record_failure("status")
                logger.warning(f"Unexpected response status from {self.url}: {response.status_code}")
                raise HTTPStatusError(response.status_code, response.reason_phrase)

            try:
                return response.read()
            except httpx.HTTPError as e:
                telemetry.record_failure("read")
                logger.warning(f"Failed to read response body from {self.url}: {e}")
                raise BodyReadError(f"failed to read response body: {e}") from e
        finally:
            response.close()
