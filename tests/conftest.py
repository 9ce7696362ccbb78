"""
Shared pytest fixtures for testing the exchange client.

HTTP traffic never leaves the process: the transport is exercised
against ``httpx.MockTransport`` and the client against a fake transport
which records the requests it is given.
"""

import json
from datetime import datetime, timezone

import httpx
import pytest
from pymacaroons import MACAROON_V2, Macaroon

from bitlum.auth import decode_macaroon, encode_macaroon
from bitlum.client import Client
from bitlum.core import Transport
from bitlum.envelope import GraphQLRequest


FIXED_TIME = datetime(2026, 10, 18, 12, 30, 0, tzinfo=timezone.utc)


class MockExchangeServer:
    """In-process stand-in for the exchange GraphQL server.

    Stores every request it receives and answers with the preset
    status and body, or raises ``error`` to simulate a network failure.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.body: bytes = b'{"data": {}}'
        self.error: Exception | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, content=self.body)

    @property
    def request(self) -> httpx.Request | None:
        """Last request received, None if none received yet."""
        return self.requests[-1] if self.requests else None

    def request_json(self) -> dict:
        return json.loads(self.request.content)

    def http_client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))


class FakeTransport(Transport):
    """Transport double which records calls and returns a preset body."""

    def __init__(self):
        self.calls: list[tuple[bool, GraphQLRequest]] = []
        self.body: str = '{"data": {}}'
        self.error: Exception | None = None

    def do(self, authenticated: bool, request: GraphQLRequest) -> bytes:
        self.calls.append((authenticated, request))
        if self.error is not None:
            raise self.error
        return self.body.encode()

    def respond(self, data=None, errors=None) -> None:
        envelope = {}
        if data is not None:
            envelope["data"] = data
        if errors is not None:
            envelope["errors"] = errors
        self.body = json.dumps(envelope)

    @property
    def authenticated(self) -> bool:
        return self.calls[-1][0]

    @property
    def request(self) -> GraphQLRequest:
        return self.calls[-1][1]


def read_caveat_ids(authorization: str) -> list[str]:
    """Caveat predicates of the macaroon carried in an Authorization header."""
    scheme, token = authorization.split(" ", 1)
    assert scheme == "Macaroon"
    ids = []
    for caveat in decode_macaroon(token).caveats:
        cid = caveat.caveat_id
        ids.append(cid.decode() if isinstance(cid, bytes) else cid)
    return ids


def read_nonce(authorization: str) -> int:
    """Nonce caveat value of the macaroon carried in an Authorization header."""
    nonces = [c for c in read_caveat_ids(authorization) if c.startswith("nonce = ")]
    assert len(nonces) == 1
    return int(nonces[0].split(" = ", 1)[1])


@pytest.fixture
def root_macaroon():
    """Root macaroon as issued by the exchange for a user."""
    m = Macaroon(
        location="bitlum",
        identifier="user 2166323465",
        key="test root key",
        version=MACAROON_V2,
    )
    m.add_first_party_caveat("disops issue_api_token")
    return m


@pytest.fixture
def macaroon_hex(root_macaroon):
    """Hex-encoded binary form of the root macaroon."""
    return encode_macaroon(root_macaroon)


@pytest.fixture
def fixed_clock(fixed_time):
    return lambda: fixed_time


@pytest.fixture
def exchange_server():
    return MockExchangeServer()


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def client(fake_transport):
    """Client wired to the fake transport."""
    return Client(fake_transport)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep tests away from real config files and telemetry settings."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("bitlum.config.USER_CONFIG_DIR", tmp_path / "home" / ".bitlum")
    monkeypatch.delenv("OTLP_ENABLED", raising=False)
    for name in ("BITLUM_URL", "BITLUM_MACAROON", "BITLUM_TOKEN"):
        monkeypatch.delenv(name, raising=False)


# --- Helper fixtures for inspecting Authorization headers ---

@pytest.fixture
def fixed_time():
    return FIXED_TIME


@pytest.fixture
def caveat_ids():
    """Caveat predicates of the macaroon carried in an Authorization header."""
    return read_caveat_ids


@pytest.fixture
def nonce_of():
    """Nonce caveat value of the macaroon carried in an Authorization header."""
    return read_nonce
