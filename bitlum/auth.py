"""Credentials attached to exchange requests.

Two kinds of credential are supported:

1. ``BearerCredential``: a static token (JWT or API token) sent as
   ``Authorization: Bearer <token>`` on every request.
2. ``MacaroonCredential``: a root macaroon which is attenuated on every
   authenticated request with a nonce caveat and a current-time caveat,
   so a captured request can not be replayed.
"""

import base64
import logging
import struct
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable

from pymacaroons import Macaroon
from pymacaroons.exceptions import MacaroonDeserializationException, MacaroonException

from bitlum.errors import CredentialDerivationError, InvalidCredentialError

logger = logging.getLogger(__name__)

NONCE_CAVEAT = "nonce"
TIME_CAVEAT = "time"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- Macaroon wire format ---


def decode_macaroon(hex_token: str) -> Macaroon:
    """Decode a hex-encoded binary macaroon.

    Raises:
        InvalidCredentialError: If the token is not valid hex or not a
            valid binary macaroon.
    """
    try:
        raw = bytes.fromhex(hex_token.strip())
        if not raw:
            raise ValueError("empty macaroon")
        return Macaroon.deserialize(base64.urlsafe_b64encode(raw).decode("ascii"))
    except (ValueError, IndexError, struct.error, MacaroonDeserializationException) as e:
        raise InvalidCredentialError(f"failed to decode macaroon: {e}") from e


def encode_macaroon(macaroon: Macaroon) -> str:
    """Encode a macaroon as hex of its binary serialization."""
    serialized = macaroon.serialize()
    if isinstance(serialized, str):
        serialized = serialized.encode("ascii")
    raw = base64.urlsafe_b64decode(serialized + b"=" * (-len(serialized) % 4))
    return raw.hex()


def format_caveat(name: str, value: object) -> str:
    return f"{name} = {value}"


def format_time(moment: datetime) -> str:
    """Render a timestamp the way the time caveat carries it (RFC 3339, UTC)."""
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


# --- Credentials ---


class Credential(ABC):
    """Produces the ``Authorization`` header value for a request."""

    @abstractmethod
    def auth_header(self, authenticated: bool) -> str | None:
        """Return the header value, or None to send the request without one.

        Args:
            authenticated: Whether the operation requires authentication.
        """


class BearerCredential(Credential):
    """Static bearer token, attached to every request."""

    def __init__(self, token: str):
        if not token:
            raise InvalidCredentialError("empty bearer token")
        self._token = token

    def auth_header(self, authenticated: bool) -> str | None:
        return f"Bearer {self._token}"

    def __repr__(self) -> str:
        return "BearerCredential(token=***)"


class MacaroonCredential(Credential):
    """Root macaroon attenuated per request with nonce and time caveats.

    The nonce counter is owned by the instance and shared by every
    thread using it. It only ever grows: a nonce consumed by a request
    whose derivation later fails is skipped, not reused.
    """

    def __init__(self, root: Macaroon, clock: Callable[[], datetime] = _utcnow):
        self._root = root
        self._clock = clock
        self._nonce = 0
        self._lock = threading.Lock()

    @classmethod
    def from_hex(cls, hex_token: str, clock: Callable[[], datetime] = _utcnow) -> "MacaroonCredential":
        """Build a credential from a hex-encoded binary macaroon."""
        return cls(decode_macaroon(hex_token), clock=clock)

    @property
    def nonce(self) -> int:
        """Last nonce handed out (0 before the first authenticated request)."""
        with self._lock:
            return self._nonce

    def _next_nonce(self) -> int:
        with self._lock:
            self._nonce += 1
            return self._nonce

    def derive(self, nonce: int) -> Macaroon:
        """Attenuate a copy of the root macaroon with nonce and time caveats."""
        m = self._root.copy()
        m.add_first_party_caveat(format_caveat(NONCE_CAVEAT, nonce))
        m.add_first_party_caveat(format_caveat(TIME_CAVEAT, format_time(self._clock())))
        return m

    def auth_header(self, authenticated: bool) -> str | None:
        if not authenticated:
            return None

        nonce = self._next_nonce()
        try:
            token = encode_macaroon(self.derive(nonce))
        except (MacaroonException, ValueError, TypeError) as e:
            logger.warning(f"Failed to derive macaroon for nonce {nonce}: {e}")
            raise CredentialDerivationError(f"failed to derive macaroon: {e}") from e

        logger.debug(f"Derived macaroon with nonce {nonce}")
        return f"Macaroon {token}"

    def __repr__(self) -> str:
        return f"MacaroonCredential(location={self._root.location!r}, nonce={self.nonce})"
