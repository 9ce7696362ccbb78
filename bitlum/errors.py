"""Exceptions raised by the Bitlum exchange client."""

from typing import Any


class BitlumError(Exception):
    """Base class for all client errors."""


# --- Transport stage ---


class TransportError(BitlumError):
    """Request could not be delivered or its response could not be read."""


class EncodingError(TransportError):
    """Request variables are not serializable to JSON."""


class NetworkError(TransportError):
    """Connection could not be established or the request did not complete."""


class HTTPStatusError(TransportError):
    """Exchange answered with a status other than 200 OK."""

    def __init__(self, status_code: int, reason: str):
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"unexpected response status: {status_code} {reason}".rstrip())


class BodyReadError(TransportError):
    """Response body could not be fully read."""


# --- Decode / application stage ---


class DecodingError(BitlumError):
    """Response body is not JSON or does not match the expected shape."""


class ApplicationError(BitlumError):
    """Exchange returned one or more GraphQL errors.

    ``data`` holds whatever the response managed to decode alongside
    the errors, so callers can still inspect partial results.
    """

    def __init__(self, message: str, errors: list | None = None, data: Any = None):
        self.errors = errors or []
        self.data = data
        super().__init__(message)


# --- Credentials ---


class CredentialError(BitlumError):
    """Credential could not be built or used."""


class InvalidCredentialError(CredentialError):
    """Credential material supplied at construction time is malformed."""


class CredentialDerivationError(CredentialError):
    """Per-request credential could not be derived from the root credential."""
