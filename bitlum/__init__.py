"""Client library for the Bitlum exchange GraphQL API."""

from bitlum._version import VERSION
from bitlum.auth import BearerCredential, Credential, MacaroonCredential
from bitlum.client import Client, new_client
from bitlum.core import GraphQLTransport, Transport
from bitlum.envelope import GraphQLRequest, ResponseError, extract_error
from bitlum.errors import (
    ApplicationError,
    BitlumError,
    BodyReadError,
    CredentialDerivationError,
    DecodingError,
    EncodingError,
    HTTPStatusError,
    InvalidCredentialError,
    NetworkError,
)

__version__ = VERSION

__all__ = [
    "ApplicationError",
    "BearerCredential",
    "BitlumError",
    "BodyReadError",
    "Client",
    "Credential",
    "CredentialDerivationError",
    "DecodingError",
    "EncodingError",
    "GraphQLRequest",
    "GraphQLTransport",
    "HTTPStatusError",
    "InvalidCredentialError",
    "MacaroonCredential",
    "NetworkError",
    "ResponseError",
    "Transport",
    "extract_error",
    "new_client",
]
