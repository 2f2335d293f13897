"""Error taxonomy for token generation."""

from enum import Enum


class ErrorKind(Enum):
    """Failure categories surfaced by the token pipeline."""
    IDENTIFIER_GENERATION = "IDENTIFIER_GENERATION"
    PROXY_CONFIG = "PROXY_CONFIG"
    TRANSPORT = "TRANSPORT"
    CHALLENGE = "CHALLENGE"
    TOKEN_GENERATION = "TOKEN_GENERATION"
    INVALID_TOKEN = "INVALID_TOKEN"


class TokenProviderError(Exception):
    """Base error carrying its kind."""

    kind: ErrorKind

    def __init__(self, message: str, kind: ErrorKind | None = None):
        self.message = message
        if kind is not None:
            self.kind = kind
        super().__init__(message)


class IdentifierGenerationError(TokenProviderError):
    """Visitor identifier could not be minted."""
    kind = ErrorKind.IDENTIFIER_GENERATION


class ProxyConfigError(TokenProviderError):
    """Proxy URL could not be parsed."""
    kind = ErrorKind.PROXY_CONFIG


class TransportError(TokenProviderError):
    """Network failure while talking to a remote endpoint."""
    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str, status: int | str | None = None):
        self.status = status
        super().__init__(message)


class ChallengeError(TokenProviderError):
    """The solver failed to produce a challenge."""
    kind = ErrorKind.CHALLENGE


class TokenGenerationError(TokenProviderError):
    """The solver failed to turn a challenge into a token."""
    kind = ErrorKind.TOKEN_GENERATION


class InvalidTokenError(TokenProviderError):
    """The solver reported success but produced no token."""
    kind = ErrorKind.INVALID_TOKEN
