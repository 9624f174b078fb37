"""Exception hierarchy shared by the Sonos client and the command line."""

from __future__ import annotations

from typing import Any, Optional


class SonosError(Exception):
    """Base exception for every failure surfaced by sonos_ctl."""


class IntegrationRequired(SonosError):
    """Raised when no OAuth integration has been registered via ``init``."""

    def __init__(self, message: str = "No integration configuration found") -> None:
        super().__init__(message)


class TokenRequired(SonosError):
    """Raised when an API call is attempted without an authorized session."""

    def __init__(self, message: str = "No access token available") -> None:
        super().__init__(message)


class TransportError(SonosError):
    """Raised when a request could not be delivered (DNS, TLS, timeouts...)."""


class OAuthError(SonosError):
    """Raised when the token endpoint rejects an exchange."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        error: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error = error


class NoRefreshTokenError(OAuthError):
    """Raised when an authorization-code exchange omits the refresh token."""

    def __init__(self, message: str = "No refresh token received") -> None:
        super().__init__(message)


class HttpStatusError(SonosError):
    """Raised when the Control API answers with a non-2xx status."""

    def __init__(self, msg: str, *, status_code: int, method: str, url: str, body: str = "") -> None:
        super().__init__(msg)
        self.status_code = status_code
        self.method = method
        self.url = url
        self.body = body


class DecodeError(SonosError):
    """Raised when a successful response body cannot be understood."""


class MissingCapability(SonosError):
    """Raised before sending a request the target player cannot honour."""

    def __init__(self, capability: Any) -> None:
        name = getattr(capability, "value", capability)
        super().__init__(f"Player is missing the {name} capability")
        self.capability = capability


class UnknownPlayerId(SonosError):
    """Raised when an audio clip no longer knows which player it belongs to."""

    def __init__(self, message: str = "Failed to find PlayerId") -> None:
        super().__init__(message)


class CredentialStoreError(SonosError):
    """Raised when credentials cannot be written to disk."""


class TargetNotFound(SonosError):
    """Raised when a household, group, player, favorite or playlist name is unknown."""

    def __init__(self, kind: str, name: Optional[str] = None) -> None:
        if name is None:
            message = f"No {kind}s found"
        else:
            message = f"No such {kind} named '{name}'"
        super().__init__(message)
        self.kind = kind
        self.name = name


class AmbiguousHousehold(SonosError):
    """Raised when several households exist and none was selected."""


__all__ = [
    "SonosError",
    "IntegrationRequired",
    "TokenRequired",
    "TransportError",
    "OAuthError",
    "NoRefreshTokenError",
    "HttpStatusError",
    "DecodeError",
    "MissingCapability",
    "UnknownPlayerId",
    "CredentialStoreError",
    "TargetNotFound",
    "AmbiguousHousehold",
]
