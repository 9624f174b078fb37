"""Credential records persisted between invocations."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse


def _require_text(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise ValueError(f"missing or empty '{key}'")
    return value


def validate_redirect_url(value: str) -> str:
    """Return ``value`` stripped, rejecting anything but absolute http(s) URLs."""

    candidate = (value or "").strip()
    parsed = urlparse(candidate)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Invalid redirection URL: {value!r}")
    return candidate


@dataclass(frozen=True)
class IntegrationConfig:
    """The registered OAuth application (client identity)."""

    client_id: str
    client_secret: str
    redirect_url: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "IntegrationConfig":
        return cls(
            client_id=_require_text(payload, "client_id"),
            client_secret=_require_text(payload, "client_secret"),
            redirect_url=validate_redirect_url(_require_text(payload, "redirect_url")),
        )

    def __repr__(self) -> str:
        return (
            f"IntegrationConfig(client_id={self.client_id!r}, client_secret='***', "
            f"redirect_url={self.redirect_url!r})"
        )


@dataclass(frozen=True)
class TokenPair:
    """One authorized user session."""

    access_token: str
    refresh_token: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "TokenPair":
        return cls(
            access_token=_require_text(payload, "access_token"),
            refresh_token=_require_text(payload, "refresh_token"),
        )

    def refreshed(self, access_token: str, refresh_token: Optional[str] = None) -> "TokenPair":
        """Return the pair that follows a refresh grant.

        The provider may omit a replacement refresh token, in which case the
        current one stays valid and is kept.
        """
        return TokenPair(access_token=access_token, refresh_token=refresh_token or self.refresh_token)

    def __repr__(self) -> str:
        return "TokenPair(access_token='***', refresh_token='***')"


@dataclass
class CredentialState:
    """In-memory credentials held for the lifetime of one process."""

    integration: Optional[IntegrationConfig] = None
    tokens: Optional[TokenPair] = None


__all__ = ["IntegrationConfig", "TokenPair", "CredentialState", "validate_redirect_url"]
