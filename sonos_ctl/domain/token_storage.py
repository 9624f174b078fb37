"""Domain-level protocol for persisting OAuth credentials."""

from __future__ import annotations

from typing import Optional, Protocol

from sonos_ctl.domain.credentials import IntegrationConfig, TokenPair


class CredentialStore(Protocol):
    """Abstraction for persisting the integration identity and user tokens.

    Loads are best effort: implementations return ``None`` for missing or
    unreadable records. Saves raise on failure.
    """

    def load_integration(self) -> Optional[IntegrationConfig]:
        """Return the registered integration if available, otherwise ``None``."""

    def load_tokens(self) -> Optional[TokenPair]:
        """Return the persisted token pair if available, otherwise ``None``."""

    def save_integration(self, config: IntegrationConfig) -> None:
        """Persist the integration identity."""

    def save_tokens(self, tokens: TokenPair) -> None:
        """Persist the token pair."""


__all__ = ["CredentialStore"]
