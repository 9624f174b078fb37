"""OAuth helper for Sonos: builds the authorization URL and talks to the token endpoint.

Only the authorization-code grant and the refresh-token grant are supported.
Client credentials are sent with HTTP Basic authentication, as the Sonos
token endpoint requires.
"""

from __future__ import annotations

import secrets
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlencode

import requests

from sonos_ctl.application.exceptions import (
    IntegrationRequired,
    NoRefreshTokenError,
    OAuthError,
    TransportError,
)
from sonos_ctl.config import settings
from sonos_ctl.domain.credentials import IntegrationConfig, TokenPair
from sonos_ctl.infrastructure.log_utils import log_message


def new_csrf_state() -> str:
    """Return a fresh, URL-safe anti-forgery token."""
    return secrets.token_urlsafe(16)


class SonosOAuthFlow:
    """Authorization URL construction plus the two token-endpoint exchanges."""

    def __init__(
        self,
        *,
        auth_url: str | None = None,
        token_url: str | None = None,
        scope: str | None = None,
        request_timeout: float | None = None,
        http_client: Any | None = None,
    ) -> None:
        self.auth_url = auth_url or settings.SONOS_AUTH_URL
        self.token_url = token_url or settings.SONOS_TOKEN_URL
        self.scope = scope or settings.SONOS_OAUTH_SCOPE
        self._request_timeout = request_timeout or settings.SONOS_REQUEST_TIMEOUT
        self._http = http_client or requests

    def authorization_url(self, config: Optional[IntegrationConfig]) -> Tuple[str, str]:
        """Return ``(url, state)`` for the user to open in a browser."""
        if config is None:
            raise IntegrationRequired()

        state = new_csrf_state()
        params = {
            "response_type": "code",
            "client_id": config.client_id,
            "redirect_uri": config.redirect_url,
            "scope": self.scope,
            "state": state,
        }
        return f"{self.auth_url}?{urlencode(params)}", state

    def exchange_code(self, config: Optional[IntegrationConfig], code: str) -> TokenPair:
        """Trade a one-time authorization code for a token pair."""
        if config is None:
            raise IntegrationRequired()

        log_message("Exchanging authorization code for tokens.", "INFO")
        payload = self._request_token(
            config,
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": config.redirect_url,
            },
            context="code exchange",
        )

        access_token = payload.get("access_token")
        if not access_token:
            raise OAuthError("Token response did not include an access token")

        refresh_token = payload.get("refresh_token")
        if not refresh_token:
            # A session that cannot be refreshed would silently die after the
            # first access token expiry.
            raise NoRefreshTokenError()

        log_message("Authorization code exchange succeeded.", "INFO")
        return TokenPair(access_token=str(access_token), refresh_token=str(refresh_token))

    def exchange_refresh(self, config: Optional[IntegrationConfig], tokens: TokenPair) -> TokenPair:
        """Use the refresh token to obtain a new access token."""
        if config is None:
            raise IntegrationRequired()

        log_message("Refreshing Sonos access token.", "INFO")
        payload = self._request_token(
            config,
            {
                "grant_type": "refresh_token",
                "refresh_token": tokens.refresh_token,
            },
            context="token refresh",
        )

        access_token = payload.get("access_token")
        if not access_token:
            raise OAuthError("Refresh returned incomplete credentials")

        new_refresh = payload.get("refresh_token") or None
        if new_refresh is None:
            log_message("Provider kept the existing refresh token.", "DEBUG")
        log_message("Successfully refreshed Sonos access token.", "INFO")
        return tokens.refreshed(str(access_token), str(new_refresh) if new_refresh else None)

    def _request_token(self, config: IntegrationConfig, data: Dict[str, str], *, context: str) -> Dict[str, Any]:
        try:
            response = self._http.post(
                self.token_url,
                data=data,
                auth=(config.client_id, config.client_secret),
                headers={"Accept": "application/json"},
                timeout=self._request_timeout,
            )
        except requests.exceptions.RequestException as exc:
            log_message(f"Sonos {context} request failed: {exc}", "ERROR")
            raise TransportError(f"Sonos {context} request failed: {exc}") from exc

        payload = self._parse_json(response)

        if not 200 <= response.status_code < 300 or "error" in payload:
            reason = self._reason(payload) or f"HTTP {response.status_code}"
            log_message(f"Sonos {context} rejected: {reason}", "ERROR")
            raise OAuthError(
                f"Failed to {'exchange code' if context == 'code exchange' else 'refresh token'}: {reason}",
                status_code=response.status_code,
                error=payload.get("error") if isinstance(payload.get("error"), str) else None,
            )
        return payload

    @staticmethod
    def _parse_json(response: Any) -> Dict[str, Any]:
        """Best-effort JSON body; token errors are still reported when it is not JSON."""
        try:
            payload = response.json()
        except ValueError:
            return {}
        return payload if isinstance(payload, dict) else {}

    @staticmethod
    def _reason(payload: Dict[str, Any]) -> str:
        parts = []
        for key in ("error", "error_description", "message"):
            value = payload.get(key)
            if value:
                parts.append(str(value))
        return ": ".join(parts)


__all__ = ["SonosOAuthFlow", "new_csrf_state"]
