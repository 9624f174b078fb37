"""Authenticated request execution with a single transparent token refresh.

An authenticated call either succeeds, or fails after at most one
re-authentication attempt. The attempt counter is an explicit two-state
machine so the retry bound is visible at a glance:

    FIRST_ATTEMPT --401--> refresh --> RETRIED --any status--> done

A 401 seen in the RETRIED state is a terminal HTTP error.
"""

from __future__ import annotations

import enum
from typing import Any, TypeVar

import requests

from sonos_ctl.application.exceptions import (
    CredentialStoreError,
    DecodeError,
    HttpStatusError,
    IntegrationRequired,
    TokenRequired,
    TransportError,
)
from sonos_ctl.config import settings
from sonos_ctl.domain.credentials import CredentialState, TokenPair
from sonos_ctl.domain.token_storage import CredentialStore
from sonos_ctl.infrastructure.endpoints import Endpoint
from sonos_ctl.infrastructure.log_utils import log_message, mask_secret
from sonos_ctl.infrastructure.oauth_flow import SonosOAuthFlow

T = TypeVar("T")

UNAUTHORIZED = 401


class Attempt(enum.Enum):
    FIRST_ATTEMPT = "first_attempt"
    RETRIED = "retried"


class AuthenticatedDispatcher:
    """Sends endpoint requests with bearer auth, refreshing once on 401."""

    def __init__(
        self,
        state: CredentialState,
        store: CredentialStore,
        oauth: SonosOAuthFlow,
        *,
        base_url: str | None = None,
        request_timeout: float | None = None,
        http_client: Any | None = None,
    ) -> None:
        self._state = state
        self._store = store
        self._oauth = oauth
        self.base_url = base_url or settings.SONOS_CONTROL_API_URL
        self._request_timeout = request_timeout or settings.SONOS_REQUEST_TIMEOUT
        self._http = http_client or requests

    def call(self, endpoint: Endpoint[T]) -> T:
        tokens = self._state.tokens
        if tokens is None:
            raise TokenRequired()

        attempt = Attempt.FIRST_ATTEMPT
        response = self._send(endpoint, tokens.access_token)

        if response.status_code == UNAUTHORIZED:
            log_message(
                f"{endpoint.method} {endpoint.path} returned 401; refreshing access token and retrying once.",
                "INFO",
            )
            refreshed = self._refresh()
            attempt = Attempt.RETRIED
            response = self._send(endpoint, refreshed.access_token)

        self._raise_for_status(endpoint, response, attempt)
        return self._decode(endpoint, response)

    def _send(self, endpoint: Endpoint[Any], access_token: str) -> Any:
        # Rebuilt on every attempt so the header always carries the current token.
        spec = endpoint.build_request(self.base_url)
        headers = dict(spec.headers or {})
        headers["Authorization"] = f"Bearer {access_token}"

        log_message(f"-> {spec.method} {spec.url} (token {mask_secret(access_token)})", "DEBUG")
        try:
            response = self._http.request(
                spec.method,
                spec.url,
                headers=headers,
                json=spec.json,
                timeout=self._request_timeout,
            )
        except requests.exceptions.RequestException as exc:
            log_message(f"{spec.method} {spec.url} failed: {exc}", "ERROR")
            raise TransportError(f"{spec.method} {spec.url} failed: {exc}") from exc

        log_message(f"<- {response.status_code} {spec.method} {spec.url}", "DEBUG")
        return response

    def _refresh(self) -> TokenPair:
        """Exchange the refresh token and install the new pair.

        Refresh failures propagate unchanged and leave both the held and the
        persisted pair untouched.
        """
        integration = self._state.integration
        if integration is None:
            raise IntegrationRequired()

        current = self._state.tokens
        if current is None:  # pragma: no cover - call() checks this first
            raise TokenRequired()

        refreshed = self._oauth.exchange_refresh(integration, current)
        self._state.tokens = refreshed

        try:
            self._store.save_tokens(refreshed)
        except (CredentialStoreError, OSError) as exc:
            # The retried request still uses the in-memory pair.
            log_message(f"Failed to persist refreshed tokens: {exc}", "WARN")

        return refreshed

    @staticmethod
    def _raise_for_status(endpoint: Endpoint[Any], response: Any, attempt: Attempt) -> None:
        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            status = response.status_code
            url = getattr(response, "url", "") or endpoint.path
            suffix = " after token refresh" if attempt is Attempt.RETRIED else ""
            log_message(f"{endpoint.method} {url} failed with {status}{suffix}.", "ERROR")
            raise HttpStatusError(
                f"{endpoint.method} {endpoint.path} failed with status code {status}{suffix}",
                status_code=status,
                method=endpoint.method,
                url=url,
                body=(getattr(response, "text", "") or "")[:500],
            ) from exc

    @staticmethod
    def _decode(endpoint: Endpoint[T], response: Any) -> T:
        if not endpoint.expects_body:
            return endpoint.decode(None)

        try:
            payload = response.json()
        except ValueError as exc:
            log_message(f"Invalid JSON from {endpoint.method} {endpoint.path}: {exc}", "ERROR")
            raise DecodeError(f"Invalid JSON response from {endpoint.method} {endpoint.path}") from exc

        try:
            return endpoint.decode(payload)
        except (KeyError, TypeError, ValueError) as exc:
            log_message(f"Unexpected response shape from {endpoint.method} {endpoint.path}: {exc!r}", "ERROR")
            raise DecodeError(f"Unexpected response from {endpoint.method} {endpoint.path}: {exc!r}") from exc


__all__ = ["Attempt", "AuthenticatedDispatcher", "UNAUTHORIZED"]
