"""Local credential checks for the ``auth-status`` command.

Only files already on disk are inspected; no network calls are made.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List

from sonos_ctl.domain.token_storage import CredentialStore


@dataclass(frozen=True)
class AuthStatus:
    """Represents the outcome of a credential check."""

    name: str
    state: str
    message: str

    @property
    def ok(self) -> bool:
        return self.state == "ok"

    def format_line(self) -> str:
        """Render the status in a CLI-friendly format."""

        labels = {
            "ok": "OK",
            "action_required": "ACTION REQUIRED",
        }
        label = labels.get(self.state, self.state.upper())
        return f"{self.name}: {label} - {self.message}"


def _modified_at(path: Path) -> str:
    stamp = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
    return stamp.strftime("%Y-%m-%d %H:%M UTC")


def determine_integration_status(store: CredentialStore, path: Path) -> AuthStatus:
    config = store.load_integration()
    if config is None:
        if path.exists():
            return AuthStatus("Integration", "action_required", f"{path} is unreadable; run 'sonos init'.")
        return AuthStatus("Integration", "action_required", "Not registered; run 'sonos init'.")
    return AuthStatus(
        "Integration",
        "ok",
        f"Client {config.client_id} redirecting to {config.redirect_url} (saved {_modified_at(path)}).",
    )


def determine_token_status(store: CredentialStore, path: Path) -> AuthStatus:
    tokens = store.load_tokens()
    if tokens is None:
        if path.exists():
            return AuthStatus("Tokens", "action_required", f"{path} is unreadable; run 'sonos login'.")
        return AuthStatus("Tokens", "action_required", "Not authorized; run 'sonos login'.")
    return AuthStatus("Tokens", "ok", f"Refresh token stored (updated {_modified_at(path)}).")


def run_auth_checks(store: CredentialStore, integration_path: Path, tokens_path: Path) -> List[AuthStatus]:
    return [
        determine_integration_status(store, integration_path),
        determine_token_status(store, tokens_path),
    ]


def render_results(results: Iterable[AuthStatus]) -> str:
    return "\n".join(result.format_line() for result in results)
