"""Infrastructure implementations of credential persistence."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TypeVar

from sonos_ctl.application.exceptions import CredentialStoreError
from sonos_ctl.domain.credentials import IntegrationConfig, TokenPair
from sonos_ctl.domain.token_storage import CredentialStore
from sonos_ctl.infrastructure.log_utils import log_message

R = TypeVar("R")


def _read_record(path: Path, parse: Callable[[Dict[str, Any]], R]) -> Optional[R]:
    if not path.exists():
        return None
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        if not isinstance(payload, dict):
            raise ValueError("expected a JSON object")
        return parse(payload)
    except (OSError, ValueError) as exc:
        log_message(f"Ignoring unreadable credentials in {path}: {exc}", "WARN")
        return None


def _write_record(path: Path, payload: Dict[str, Any]) -> None:
    """Write ``payload`` so readers see either the old file or the new one."""

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    except OSError as exc:
        raise CredentialStoreError(f"Failed to write {path}: {exc}") from exc

    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)
            handle.flush()
            os.fsync(handle.fileno())
        try:
            os.chmod(tmp_path, 0o600)
        except OSError as exc:  # pragma: no cover - depends on platform
            log_message(f"Could not set permissions on {tmp_path}: {exc}", "WARN")
        os.replace(tmp_path, path)
    except OSError as exc:
        tmp_path.unlink(missing_ok=True)
        raise CredentialStoreError(f"Failed to write {path}: {exc}") from exc


class JsonFileCredentialStore(CredentialStore):
    """Persist the integration and the token pair as two JSON files."""

    def __init__(self, integration_path: Path | str, tokens_path: Path | str) -> None:
        self._integration_path = Path(integration_path)
        self._tokens_path = Path(tokens_path)

    @property
    def integration_path(self) -> Path:
        return self._integration_path

    @property
    def tokens_path(self) -> Path:
        return self._tokens_path

    def load_integration(self) -> Optional[IntegrationConfig]:
        return _read_record(self._integration_path, IntegrationConfig.from_dict)

    def load_tokens(self) -> Optional[TokenPair]:
        return _read_record(self._tokens_path, TokenPair.from_dict)

    def save_integration(self, config: IntegrationConfig) -> None:
        _write_record(self._integration_path, config.to_dict())
        log_message(f"Saved integration configuration to {self._integration_path}.", "INFO")

    def save_tokens(self, tokens: TokenPair) -> None:
        _write_record(self._tokens_path, tokens.to_dict())
        log_message(f"Saved tokens to {self._tokens_path}.", "INFO")


__all__ = ["JsonFileCredentialStore"]
