import sys
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


from sonos_ctl import logging_setup  # noqa: E402
from sonos_ctl.config import settings  # noqa: E402
from sonos_ctl.domain.credentials import IntegrationConfig, TokenPair  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_config_dir(tmp_path, monkeypatch):
    """Keep credentials and log files of every test inside ``tmp_path``."""
    config_dir = tmp_path / "config"
    monkeypatch.setattr(settings, "SONOS_CONFIG_DIR", config_dir)
    monkeypatch.setattr(settings, "SONOS_LOG_FILE", None)
    monkeypatch.delenv("SONOS_LOG_TO_CONSOLE", raising=False)
    logging_setup.reset_logging()
    try:
        yield config_dir
    finally:
        logging_setup.reset_logging()


@pytest.fixture
def integration() -> IntegrationConfig:
    return IntegrationConfig(
        client_id="client-123",
        client_secret="secret-456",
        redirect_url="https://example.com/callback",
    )


@pytest.fixture
def tokens() -> TokenPair:
    return TokenPair(access_token="access-old", refresh_token="refresh-old")
