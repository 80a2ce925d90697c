"""Pytest fixtures for mint service tests."""

import sys
from pathlib import Path

import pytest
import yaml

# Ensure project root is in path for mint_service imports
_project_root = Path(__file__).resolve().parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from fakes import CONTRACT, PRIVATE_KEY, FakeEndpoint  # noqa: E402


@pytest.fixture
def project_root() -> Path:
    return _project_root


@pytest.fixture
def example_config(project_root: Path) -> dict:
    """config/config.yaml.example as a dict."""
    with open(project_root / "config" / "config.yaml.example", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


@pytest.fixture
def minimal_config() -> dict:
    return {
        "contract": {"address": CONTRACT},
        "rpc": {"url": "http://127.0.0.1:8545", "confirmation_timeout_sec": 5},
        "signer": {"private_key": PRIVATE_KEY},
        "schedule": {"interval_minutes": 15},
        "status_server": {"host": "127.0.0.1", "port": 3000},
        "shutdown": {"attempt_grace_sec": 1},
    }


@pytest.fixture
def fake_endpoint() -> FakeEndpoint:
    return FakeEndpoint()
