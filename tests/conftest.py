"""Pytest shared fixtures."""
import os
import pathlib
import sys

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Configure test environment BEFORE any app imports
os.environ.setdefault("DEMO_MODE", "true")

import pytest
import requests

from authz_bridge.audit import AuditLog
from authz_bridge.config.settings import AppConfig
from authz_bridge.core.models import RequestContext
from authz_bridge.db.store import AuthorizationStore


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch, request):
    """
    Prevent unit tests from hitting a live Keycloak.

    Integration tests are explicitly marked with @pytest.mark.integration and
    are allowed to perform real HTTP calls by skipping this fixture.
    """
    if request.node.get_closest_marker("integration"):
        return

    def _refuse(method):
        def _stub(url, *args, **kwargs):
            raise RuntimeError(f"Unexpected HTTP {method} in unit test: {url}")
        return _stub

    monkeypatch.setattr(requests, "get", _refuse("GET"))
    monkeypatch.setattr(requests, "post", _refuse("POST"))
    monkeypatch.setattr(requests, "delete", _refuse("DELETE"))


# ─────────────────────────────────────────────────────────────────────────────
# Engine collaborators
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def app_config(tmp_path):
    return AppConfig(
        demo_mode=True,
        keycloak_url="http://keycloak.test",
        database_url="sqlite://",
        audit_log_dir=str(tmp_path / "audit"),
        audit_log_signing_key="test-signing-key",
    )


@pytest.fixture()
def store():
    """Fresh in-memory authorization store."""
    store = AuthorizationStore("sqlite://")
    store.create_schema()
    yield store
    store.engine.dispose()


@pytest.fixture()
def audit_log(tmp_path):
    return AuditLog(tmp_path / "audit", signing_key=b"test-signing-key")


@pytest.fixture()
def ctx():
    return RequestContext(access_token="caller-token", username="alice", realm="master")
