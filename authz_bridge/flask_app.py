"""Flask application factory and bootstrap.

This module provides the create_app() factory function wiring settings,
the authorization store, the audit trail and the management blueprint.
"""
from __future__ import annotations
from pathlib import Path
from typing import Optional

from flask import Flask

from authz_bridge.audit import AuditLog
from authz_bridge.config import AppConfig, load_settings
from authz_bridge.core.authorization_service import AuthorizationService
from authz_bridge.db.store import AuthorizationStore


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(
    cfg: Optional[AppConfig] = None,
    service: Optional[AuthorizationService] = None,
) -> Flask:
    """Create and configure Flask application.

    Args:
        cfg: Settings (loaded from the environment when omitted)
        service: Pre-built service, mainly for tests
    """
    cfg = cfg or load_settings()

    app = Flask(__name__)
    app.config["APP_CONFIG"] = cfg

    if service is None:
        sqlite_path = cfg.database_url[len("sqlite:///"):] if cfg.database_url.startswith("sqlite:///") else ""
        if sqlite_path and sqlite_path != ":memory:":
            Path(sqlite_path).parent.mkdir(parents=True, exist_ok=True)
        store = AuthorizationStore(cfg.database_url)
        store.create_schema()
        audit = AuditLog(Path(cfg.audit_log_dir), signing_key=cfg.audit_signing_key_bytes)
        service = AuthorizationService(cfg, store, audit)
    app.extensions["authorization_service"] = service

    # Register blueprints
    from authz_bridge.api import health, errors
    from authz_bridge.api import authorizations

    app.register_blueprint(health.bp)
    app.register_blueprint(authorizations.bp, url_prefix="/management")

    # Register error handlers
    errors.register_error_handlers(app)

    mode_label = "DEMO" if cfg.demo_mode else "PRODUCTION"
    print(f"[flask_app] Mode={mode_label}")
    print("[flask_app] Management API registered at /management")

    return app
