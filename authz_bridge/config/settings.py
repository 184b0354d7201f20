"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

DEFAULT_PRIVILEGED_ROLES = ["manage-users", "view-clients", "view-realm", "view-users"]


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    # Priority 1: Read from /run/secrets
    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read /run/secrets/{secret_name}: {e}")

    # Priority 2: Fallback to environment variable
    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            print(f"[settings] ✓ Loaded {env_var} from environment (fallback)")
            return secret_value

    return None


@dataclass
class AppConfig:
    """Application configuration container."""
    demo_mode: bool

    # Keycloak
    keycloak_url: str = "http://keycloak:8080"
    keycloak_request_timeout: float = 5.0
    master_realm: str = "master"

    # Authorization engine
    admin_client_id: str = "realm-management"
    privileged_action_prefix: str = "MGMT_"
    privileged_roles: list[str] = field(default_factory=lambda: list(DEFAULT_PRIVILEGED_ROLES))

    # Persistence
    database_url: str = "sqlite:///.runtime/authorizations.db"

    # Audit
    audit_log_dir: str = ".runtime/audit"
    audit_log_signing_key: str = ""
    audit_origin: str = "back-office"

    @property
    def audit_signing_key_bytes(self) -> bytes:
        return self.audit_log_signing_key.encode("utf-8")


def _get_or_generate(var_name: str, demo_default: Optional[str] = None, required: bool = True, demo_mode: bool = False) -> str:
    """Get environment variable or use demo default."""
    value = os.environ.get(var_name)
    if value:
        return value

    if demo_mode and demo_default is not None:
        print(f"[demo-mode] Using default for {var_name}")
        return demo_default

    if not required:
        return ""

    raise RuntimeError(f"Environment variable {var_name} is required in production mode.")


def _parse_list(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets."""
    demo_mode = os.environ.get("DEMO_MODE", "false").lower() == "true"

    keycloak_url = _get_or_generate(
        "KEYCLOAK_URL",
        demo_default="http://127.0.0.1:8080",
        demo_mode=demo_mode,
    ).rstrip("/")

    try:
        keycloak_request_timeout = float(os.environ.get("KEYCLOAK_REQUEST_TIMEOUT", "5"))
    except ValueError as e:
        raise RuntimeError("KEYCLOAK_REQUEST_TIMEOUT must be a number of seconds") from e

    master_realm = os.environ.get("MASTER_REALM", "master").strip()
    admin_client_id = os.environ.get("ADMIN_CLIENT_ID", "realm-management").strip()
    privileged_action_prefix = os.environ.get("PRIVILEGED_ACTION_PREFIX", "MGMT_")

    privileged_roles = _parse_list(os.environ.get("PRIVILEGED_ROLE_BUNDLE", ""))
    if not privileged_roles:
        privileged_roles = list(DEFAULT_PRIVILEGED_ROLES)

    database_url = _get_or_generate(
        "DATABASE_URL",
        demo_default="sqlite:///.runtime/authorizations.db",
        demo_mode=demo_mode,
    )

    audit_log_dir = os.environ.get("AUDIT_LOG_DIR", ".runtime/audit")
    audit_origin = os.environ.get("AUDIT_ORIGIN", "back-office")

    # Audit log signing key
    audit_log_signing_key = _load_secret_from_file("audit_log_signing_key", "AUDIT_LOG_SIGNING_KEY") or ""
    if not audit_log_signing_key and demo_mode:
        audit_log_signing_key = os.environ.get("AUDIT_LOG_SIGNING_KEY_DEMO", "demo-audit-signing-key-change-in-production")
        print(f"[demo-mode] Using demo AUDIT_LOG_SIGNING_KEY: {audit_log_signing_key[:20]}...")
    elif not audit_log_signing_key:
        print("[settings] WARNING: AUDIT_LOG_SIGNING_KEY not set; audit events will be unsigned")

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    print(
        f"[settings] Mode={mode_label}; keycloak={keycloak_url}; master_realm={master_realm}; "
        f"admin_client={admin_client_id}; bundle={','.join(privileged_roles)}"
    )

    return AppConfig(
        demo_mode=demo_mode,
        keycloak_url=keycloak_url,
        keycloak_request_timeout=keycloak_request_timeout,
        master_realm=master_realm,
        admin_client_id=admin_client_id,
        privileged_action_prefix=privileged_action_prefix,
        privileged_roles=privileged_roles,
        database_url=database_url,
        audit_log_dir=audit_log_dir,
        audit_log_signing_key=audit_log_signing_key,
        audit_origin=audit_origin,
    )
