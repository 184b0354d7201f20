"""Audit trail for back-office operations (signed JSONL events)."""

from __future__ import annotations
import datetime
import hashlib
import hmac
import json
from pathlib import Path
from typing import Any, Literal

from authz_bridge.core.models import RequestContext

EventName = Literal[
    "API_AUTHORIZATIONS_UPDATE",
    "API_GROUP_DELETION",
]

# Keys of the values recorded with each event
EVENT_REALM_NAME = "realm_name"
EVENT_GROUP_NAME = "group_name"

AUDIT_LOG_FILENAME = "backoffice-events.jsonl"


class AuditLog:
    """Append-only audit trail with HMAC-SHA256 signed entries.

    Usage:
        audit = AuditLog(Path(".runtime/audit"), signing_key=b"...")
        audit.report_event(ctx, "API_GROUP_DELETION", "back-office", realm_name="DEP")
    """

    def __init__(self, log_dir: Path, signing_key: bytes = b""):
        self.log_dir = Path(log_dir)
        self.log_file = self.log_dir / AUDIT_LOG_FILENAME
        self._signing_key = signing_key

    def _ensure_audit_dir(self) -> None:
        """Create audit directory with restricted permissions."""
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.log_dir.chmod(0o700)

    def _sign_event(self, event: dict[str, Any]) -> str:
        """Generate HMAC-SHA256 signature for audit event."""
        if not self._signing_key:
            return ""
        # Canonical JSON representation for signing
        canonical = json.dumps(event, sort_keys=True, separators=(",", ":"))
        return hmac.new(self._signing_key, canonical.encode("utf-8"), hashlib.sha256).hexdigest()

    def report_event(
        self,
        ctx: RequestContext,
        event_name: EventName,
        origin: str,
        **values: str,
    ) -> None:
        """Append an event to the audit trail.

        Args:
            ctx: Caller context (agent username/realm, correlation id)
            event_name: Operation being recorded
            origin: Subsystem emitting the event (e.g. "back-office")
            **values: Event-specific key/value pairs

        Raises:
            OSError: If the audit file cannot be written
        """
        self._ensure_audit_dir()

        event = {
            "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            "event_name": event_name,
            "origin": origin,
            "agent_username": ctx.username,
            "agent_realm": ctx.realm,
            "correlation_id": ctx.correlation_id,
            "details": dict(values),
        }

        signature = self._sign_event(event)
        if signature:
            event["signature"] = signature

        # Append to JSONL file (one JSON object per line)
        with self.log_file.open("a", encoding="utf-8") as f:
            f.write(json.dumps(event, ensure_ascii=False) + "\n")

        self.log_file.chmod(0o600)

    def verify(self) -> tuple[int, int]:
        """Verify all signatures in the audit log.

        Returns:
            Tuple of (total_events, valid_signatures)
        """
        if not self.log_file.exists():
            return 0, 0

        total = 0
        valid = 0

        with self.log_file.open("r", encoding="utf-8") as f:
            for line in f:
                if not line.strip():
                    continue
                total += 1
                try:
                    event = json.loads(line)
                    stored_sig = event.pop("signature", "")
                    if not stored_sig:
                        continue
                    computed_sig = self._sign_event(event)
                    if hmac.compare_digest(stored_sig, computed_sig):
                        valid += 1
                except (json.JSONDecodeError, KeyError):
                    continue

        return total, valid


def event_payload(event_name: str, **values: str) -> str:
    """JSON summary of an event, logged when the audit trail cannot record it."""
    return json.dumps({"event_name": event_name, **values})
