"""Plain value objects shared by the engine, the store and the API."""
from __future__ import annotations
import threading
import uuid
from dataclasses import dataclass, field
from typing import Optional

from .exceptions import ReconciliationCancelled


@dataclass(frozen=True)
class AuthorizationRow:
    """One granted permission of a group.

    ``target_realm_id`` is None when the action has no target realm and
    ``target_group_name`` is None when the target realm has no target group.
    """

    realm_id: str
    group_name: str
    action: str
    target_realm_id: Optional[str] = None
    target_group_name: Optional[str] = None


@dataclass
class RequestContext:
    """Per-call information about the caller.

    Attributes:
        access_token: Bearer token forwarded to Keycloak
        username: Administrator performing the operation
        realm: Realm the administrator authenticated in
        correlation_id: Identifier propagated to logs and audit events
    """

    access_token: str
    username: str = "system"
    realm: str = "master"
    correlation_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    _cancelled: threading.Event = field(default_factory=threading.Event, repr=False)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def raise_if_cancelled(self) -> None:
        """Stop the pipeline if the caller gave up.

        Raises:
            ReconciliationCancelled: If cancel() was called
        """
        if self._cancelled.is_set():
            raise ReconciliationCancelled(f"Operation {self.correlation_id} cancelled by caller")
