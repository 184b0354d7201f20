"""
Authorization Service Layer: Group Permission Reconciliation

This module keeps two views of a group's permissions consistent:

    caller ──> authorization_service.py ──┬──> authz_bridge.core.keycloak ──> Keycloak (privileged role bundle)
                                          └──> authz_bridge.db            ──> authorizations table (full matrix)

Update pipeline (every step fails fast):
    1. Resolve the group name in Keycloak
    2. Validate the matrix for the group's realm
    3. List realms, groups and clients of the realm
    4. Decide whether the privileged bundle is required
    5. Grant then revoke bundle roles on the administrative client
    6. Replace the group's rows in one store transaction
    7. Report an audit event (best effort, never fails the call)

Keycloak mutations happen before the local commit and are not rolled back
if the commit fails: the group may be left over-privileged in Keycloak while
the store still holds the previous matrix.

Two concurrent updates of the same group are last-writer-wins.
"""

from __future__ import annotations
import logging
from typing import Any, Callable, Iterable, List, Mapping

import requests

from authz_bridge.audit import (
    AuditLog,
    EVENT_GROUP_NAME,
    EVENT_REALM_NAME,
    event_payload,
)
from authz_bridge.config.settings import AppConfig
from authz_bridge.core.exceptions import AuthorizationError
from authz_bridge.core.keycloak import (
    GroupService,
    KeycloakClient,
    KeycloakError,
    RealmNotFoundError,
    RealmService,
    RoleService,
    create_client_with_token,
    find_client,
)
from authz_bridge.core.keycloak.representations import Group
from authz_bridge.core.matrix import (
    AuthorizationMatrix,
    matrix_to_rows,
    needs_privileged_bundle,
    rows_to_matrix,
    validate_matrix,
)
from authz_bridge.core.models import RequestContext
from authz_bridge.core.role_diff import plan_role_changes
from authz_bridge.db.store import AuthorizationStore

logger = logging.getLogger(__name__)

EVENT_AUTHORIZATIONS_UPDATE = "API_AUTHORIZATIONS_UPDATE"
EVENT_GROUP_DELETION = "API_GROUP_DELETION"

# Failures logged and re-raised to the caller
PROPAGATED_ERRORS = (AuthorizationError, KeycloakError, requests.RequestException)

KeycloakFactory = Callable[[RequestContext], KeycloakClient]


class AuthorizationService:
    """Reads and reconciles the authorization matrix of Keycloak groups.

    Args:
        config: Application settings (bundle, prefix, realms, audit origin)
        store: Local authorization store
        audit: Audit trail receiving one event per successful mutation
        keycloak_factory: Builds a Keycloak client for the caller's token;
            defaults to a requests client on config.keycloak_url
    """

    def __init__(
        self,
        config: AppConfig,
        store: AuthorizationStore,
        audit: AuditLog,
        keycloak_factory: KeycloakFactory | None = None,
    ):
        self.config = config
        self.store = store
        self.audit = audit
        self._keycloak_factory = keycloak_factory or self._default_keycloak_factory

    def _default_keycloak_factory(self, ctx: RequestContext) -> KeycloakClient:
        return create_client_with_token(
            self.config.keycloak_url,
            ctx.access_token,
            timeout=self.config.keycloak_request_timeout,
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Read
    # ─────────────────────────────────────────────────────────────────────────

    def get_authorizations(self, ctx: RequestContext, target_realm: str, group_id: str) -> AuthorizationMatrix:
        """Rebuild the matrix of a group from the store.

        Keycloak is only asked for the group name, since rows are keyed by name.
        """
        try:
            ctx.raise_if_cancelled()
            group = GroupService(self._keycloak_factory(ctx)).get_group(target_realm, group_id)
            rows = self.store.get_authorizations(target_realm, group.name)
        except PROPAGATED_ERRORS as e:
            logger.warning(f"[authorizations] get failed realm={target_realm} group={group_id} "
                           f"correlation_id={ctx.correlation_id}: {e}")
            raise
        return rows_to_matrix(rows)

    # ─────────────────────────────────────────────────────────────────────────
    # Update
    # ─────────────────────────────────────────────────────────────────────────

    def update_authorizations(
        self,
        ctx: RequestContext,
        target_realm: str,
        group_id: str,
        matrix: Mapping[str, Any],
    ) -> None:
        """Reconcile Keycloak roles and stored rows with the submitted matrix.

        Raises:
            MatrixValidationError: Matrix rejected (no side effects performed)
            KeycloakError: Keycloak lookup or mutation failed
            AuthorizationStoreError: Store transaction failed
            ReconciliationCancelled: ctx was cancelled mid-way
        """
        try:
            group = self._reconcile(ctx, target_realm, group_id, matrix)
        except PROPAGATED_ERRORS as e:
            logger.warning(f"[authorizations] update failed realm={target_realm} group={group_id} "
                           f"correlation_id={ctx.correlation_id}: {e}")
            raise

        logger.info(f"[authorizations] Updated {len(matrix)} action(s) for group '{group.name}' "
                    f"in realm '{target_realm}' by {ctx.username}@{ctx.realm}")
        self._report_event(
            ctx,
            EVENT_AUTHORIZATIONS_UPDATE,
            **{EVENT_REALM_NAME: target_realm, EVENT_GROUP_NAME: group.name},
        )

    def _reconcile(
        self,
        ctx: RequestContext,
        target_realm: str,
        group_id: str,
        matrix: Mapping[str, Any],
    ) -> Group:
        client = self._keycloak_factory(ctx)
        groups = GroupService(client)
        realms = RealmService(client)

        ctx.raise_if_cancelled()
        group = groups.get_group(target_realm, group_id)

        validate_matrix(matrix, target_realm, self.config.master_realm)

        ctx.raise_if_cancelled()
        known_realms = realms.list_realms()
        if target_realm not in {realm.name for realm in known_realms}:
            raise RealmNotFoundError(target_realm)

        ctx.raise_if_cancelled()
        realm_groups = groups.list_groups(target_realm)
        _warn_unknown_target_groups(matrix, target_realm, realm_groups)

        ctx.raise_if_cancelled()
        clients = realms.list_clients(target_realm)

        want_bundle = needs_privileged_bundle(matrix, self.config.privileged_action_prefix)
        admin_client = find_client(clients, self.config.admin_client_id)
        if admin_client is None:
            logger.warning(f"[authorizations] Client '{self.config.admin_client_id}' not found in realm "
                           f"'{target_realm}'; privileged roles left unchanged")
        else:
            self._reconcile_roles(ctx, RoleService(client), target_realm, group_id, admin_client.id, want_bundle)

        self._replace_rows(ctx, target_realm, group.name, matrix)
        return group

    def _reconcile_roles(
        self,
        ctx: RequestContext,
        roles: RoleService,
        target_realm: str,
        group_id: str,
        client_uuid: str,
        want_bundle: bool,
    ) -> None:
        ctx.raise_if_cancelled()
        available = roles.list_available_group_client_roles(target_realm, group_id, client_uuid)
        ctx.raise_if_cancelled()
        current = roles.list_group_client_roles(target_realm, group_id, client_uuid)

        changes = plan_role_changes(want_bundle, available, current, self.config.privileged_roles)

        # Grants first: a failure in between never leaves the group less privileged
        if changes.to_grant:
            ctx.raise_if_cancelled()
            roles.assign_client_roles(target_realm, group_id, client_uuid, changes.to_grant)
        if changes.to_revoke:
            ctx.raise_if_cancelled()
            roles.remove_client_roles(target_realm, group_id, client_uuid, changes.to_revoke)

    def _replace_rows(
        self,
        ctx: RequestContext,
        target_realm: str,
        group_name: str,
        matrix: Mapping[str, Any],
    ) -> None:
        rows = matrix_to_rows(matrix, target_realm, group_name)
        with self.store.begin_transaction() as tx:
            tx.delete_authorizations(target_realm, group_name)
            for row in rows:
                tx.create_authorization(row)
            ctx.raise_if_cancelled()
            tx.commit()

    # ─────────────────────────────────────────────────────────────────────────
    # Group deletion
    # ─────────────────────────────────────────────────────────────────────────

    def delete_group(self, ctx: RequestContext, target_realm: str, group_id: str) -> None:
        """Delete a group in Keycloak and every authorization mentioning it."""
        try:
            groups = GroupService(self._keycloak_factory(ctx))
            ctx.raise_if_cancelled()
            group = groups.get_group(target_realm, group_id)
            ctx.raise_if_cancelled()
            groups.delete_group(target_realm, group_id)

            with self.store.begin_transaction() as tx:
                tx.delete_all_authorizations_with_group(target_realm, group.name)
                tx.commit()
        except PROPAGATED_ERRORS as e:
            logger.warning(f"[groups] delete failed realm={target_realm} group={group_id} "
                           f"correlation_id={ctx.correlation_id}: {e}")
            raise

        self._report_event(
            ctx,
            EVENT_GROUP_DELETION,
            **{EVENT_REALM_NAME: target_realm, EVENT_GROUP_NAME: group.name},
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Audit
    # ─────────────────────────────────────────────────────────────────────────

    def _report_event(self, ctx: RequestContext, event_name: str, **values: str) -> bool:
        """Record an audit event; failures are logged with the payload, never raised."""
        try:
            self.audit.report_event(ctx, event_name, self.config.audit_origin, **values)
            return True
        except Exception as e:
            logger.error(
                f"[audit] Failed to record event err={e} event={event_payload(event_name, **values)} "
                f"correlation_id={ctx.correlation_id}"
            )
            return False


def _warn_unknown_target_groups(matrix: Mapping[str, Any], target_realm: str, realm_groups: Iterable[Group]) -> None:
    """Log target groups of the group's own realm that Keycloak does not know."""
    known = {group.name for group in realm_groups}
    unknown: List[str] = sorted({
        target_group
        for target_realms in matrix.values()
        for target_group in target_realms.get(target_realm, {})
        if target_group and target_group not in known
    })
    if unknown:
        logger.warning(f"[authorizations] Unknown target group(s) in realm '{target_realm}': {', '.join(unknown)}")
