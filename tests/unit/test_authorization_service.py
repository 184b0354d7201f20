"""Unit tests for the authorization reconciliation pipeline.

Keycloak services are replaced by mocks sharing one parent so the order of
IAM calls can be asserted; the store is a real in-memory SQLite database.
"""
import json
import logging
from unittest.mock import MagicMock

import pytest

from authz_bridge.core import authorization_service
from authz_bridge.core.authorization_service import (
    EVENT_AUTHORIZATIONS_UPDATE,
    EVENT_GROUP_DELETION,
    AuthorizationService,
)
from authz_bridge.core.exceptions import (
    AuthorizationStoreError,
    MatrixValidationError,
    ReconciliationCancelled,
)
from authz_bridge.core.keycloak import (
    Client,
    Group,
    GroupNotFoundError,
    KeycloakAPIError,
    Realm,
    RealmNotFoundError,
    Role,
)
from authz_bridge.core.matrix import rows_to_matrix
from authz_bridge.core.models import AuthorizationRow
from authz_bridge.db.store import AuthorizationTransaction

MANAGE_USERS = Role("r1", "manage-users")
VIEW_CLIENTS = Role("r2", "view-clients")
VIEW_REALM = Role("r3", "view-realm")
VIEW_USERS = Role("r4", "view-users")
QUERY_GROUPS = Role("r5", "query-groups")
FULL_BUNDLE = (MANAGE_USERS, VIEW_CLIENTS, VIEW_REALM, VIEW_USERS)

ADMIN_CLIENT = Client("c-uuid", "realm-management")


@pytest.fixture()
def keycloak(monkeypatch):
    """Mocked Keycloak services: kc.groups, kc.realms, kc.roles."""
    kc = MagicMock()
    kc.groups.get_group.return_value = Group(id="g1", name="g1-name")
    kc.groups.list_groups.return_value = [Group("g1", "g1-name"), Group("g2", "sales")]
    kc.realms.list_realms.return_value = [Realm("r-master", "master"), Realm("r-dep", "DEP")]
    kc.realms.list_clients.return_value = [ADMIN_CLIENT, Client("c-acc", "account")]
    kc.roles.list_available_group_client_roles.return_value = list(FULL_BUNDLE) + [QUERY_GROUPS]
    kc.roles.list_group_client_roles.return_value = []

    monkeypatch.setattr(authorization_service, "GroupService", lambda client: kc.groups)
    monkeypatch.setattr(authorization_service, "RealmService", lambda client: kc.realms)
    monkeypatch.setattr(authorization_service, "RoleService", lambda client: kc.roles)
    return kc


@pytest.fixture()
def service(app_config, store, audit_log, keycloak):
    return AuthorizationService(app_config, store, audit_log, keycloak_factory=lambda ctx: MagicMock())


def _call_names(kc):
    return [c[0] for c in kc.mock_calls]


def _audit_events(audit_log):
    if not audit_log.log_file.exists():
        return []
    return [json.loads(line) for line in audit_log.log_file.read_text().splitlines() if line.strip()]


def _seed(store, *rows):
    with store.begin_transaction() as tx:
        for row in rows:
            tx.create_authorization(row)
        tx.commit()


# ─────────────────────────────────────────────────────────────────────────────
# Update: happy paths
# ─────────────────────────────────────────────────────────────────────────────
def test_privileged_matrix_grants_bundle_and_persists(service, keycloak, store, audit_log, ctx):
    service.update_authorizations(ctx, "DEP", "g1", {"MGMT_manage": {"DEP": {}}})

    assert _call_names(keycloak) == [
        "groups.get_group",
        "realms.list_realms",
        "groups.list_groups",
        "realms.list_clients",
        "roles.list_available_group_client_roles",
        "roles.list_group_client_roles",
        "roles.assign_client_roles",
    ]
    keycloak.groups.get_group.assert_called_once_with("DEP", "g1")
    keycloak.roles.assign_client_roles.assert_called_once_with("DEP", "g1", "c-uuid", FULL_BUNDLE)
    keycloak.roles.remove_client_roles.assert_not_called()

    assert store.get_authorizations("DEP", "g1-name") == [
        AuthorizationRow("DEP", "g1-name", "MGMT_manage", "DEP"),
    ]

    events = _audit_events(audit_log)
    assert len(events) == 1
    assert events[0]["event_name"] == EVENT_AUTHORIZATIONS_UPDATE
    assert events[0]["origin"] == "back-office"
    assert events[0]["agent_username"] == "alice"
    assert events[0]["correlation_id"] == ctx.correlation_id
    assert events[0]["details"] == {"realm_name": "DEP", "group_name": "g1-name"}


def test_wildcard_matrix_in_master_realm(service, keycloak, store, audit_log, ctx):
    keycloak.groups.get_group.return_value = Group("g-admins", "admins")
    keycloak.groups.list_groups.return_value = [Group("g-admins", "admins")]
    keycloak.realms.list_clients.return_value = []

    service.update_authorizations(ctx, "master", "g-admins", {"view": {"*": {}}})

    keycloak.roles.assign_client_roles.assert_not_called()
    keycloak.roles.remove_client_roles.assert_not_called()
    assert store.get_authorizations("master", "admins") == [
        AuthorizationRow("master", "admins", "view", "*"),
    ]
    assert len(_audit_events(audit_log)) == 1


def test_non_privileged_matrix_revokes_bundle(service, keycloak, store, ctx):
    keycloak.roles.list_available_group_client_roles.return_value = [QUERY_GROUPS]
    keycloak.roles.list_group_client_roles.return_value = [VIEW_USERS, MANAGE_USERS, QUERY_GROUPS]

    service.update_authorizations(ctx, "DEP", "g1", {"view": {"DEP": {"sales": {}}}})

    keycloak.roles.assign_client_roles.assert_not_called()
    keycloak.roles.remove_client_roles.assert_called_once_with(
        "DEP", "g1", "c-uuid", (MANAGE_USERS, VIEW_USERS)
    )
    assert store.get_authorizations("DEP", "g1-name") == [
        AuthorizationRow("DEP", "g1-name", "view", "DEP", "sales"),
    ]


def test_converged_group_makes_no_role_mutation(service, keycloak, ctx):
    keycloak.roles.list_available_group_client_roles.return_value = [QUERY_GROUPS]
    keycloak.roles.list_group_client_roles.return_value = list(FULL_BUNDLE)

    service.update_authorizations(ctx, "DEP", "g1", {"MGMT_manage": {}})

    keycloak.roles.assign_client_roles.assert_not_called()
    keycloak.roles.remove_client_roles.assert_not_called()


def test_missing_admin_client_skips_role_reconciliation(service, keycloak, store, ctx, caplog):
    keycloak.realms.list_clients.return_value = [Client("c-acc", "account")]

    with caplog.at_level(logging.WARNING):
        service.update_authorizations(ctx, "DEP", "g1", {"MGMT_manage": {}})

    assert "realm-management" in caplog.text
    keycloak.roles.list_available_group_client_roles.assert_not_called()
    keycloak.roles.assign_client_roles.assert_not_called()
    assert store.get_authorizations("DEP", "g1-name") == [AuthorizationRow("DEP", "g1-name", "MGMT_manage")]


def test_update_replaces_previous_matrix(service, store, ctx):
    service.update_authorizations(ctx, "DEP", "g1", {"view": {"DEP": {"sales": {}}}, "export": {}})
    service.update_authorizations(ctx, "DEP", "g1", {"export": {}})

    assert store.get_authorizations("DEP", "g1-name") == [AuthorizationRow("DEP", "g1-name", "export")]


def test_update_leaves_other_groups_untouched(service, store, ctx):
    other = AuthorizationRow("DEP", "sales", "view", "DEP")
    _seed(store, other)

    service.update_authorizations(ctx, "DEP", "g1", {})

    assert store.get_authorizations("DEP", "sales") == [other]
    assert store.get_authorizations("DEP", "g1-name") == []


def test_unknown_target_group_is_only_logged(service, store, ctx, caplog):
    with caplog.at_level(logging.WARNING):
        service.update_authorizations(ctx, "DEP", "g1", {"view": {"DEP": {"ghost": {}, "sales": {}}}})

    assert "ghost" in caplog.text
    assert len(store.get_authorizations("DEP", "g1-name")) == 2


# ─────────────────────────────────────────────────────────────────────────────
# Read
# ─────────────────────────────────────────────────────────────────────────────
def test_round_trip(service, keycloak, ctx):
    matrix = {
        "MGMT_manage": {"DEP": {"sales": {}, "": {}}},
        "view": {"DEP": {}, "OTHER": {}},
        "export": {},
    }
    service.update_authorizations(ctx, "DEP", "g1", matrix)
    keycloak.reset_mock()

    assert service.get_authorizations(ctx, "DEP", "g1") == matrix
    assert _call_names(keycloak) == ["groups.get_group"]


def test_read_unknown_group(service, keycloak, ctx):
    keycloak.groups.get_group.side_effect = GroupNotFoundError("DEP", "nope")

    with pytest.raises(GroupNotFoundError):
        service.get_authorizations(ctx, "DEP", "nope")


def test_read_group_without_rows(service, ctx):
    assert service.get_authorizations(ctx, "DEP", "g1") == {}


# ─────────────────────────────────────────────────────────────────────────────
# Update: failures
# ─────────────────────────────────────────────────────────────────────────────
PREVIOUS = AuthorizationRow("DEP", "g1-name", "view", "DEP")


def test_wildcard_outside_master_rejected_before_side_effects(service, keycloak, store, audit_log, ctx):
    _seed(store, PREVIOUS)

    with pytest.raises(MatrixValidationError):
        service.update_authorizations(ctx, "DEP", "g1", {"view": {"*": {}}})

    assert _call_names(keycloak) == ["groups.get_group"]
    assert store.get_authorizations("DEP", "g1-name") == [PREVIOUS]
    assert _audit_events(audit_log) == []


def test_unknown_realm_rejected(service, keycloak, store, ctx):
    keycloak.realms.list_realms.return_value = [Realm("r-master", "master")]

    with pytest.raises(RealmNotFoundError):
        service.update_authorizations(ctx, "DEP", "g1", {"view": {}})

    keycloak.groups.list_groups.assert_not_called()
    assert store.get_authorizations("DEP", "g1-name") == []


@pytest.mark.parametrize(
    "service_name, method",
    [
        ("groups", "get_group"),
        ("realms", "list_realms"),
        ("groups", "list_groups"),
        ("realms", "list_clients"),
        ("roles", "list_available_group_client_roles"),
        ("roles", "list_group_client_roles"),
        ("roles", "assign_client_roles"),
    ],
)
def test_keycloak_failure_aborts_update(service, keycloak, store, audit_log, ctx, service_name, method):
    _seed(store, PREVIOUS)
    error = KeycloakAPIError(500, "boom", f"/admin/{method}")
    getattr(getattr(keycloak, service_name), method).side_effect = error

    with pytest.raises(KeycloakAPIError) as excinfo:
        service.update_authorizations(ctx, "DEP", "g1", {"MGMT_manage": {"DEP": {}}})

    assert excinfo.value is error
    assert store.get_authorizations("DEP", "g1-name") == [PREVIOUS]
    assert _audit_events(audit_log) == []


def test_revoke_failure_aborts_update(service, keycloak, store, ctx):
    _seed(store, PREVIOUS)
    keycloak.roles.list_group_client_roles.return_value = [VIEW_USERS]
    keycloak.roles.remove_client_roles.side_effect = KeycloakAPIError(403, "forbidden", "/role-mappings")

    with pytest.raises(KeycloakAPIError):
        service.update_authorizations(ctx, "DEP", "g1", {"export": {}})

    assert store.get_authorizations("DEP", "g1-name") == [PREVIOUS]


def test_failed_insert_keeps_previous_matrix(service, store, audit_log, ctx, monkeypatch):
    service.update_authorizations(ctx, "DEP", "g1", {"view": {"DEP": {}}})

    original = AuthorizationTransaction.create_authorization
    inserted = []

    def flaky_create(self, row):
        if inserted:
            raise AuthorizationStoreError("create_authorization", RuntimeError("disk full"))
        inserted.append(row)
        original(self, row)

    monkeypatch.setattr(AuthorizationTransaction, "create_authorization", flaky_create)

    with pytest.raises(AuthorizationStoreError):
        service.update_authorizations(ctx, "DEP", "g1", {"export": {}, "MGMT_x": {}, "view": {"OTHER": {}}})

    assert rows_to_matrix(store.get_authorizations("DEP", "g1-name")) == {"view": {"DEP": {}}}
    assert len(_audit_events(audit_log)) == 1


def test_failed_commit_keeps_previous_matrix(service, store, ctx, monkeypatch):
    _seed(store, PREVIOUS)

    def broken_commit(self):
        raise AuthorizationStoreError("commit", RuntimeError("database is locked"))

    monkeypatch.setattr(AuthorizationTransaction, "commit", broken_commit)

    with pytest.raises(AuthorizationStoreError, match="commit"):
        service.update_authorizations(ctx, "DEP", "g1", {"export": {}})
    assert store.get_authorizations("DEP", "g1-name") == [PREVIOUS]


def test_audit_failure_does_not_fail_update(app_config, store, keycloak, ctx, caplog):
    audit = MagicMock()
    audit.report_event.side_effect = OSError("read-only file system")
    service = AuthorizationService(app_config, store, audit, keycloak_factory=lambda ctx: MagicMock())

    with caplog.at_level(logging.ERROR):
        service.update_authorizations(ctx, "DEP", "g1", {"view": {}})

    assert store.get_authorizations("DEP", "g1-name") == [AuthorizationRow("DEP", "g1-name", "view")]
    assert "read-only file system" in caplog.text
    assert EVENT_AUTHORIZATIONS_UPDATE in caplog.text
    assert "g1-name" in caplog.text


# ─────────────────────────────────────────────────────────────────────────────
# Cancellation
# ─────────────────────────────────────────────────────────────────────────────
def test_cancelled_before_start(service, keycloak, ctx):
    ctx.cancel()

    with pytest.raises(ReconciliationCancelled):
        service.update_authorizations(ctx, "DEP", "g1", {"view": {}})

    assert _call_names(keycloak) == []


def test_cancelled_between_lookups(service, keycloak, store, ctx):
    _seed(store, PREVIOUS)
    clients = keycloak.realms.list_clients.return_value

    def cancel_then_answer(realm):
        ctx.cancel()
        return clients

    keycloak.realms.list_clients.side_effect = cancel_then_answer

    with pytest.raises(ReconciliationCancelled):
        service.update_authorizations(ctx, "DEP", "g1", {"MGMT_manage": {}})

    keycloak.roles.list_available_group_client_roles.assert_not_called()
    assert store.get_authorizations("DEP", "g1-name") == [PREVIOUS]


def test_cancelled_before_commit(service, keycloak, store, audit_log, ctx):
    _seed(store, PREVIOUS)
    keycloak.roles.assign_client_roles.side_effect = lambda *args: ctx.cancel()

    with pytest.raises(ReconciliationCancelled):
        service.update_authorizations(ctx, "DEP", "g1", {"MGMT_manage": {}})

    keycloak.roles.assign_client_roles.assert_called_once()
    assert store.get_authorizations("DEP", "g1-name") == [PREVIOUS]
    assert _audit_events(audit_log) == []


# ─────────────────────────────────────────────────────────────────────────────
# Group deletion
# ─────────────────────────────────────────────────────────────────────────────
def test_delete_group_removes_owned_and_targeting_rows(service, keycloak, store, audit_log, ctx):
    owned = AuthorizationRow("DEP", "g1-name", "view", "DEP")
    targeting = AuthorizationRow("DEP", "sales", "MGMT_manage", "DEP", "g1-name")
    unrelated = AuthorizationRow("DEP", "sales", "view", "DEP", "support")
    elsewhere = AuthorizationRow("OTHER", "ops", "view", "OTHER", "g1-name")
    _seed(store, owned, targeting, unrelated, elsewhere)

    service.delete_group(ctx, "DEP", "g1")

    keycloak.groups.delete_group.assert_called_once_with("DEP", "g1")
    assert store.get_authorizations("DEP", "g1-name") == []
    assert store.get_authorizations("DEP", "sales") == [unrelated]
    assert store.get_authorizations("OTHER", "ops") == [elsewhere]

    events = _audit_events(audit_log)
    assert [e["event_name"] for e in events] == [EVENT_GROUP_DELETION]
    assert events[0]["details"] == {"realm_name": "DEP", "group_name": "g1-name"}


def test_delete_group_keycloak_failure_keeps_rows(service, keycloak, store, audit_log, ctx):
    _seed(store, PREVIOUS)
    keycloak.groups.delete_group.side_effect = KeycloakAPIError(403, "forbidden", "/admin/realms/DEP/groups/g1")

    with pytest.raises(KeycloakAPIError):
        service.delete_group(ctx, "DEP", "g1")

    assert store.get_authorizations("DEP", "g1-name") == [PREVIOUS]
    assert _audit_events(audit_log) == []
