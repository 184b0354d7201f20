"""Authorization matrix helpers.

A matrix is a three-level set encoded as nested mappings::

    {
        "MGMT_manage_users": {"DEP": {"sales": {}, "": {}}},
        "view_dashboard": {"*": {}},
        "export": {},
    }

Presence of an ``(action, target realm, target group)`` path means the
permission is granted. Empty mappings are legal at every level and mean
"granted but unscoped" at that level.
"""
from __future__ import annotations
from typing import Any, Dict, Iterable, Iterator, List, Mapping

from .exceptions import MatrixValidationError
from .models import AuthorizationRow

AuthorizationMatrix = Dict[str, Dict[str, Dict[str, Dict[str, Any]]]]

WILDCARD_REALM = "*"
DEFAULT_MASTER_REALM = "master"
DEFAULT_PRIVILEGED_PREFIX = "MGMT_"


def validate_matrix(
    matrix: Any,
    operating_realm: str,
    master_realm: str = DEFAULT_MASTER_REALM,
) -> None:
    """Check structural and tenancy rules of a submitted matrix.

    Args:
        matrix: Decoded matrix (nested mappings)
        operating_realm: Realm the group belongs to
        master_realm: Name of the administrative realm

    Raises:
        MatrixValidationError: If a level is not a mapping or if the
            wildcard target realm is used outside the master realm
    """
    _require_mapping(matrix, "matrix")
    for action, target_realms in matrix.items():
        _require_key(action, "action")
        _require_mapping(target_realms, f"action '{action}'")
        for target_realm, target_groups in target_realms.items():
            _require_key(target_realm, f"target realm of '{action}'")
            _require_mapping(target_groups, f"target realm '{target_realm}' of '{action}'")
            if target_realm == WILDCARD_REALM and operating_realm != master_realm:
                raise MatrixValidationError(
                    f"Target realm '{WILDCARD_REALM}' is only allowed in realm '{master_realm}' "
                    f"(action '{action}', realm '{operating_realm}')"
                )
            for target_group, marker in target_groups.items():
                _require_key(target_group, f"target group of '{action}'")
                _require_mapping(marker, f"target group '{target_group}' of '{action}'")


def _require_mapping(value: Any, label: str) -> None:
    if not isinstance(value, Mapping):
        raise MatrixValidationError(f"{label} must be an object, got {type(value).__name__}")


def _require_key(value: Any, label: str) -> None:
    if not isinstance(value, str):
        raise MatrixValidationError(f"{label} must be a string, got {type(value).__name__}")


def needs_privileged_bundle(matrix: Mapping[str, Any], prefix: str = DEFAULT_PRIVILEGED_PREFIX) -> bool:
    """Return True if any action of the matrix is privileged."""
    return any(action.startswith(prefix) for action in matrix)


def matrix_to_rows(matrix: Mapping[str, Any], realm_id: str, group_name: str) -> List[AuthorizationRow]:
    """Flatten a validated matrix into one row per leaf."""
    return list(_iter_rows(matrix, realm_id, group_name))


def _iter_rows(matrix: Mapping[str, Any], realm_id: str, group_name: str) -> Iterator[AuthorizationRow]:
    for action, target_realms in matrix.items():
        if not target_realms:
            yield AuthorizationRow(realm_id, group_name, action)
            continue
        for target_realm, target_groups in target_realms.items():
            if not target_groups:
                yield AuthorizationRow(realm_id, group_name, action, target_realm)
                continue
            for target_group in target_groups:
                yield AuthorizationRow(realm_id, group_name, action, target_realm, target_group)


def rows_to_matrix(rows: Iterable[AuthorizationRow]) -> AuthorizationMatrix:
    """Rebuild the matrix from persisted rows."""
    matrix: AuthorizationMatrix = {}
    for row in rows:
        target_realms = matrix.setdefault(row.action, {})
        if row.target_realm_id is None:
            continue
        target_groups = target_realms.setdefault(row.target_realm_id, {})
        if row.target_group_name is None:
            continue
        target_groups[row.target_group_name] = {}
    return matrix
