"""Minimal grant/revoke plan for the privileged role bundle.

Only roles whose name belongs to the configured bundle are ever planned;
any other role assigned to the group is left untouched.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Tuple

from .keycloak.representations import Role


@dataclass(frozen=True)
class RoleChanges:
    to_grant: Tuple[Role, ...] = ()
    to_revoke: Tuple[Role, ...] = ()

    @property
    def empty(self) -> bool:
        return not self.to_grant and not self.to_revoke


def plan_role_changes(
    want_bundle: bool,
    available_roles: Iterable[Role],
    current_roles: Iterable[Role],
    bundle: Iterable[str],
) -> RoleChanges:
    """Compute the role mappings to add or remove on the administrative client.

    Args:
        want_bundle: Whether the group must hold the privileged bundle
        available_roles: Client roles assignable to the group but not assigned
        current_roles: Client roles currently assigned to the group
        bundle: Names of the roles forming the privileged bundle

    Returns:
        RoleChanges with deduplicated roles sorted by name
    """
    names = frozenset(bundle)
    if want_bundle:
        return RoleChanges(to_grant=_select(available_roles, names))
    return RoleChanges(to_revoke=_select(current_roles, names))


def _select(roles: Iterable[Role], names: frozenset) -> Tuple[Role, ...]:
    selected = {role.id: role for role in roles if role.name in names}
    ordered: List[Role] = sorted(selected.values(), key=lambda role: (role.name, role.id))
    return tuple(ordered)
