"""Keycloak client-role mappings for groups."""
from __future__ import annotations
import logging
from typing import List, Sequence

from .client import KeycloakClient
from .representations import Role

logger = logging.getLogger(__name__)


class RoleService:
    """Service for reading and changing client-role mappings of a group."""

    def __init__(self, client: KeycloakClient):
        """Initialize role service.

        Args:
            client: Authenticated Keycloak client
        """
        self.client = client

    @staticmethod
    def _mapping_path(realm: str, group_id: str, client_uuid: str) -> str:
        return f"/admin/realms/{realm}/groups/{group_id}/role-mappings/clients/{client_uuid}"

    def list_available_group_client_roles(self, realm: str, group_id: str, client_uuid: str) -> List[Role]:
        """Roles of the client that could be assigned to the group but are not.

        Args:
            realm: Realm name
            group_id: Group ID
            client_uuid: Internal client identifier (not the clientId)
        """
        resp = self.client.get(f"{self._mapping_path(realm, group_id, client_uuid)}/available")
        return [Role.from_json(item) for item in resp.json() or []]

    def list_group_client_roles(self, realm: str, group_id: str, client_uuid: str) -> List[Role]:
        """Roles of the client currently assigned to the group."""
        resp = self.client.get(self._mapping_path(realm, group_id, client_uuid))
        return [Role.from_json(item) for item in resp.json() or []]

    def assign_client_roles(self, realm: str, group_id: str, client_uuid: str, roles: Sequence[Role]) -> None:
        """Grant client roles to the group.

        Raises:
            KeycloakAPIError: If Keycloak rejects the mapping
        """
        payload = [role.to_json() for role in roles]
        self.client.post(self._mapping_path(realm, group_id, client_uuid), json=payload)
        logger.info(
            f"[client-role] Assigned {[role.name for role in roles]} to group {group_id} in realm '{realm}'"
        )

    def remove_client_roles(self, realm: str, group_id: str, client_uuid: str, roles: Sequence[Role]) -> None:
        """Revoke client roles from the group.

        Raises:
            KeycloakAPIError: If Keycloak rejects the removal
        """
        payload = [role.to_json() for role in roles]
        self.client.delete(self._mapping_path(realm, group_id, client_uuid), json=payload)
        logger.info(
            f"[client-role] Removed {[role.name for role in roles]} from group {group_id} in realm '{realm}'"
        )
