"""Keycloak group lookups and deletion."""
from __future__ import annotations
import logging
from typing import Iterable, List

from .client import KeycloakClient
from .exceptions import KeycloakAPIError, GroupNotFoundError
from .representations import Group

logger = logging.getLogger(__name__)


class GroupService:
    """Service for managing Keycloak groups."""

    def __init__(self, client: KeycloakClient):
        """Initialize group service.

        Args:
            client: Authenticated Keycloak client
        """
        self.client = client

    def get_group(self, realm: str, group_id: str) -> Group:
        """Retrieve a group by its identifier.

        Args:
            realm: Realm name
            group_id: Group ID

        Returns:
            Group representation

        Raises:
            GroupNotFoundError: If Keycloak answers 404
            KeycloakAPIError: On any other HTTP error
        """
        try:
            resp = self.client.get(f"/admin/realms/{realm}/groups/{group_id}")
        except KeycloakAPIError as e:
            if e.status_code == 404:
                raise GroupNotFoundError(realm, group_id) from e
            raise
        return Group.from_json(resp.json() or {})

    def list_groups(self, realm: str) -> List[Group]:
        """Return all groups of the realm, subgroups flattened.

        Args:
            realm: Realm name
        """
        resp = self.client.get(f"/admin/realms/{realm}/groups")
        return list(_flatten(resp.json() or []))

    def delete_group(self, realm: str, group_id: str) -> None:
        """Delete a group.

        Raises:
            GroupNotFoundError: If Keycloak answers 404
        """
        try:
            self.client.delete(f"/admin/realms/{realm}/groups/{group_id}")
        except KeycloakAPIError as e:
            if e.status_code == 404:
                raise GroupNotFoundError(realm, group_id) from e
            raise
        logger.info(f"[groups] Deleted group {group_id} in realm '{realm}'")


def _flatten(items: Iterable[dict]) -> Iterable[Group]:
    for item in items:
        yield Group.from_json(item)
        yield from _flatten(item.get("subGroups") or [])
