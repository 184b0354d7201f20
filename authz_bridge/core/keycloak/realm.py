"""Keycloak realm and client lookups."""
from __future__ import annotations
from typing import Optional, List

from .client import KeycloakClient
from .representations import Realm, Client


class RealmService:
    """Service for reading Keycloak realms and their clients."""

    def __init__(self, client: KeycloakClient):
        """Initialize realm service.

        Args:
            client: Authenticated Keycloak client
        """
        self.client = client

    def list_realms(self) -> List[Realm]:
        """Return every realm visible to the caller."""
        resp = self.client.get("/admin/realms")
        return [Realm.from_json(item) for item in resp.json() or []]

    def list_clients(self, realm: str) -> List[Client]:
        """Return all clients registered in the realm.

        Args:
            realm: Realm name
        """
        resp = self.client.get(f"/admin/realms/{realm}/clients")
        return [Client.from_json(item) for item in resp.json() or []]

    def get_client(self, realm: str, client_id: str) -> Optional[Client]:
        """Return the client matching the public client_id, if it exists.

        Args:
            realm: Realm name
            client_id: Client ID to find (e.g. realm-management)

        Returns:
            Client or None if not found
        """
        return find_client(self.list_clients(realm), client_id)


def find_client(clients: List[Client], client_id: str) -> Optional[Client]:
    """Pick the client whose public identifier equals client_id."""
    for candidate in clients:
        if candidate.client_id == client_id:
            return candidate
    return None
