"""Exceptions raised while talking to the Keycloak Admin API."""


class KeycloakError(Exception):
    """Base exception for all Keycloak operations."""
    pass


class KeycloakAPIError(KeycloakError):
    """Keycloak answered with an HTTP error status.

    Attributes:
        status_code: HTTP status code
        message: Response body
        endpoint: URL of the failed request
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")


class RealmNotFoundError(KeycloakError):
    """The realm is not among the realms visible to the caller."""

    def __init__(self, realm: str):
        self.realm = realm
        super().__init__(f"Realm '{realm}' not found")


class GroupNotFoundError(KeycloakError):
    """The group identifier is unknown in the realm."""

    def __init__(self, realm: str, group_id: str):
        self.realm = realm
        self.group_id = group_id
        super().__init__(f"Group '{group_id}' not found in realm '{realm}'")
