"""Keycloak Admin API client library.

This package provides the subset of the Keycloak Admin API the back-office
needs to reconcile group authorizations.

Architecture:
- client.py: HTTP client carrying the caller's bearer token
- representations.py: Realm, Group, Client and Role views of Keycloak JSON
- attributes.py: Typed accessor over Keycloak attribute maps
- realm.py: Realm and client lookups
- groups.py: Group lookup, listing and deletion
- roles.py: Client-role mappings of groups
- exceptions.py: Typed exceptions for error handling

Usage:
    from authz_bridge.core.keycloak import create_client_with_token, GroupService

    client = create_client_with_token("http://keycloak:8080", token)
    group = GroupService(client).get_group("demo", group_id)
"""
from .client import (
    KeycloakClient,
    create_client_with_token,
    REQUEST_TIMEOUT,
)
from .exceptions import (
    KeycloakError,
    KeycloakAPIError,
    RealmNotFoundError,
    GroupNotFoundError,
)
from .attributes import Attributes
from .representations import Realm, Group, Client, Role
from .realm import RealmService, find_client
from .groups import GroupService
from .roles import RoleService

__all__ = [
    # Client
    "KeycloakClient",
    "create_client_with_token",
    "REQUEST_TIMEOUT",

    # Exceptions
    "KeycloakError",
    "KeycloakAPIError",
    "RealmNotFoundError",
    "GroupNotFoundError",

    # Representations
    "Attributes",
    "Realm",
    "Group",
    "Client",
    "Role",

    # Services
    "RealmService",
    "GroupService",
    "RoleService",
    "find_client",
]
