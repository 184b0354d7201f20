"""Low-level HTTP client for Keycloak Admin API.

Handles bearer token propagation and HTTP error mapping.
"""
from __future__ import annotations
import os
from typing import Optional, Dict, Any, List, Union
from datetime import datetime, timedelta

import requests

from .exceptions import KeycloakAPIError

REQUEST_TIMEOUT = 5

JSONPayload = Union[Dict[str, Any], List[Dict[str, Any]]]


class KeycloakClient:
    """HTTP client for Keycloak Admin API calls made on behalf of a caller.

    The back-office never owns credentials of its own: every request carries
    the bearer token of the administrator who initiated the operation.

    Usage:
        client = create_client_with_token("http://keycloak:8080", token)
        response = client.get("/admin/realms/demo/groups")
    """

    def __init__(self, base_url: Optional[str] = None, timeout: float = REQUEST_TIMEOUT):
        """Initialize Keycloak client.

        Args:
            base_url: Keycloak base URL (defaults to KEYCLOAK_URL env var)
            timeout: Per-request timeout in seconds
        """
        self.base_url = (base_url or os.environ.get("KEYCLOAK_URL", "http://keycloak:8080")).rstrip("/")
        self.timeout = timeout
        self._token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None

    def _ensure_authenticated(self) -> None:
        """Ensure a non-expired bearer token is present."""
        if not self._token or not self._token_expires_at:
            raise KeycloakAPIError(401, "Not authenticated - no bearer token available", "")
        if datetime.now() >= self._token_expires_at:
            raise KeycloakAPIError(401, "Bearer token expired", "")

    def _headers(self, kwargs: Dict[str, Any]) -> Dict[str, str]:
        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def get(self, path: str, params: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute GET request with the caller's bearer token.

        Args:
            path: API endpoint path (e.g., "/admin/realms/demo/groups")
            params: Query parameters
            **kwargs: Additional arguments for requests.get

        Returns:
            Response object

        Raises:
            KeycloakAPIError: On HTTP error
        """
        self._ensure_authenticated()
        url = f"{self.base_url}{path}"
        headers = self._headers(kwargs)

        resp = requests.get(url, params=params, headers=headers, timeout=self.timeout, **kwargs)
        self._handle_error(resp)
        return resp

    def post(self, path: str, json: Optional[JSONPayload] = None, **kwargs) -> requests.Response:
        """Execute POST request with the caller's bearer token.

        Raises:
            KeycloakAPIError: On HTTP error
        """
        self._ensure_authenticated()
        url = f"{self.base_url}{path}"
        headers = self._headers(kwargs)

        resp = requests.post(url, json=json, headers=headers, timeout=self.timeout, **kwargs)
        self._handle_error(resp)
        return resp

    def delete(self, path: str, json: Optional[JSONPayload] = None, **kwargs) -> requests.Response:
        """Execute DELETE request with the caller's bearer token.

        Keycloak expects role-mapping removals as a JSON body on DELETE.

        Raises:
            KeycloakAPIError: On HTTP error
        """
        self._ensure_authenticated()
        url = f"{self.base_url}{path}"
        headers = self._headers(kwargs)

        resp = requests.delete(url, json=json, headers=headers, timeout=self.timeout, **kwargs)
        self._handle_error(resp)
        return resp

    def _handle_error(self, resp: requests.Response) -> None:
        """Centralized error handling for HTTP responses.

        Raises:
            KeycloakAPIError: If response status indicates error
        """
        if resp.status_code >= 400:
            raise KeycloakAPIError(resp.status_code, resp.text, resp.url)


def create_client_with_token(
    kc_url: str,
    token: str,
    expires_in: int = 3600,
    timeout: float = REQUEST_TIMEOUT,
) -> KeycloakClient:
    """Create a pre-authenticated KeycloakClient from a caller's bearer token.

    Args:
        kc_url: Keycloak base URL
        token: Bearer token forwarded from the incoming request
        expires_in: Token validity in seconds (default: 1 hour)
        timeout: Per-request timeout in seconds

    Returns:
        KeycloakClient instance with token pre-set
    """
    client = KeycloakClient(kc_url, timeout=timeout)
    client._token = token
    client._token_expires_at = datetime.now() + timedelta(seconds=expires_in)
    return client
