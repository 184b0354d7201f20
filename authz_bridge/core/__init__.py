"""Core Business Logic Module

Authorization matrices, their reconciliation with Keycloak and their
persistence, independent of HTTP frameworks.

Module Structure:
    - keycloak/                : Keycloak Admin API client and services
    - matrix.py                : Matrix validation and row conversion
    - role_diff.py             : Privileged bundle grant/revoke planning
    - authorization_service.py : Update, read and group deletion pipelines
    - models.py                : AuthorizationRow, RequestContext
    - exceptions.py            : Engine exceptions

Usage Pattern:
    Import explicitly when needed:
        from authz_bridge.core.authorization_service import AuthorizationService
        from authz_bridge.core.matrix import validate_matrix
"""
