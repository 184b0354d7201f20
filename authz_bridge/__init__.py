"""Back-office authorization bridge.

To use the Flask app:
    from authz_bridge.flask_app import create_app

To reconcile authorizations without HTTP:
    from authz_bridge.core.authorization_service import AuthorizationService
"""
# Note: flask_app is not imported by default so the engine and the Keycloak
# client stay usable without Flask
