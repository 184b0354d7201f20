"""Back-office management endpoints for group authorizations.

The blueprint only marshals requests: callers are authenticated upstream and
their bearer token is forwarded untouched to Keycloak, which enforces its own
permissions on every lookup and role mapping.
"""
from __future__ import annotations
import logging

from flask import Blueprint, abort, current_app, jsonify, request

from authz_bridge.core.authorization_service import AuthorizationService
from authz_bridge.core.models import RequestContext

bp = Blueprint("authorizations", __name__)

logger = logging.getLogger(__name__)


def _service() -> AuthorizationService:
    return current_app.extensions["authorization_service"]


def _request_context() -> RequestContext:
    """Build the caller context from request headers."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        abort(401, description="Authorization header must use Bearer token scheme")
    token = auth_header[7:].strip()
    if not token:
        abort(401, description="Bearer token is empty")

    ctx = RequestContext(
        access_token=token,
        username=request.headers.get("X-Agent-Username", "unknown"),
        realm=request.headers.get("X-Agent-Realm", "master"),
    )
    correlation_id = request.headers.get("X-Correlation-Id")
    if correlation_id:
        ctx.correlation_id = correlation_id
    return ctx


@bp.route("/realms/<realm>/groups/<group_id>/authorizations", methods=["GET"])
def get_authorizations(realm: str, group_id: str):
    """Return the authorization matrix of a group."""
    ctx = _request_context()
    matrix = _service().get_authorizations(ctx, realm, group_id)
    return jsonify({"matrix": matrix})


@bp.route("/realms/<realm>/groups/<group_id>/authorizations", methods=["PUT"])
def update_authorizations(realm: str, group_id: str):
    """Replace the authorization matrix of a group."""
    ctx = _request_context()
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict) or "matrix" not in payload:
        abort(400, description="Body must be a JSON object with a 'matrix' member")

    _service().update_authorizations(ctx, realm, group_id, payload["matrix"])
    logger.info(f"Authorizations updated realm={realm} group={group_id} correlation_id={ctx.correlation_id}")
    return "", 204


@bp.route("/realms/<realm>/groups/<group_id>", methods=["DELETE"])
def delete_group(realm: str, group_id: str):
    """Delete a group together with every authorization mentioning it."""
    ctx = _request_context()
    _service().delete_group(ctx, realm, group_id)
    return "", 204
