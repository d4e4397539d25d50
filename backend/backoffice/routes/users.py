# Overview: Flask API routes for user management; parses input and returns JSON responses.

# backend/backoffice/routes/users.py
"""
User management routes.

MULTI-TENANT: every route is scoped to g.company_id; users of other
companies are reported as not found.

SECURITY:
- list/create/permissions/delete require the live manage_users flag
- self-service rename requires only a token whose id matches the target
"""
from flask import Blueprint, request, jsonify, g

from ..services import auth_service, token_service, user_service
from ..services.tenant_service import TenantAccessError, InfrastructureError
from ..validation import ValidationError, ConflictError, parse_id
from ..decorators import require_auth, require_permission

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_permission("manage_users")
def list_users_route():
    """Company users with is_owner; the owner's flags are re-forced true on read."""
    try:
        users = user_service.list_users(g.company_id)
    except InfrastructureError:
        return {"error": "Failed to fetch users"}, 500
    return {"users": users}, 200


@users_bp.post("")
@require_auth
@require_permission("manage_users")
def create_user_route():
    """
    Create a user in the caller's company.

    Body: name, email, password, manage_products, manage_inventory, manage_users
    """
    payload = request.get_json(silent=True)
    if payload is None:
        return {"error": "Invalid JSON payload"}, 400

    try:
        user = auth_service.create_user(company_id=g.company_id, payload=payload)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except InfrastructureError:
        return {"error": "Failed to create user"}, 500

    return {"user": {**user.to_dict(), "is_owner": False}}, 201


@users_bp.patch("/<user_id>/permissions")
@require_auth
@require_permission("manage_users")
def update_permissions_route(user_id: str):
    """Update any subset of the three flags on another user."""
    payload = request.get_json(silent=True) or {}

    try:
        target_id = parse_id(user_id, "user")
        user = user_service.update_permissions(
            company_id=g.company_id,
            acting_user_id=g.current_user.id,
            target_user_id=target_id,
            requested=payload,
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except TenantAccessError:
        return {"error": "User not found"}, 404
    except InfrastructureError:
        return {"error": "Failed to update permissions"}, 500

    return {"user": user}, 200


@users_bp.delete("/<user_id>")
@require_auth
@require_permission("manage_users")
def delete_user_route(user_id: str):
    try:
        target_id = parse_id(user_id, "user")
        deleted = user_service.delete_user(
            company_id=g.company_id,
            acting_user_id=g.current_user.id,
            target_user_id=target_id,
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except TenantAccessError:
        return {"error": "User not found"}, 404
    except InfrastructureError:
        return {"error": "Failed to delete user"}, 500

    return {"deleted": deleted}, 200


@users_bp.patch("/<user_id>")
@require_auth
def update_own_name_route(user_id: str):
    """
    Self-service rename.

    The id in the path must be the caller's own id. The credential is
    reissued with the new name and the old token's remaining lifetime.
    """
    try:
        target_id = parse_id(user_id, "user")
    except ValidationError as e:
        return {"error": str(e)}, 400

    if target_id != g.user_id:
        return {"error": "Unauthorized"}, 401

    payload = request.get_json(silent=True) or {}

    try:
        user = user_service.update_own_name(
            user_id=g.user_id,
            company_id=g.company_id,
            name=payload.get("name") if isinstance(payload, dict) else None,
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except TenantAccessError:
        return {"error": "Unauthorized"}, 401
    except InfrastructureError:
        return {"error": "Failed to update user"}, 500

    token, remaining = token_service.reissue_token(g.token_payload, name=user.name)
    response = jsonify({"user": user.to_dict()})
    return token_service.set_token_cookie(response, token, max_age=remaining)
