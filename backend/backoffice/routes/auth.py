# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/backoffice/routes/auth.py
"""
Authentication API routes

- register: bootstraps a company and its owner, sets the credential cookie
- login: checks credentials, sets the credential cookie
- logout: clears the credential cookie
- me: identity straight from the verified token (no database read)

The token is never returned in the body; it travels only as the
HTTP-only "token" cookie.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service, token_service
from ..services.permission_service import AuthenticationError
from ..services.tenant_service import InfrastructureError
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """
    Register a company with its owner.

    Body: company_name, owner_name, owner_email, owner_password
    The owner gets all three permission flags.
    """
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        company, owner = auth_service.register_company(
            company_name=data.get("company_name"),
            owner_name=data.get("owner_name"),
            owner_email=data.get("owner_email"),
            owner_password=data.get("owner_password"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except InfrastructureError:
        return jsonify({"error": "Internal server error"}), 500

    token = token_service.issue_token(owner, company)
    response = jsonify({
        "message": "Registered",
        "company": company.to_dict(),
        "user": owner.to_dict(),
    })
    response.status_code = 201
    return token_service.set_token_cookie(response, token)


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and set the credential cookie.

    SECURITY: unknown email and wrong password return the same 401.
    """
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        user, company = auth_service.authenticate(data.get("email"), data.get("password"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except AuthenticationError as e:
        current_app.logger.info("Failed login from %s", request.remote_addr)
        return jsonify({"error": str(e)}), 401
    except InfrastructureError:
        return jsonify({"error": "Internal server error"}), 500

    token = token_service.issue_token(user, company)
    response = jsonify({
        "message": "Logged in",
        "user": {**user.to_dict(), "company_name": company.name},
    })
    return token_service.set_token_cookie(response, token)


@auth_bp.post("/logout")
def logout_route():
    response = jsonify({"message": "Logged out"})
    return token_service.clear_token_cookie(response)


@auth_bp.get("/me")
@require_auth
def me_route():
    """Sanitized identity fields from the token. Read-only, so the cached flags are fine here."""
    payload = g.token_payload
    return jsonify({
        "user": {
            "id": payload["id"],
            "name": payload.get("name"),
            "email": payload.get("email"),
            "company_id": payload["company_id"],
            "company_name": payload.get("company_name"),
            "manage_products": bool(payload.get("manage_products")),
            "manage_inventory": bool(payload.get("manage_inventory")),
            "manage_users": bool(payload.get("manage_users")),
        }
    }), 200
