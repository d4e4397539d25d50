# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .services import token_service, permission_service
from .services.token_service import InvalidTokenError
from .services.permission_service import AuthenticationError, PermissionDeniedError


def _is_authenticated() -> bool:
    return hasattr(g, 'token_payload') and hasattr(g, 'company_id')


def require_auth(f):
    """
    Require a valid identity token and establish tenant context.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.token_payload: the verified token payload (a cache, see below)
    - g.user_id: the acting user's id
    - g.company_id: the tenant context - REQUIRED

    The payload's permission flags are never used for authorization;
    mutating routes add @require_permission, which re-reads the live row.

    SECURITY: Returns 401 "Unauthorized" for a missing, malformed, tampered
    or expired token, without saying which.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = token_service.token_from_request(request)

        try:
            payload = token_service.verify_token(token)
        except InvalidTokenError as e:
            current_app.logger.info("Rejected token on %s: %s", request.path, e)
            return jsonify({"error": "Unauthorized"}), 401

        g.token_payload = payload
        g.user_id = payload["id"]
        g.company_id = payload["company_id"]

        return f(*args, **kwargs)

    return decorated_function


def require_permission(flag: str):
    """
    Require a live permission flag.

    Applied after @require_auth. Re-reads the acting user's row by
    (user_id, company_id): a missing row or company mismatch is 401, a
    false flag is 403. On success the live row is stored on g.current_user.
    """
    if flag not in permission_service.PERMISSION_FLAGS:
        raise ValueError(f"Unknown permission flag: {flag}")

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return jsonify({"error": "Unauthorized"}), 401

            try:
                user = permission_service.load_acting_user(g.user_id, g.company_id)
                permission_service.require_flag(user, flag, resource=request.path)
            except AuthenticationError:
                return jsonify({"error": "Unauthorized"}), 401
            except PermissionDeniedError:
                return jsonify({"error": "Forbidden"}), 403

            g.current_user = user

            return f(*args, **kwargs)

        return decorated_function
    return decorator
