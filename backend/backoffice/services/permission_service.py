# Overview: Service-layer operations for permission; encapsulates business logic and database work.

"""
Live Permission Checks

WHY: The identity token carries a snapshot of the permission flags, but a
snapshot can be stale (flag revoked, user deleted, company claim tampered).
Before any mutation the acting user's row is re-read by (user_id, company_id)
and the live flag is checked.

DESIGN PRINCIPLES:
- Fail closed: a missing row or company mismatch is Unauthorized
- Terse outcomes: callers only ever see "Unauthorized" / "Forbidden"
- Denials are logged with tenant context; grants are not
- The company owner always holds all three flags
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import User, Company
from ..validation import ValidationError, BadRequestError


PERMISSION_FLAGS = ("manage_products", "manage_inventory", "manage_users")


class AuthenticationError(Exception):
    """Acting principal cannot be confirmed against the database."""
    pass


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""
    pass


def load_acting_user(user_id: int, company_id: int) -> User:
    """
    Re-read the acting user's live row scoped to the claimed company.

    Raises AuthenticationError if the user no longer exists or belongs
    to a different company than the token claims.
    """
    user = db.session.query(User).filter_by(id=user_id, company_id=company_id).first()
    if user is None:
        current_app.logger.warning(
            "Acting user not found: user_id=%s company_id=%s", user_id, company_id
        )
        raise AuthenticationError("Unauthorized")
    return user


def require_flag(user: User, flag: str, *, resource: str | None = None) -> None:
    """
    Check a live permission flag on a freshly loaded user row.

    Raises PermissionDeniedError if the flag is false.
    """
    if flag not in PERMISSION_FLAGS:
        raise ValueError(f"Unknown permission flag: {flag}")

    if not getattr(user, flag):
        current_app.logger.warning(
            "Permission denied: user_id=%s company_id=%s flag=%s resource=%s",
            user.id,
            user.company_id,
            flag,
            resource,
        )
        raise PermissionDeniedError("Forbidden")


def is_company_owner(user: User) -> bool:
    company = db.session.get(Company, user.company_id)
    return company is not None and company.owner_id == user.id


def enforce_owner_permissions(user: User) -> bool:
    """
    Force all three flags true on the owner row.

    Returns True if anything changed. Does not commit.
    """
    changed = False
    for flag in PERMISSION_FLAGS:
        if not getattr(user, flag):
            setattr(user, flag, True)
            changed = True
    return changed


def resolve_permission_update(*, acting_user_id: int, target: User, target_is_owner: bool, requested: dict) -> dict:
    """
    Decide the flags a permissions update actually writes.

    Rules:
    - nobody changes their own permissions (BadRequestError)
    - at least one flag must be supplied, each a boolean
    - the owner cannot have any flag set false (ValidationError); any
      other request on the owner silently resolves to all three true
    """
    if target.id == acting_user_id:
        raise BadRequestError("You cannot change your own permissions")

    unknown = set(requested) - set(PERMISSION_FLAGS)
    if unknown:
        raise ValidationError(f"Field not allowed: {sorted(unknown)[0]}")

    changes = {}
    for flag in PERMISSION_FLAGS:
        if flag not in requested:
            continue
        value = requested[flag]
        if not isinstance(value, bool):
            raise ValidationError(f"{flag} must be a boolean")
        changes[flag] = value

    if not changes:
        raise ValidationError("Provide at least one permission field to update")

    if target_is_owner:
        if any(value is False for value in changes.values()):
            raise ValidationError("Owner must always keep all permissions")
        return {flag: True for flag in PERMISSION_FLAGS}

    return changes
