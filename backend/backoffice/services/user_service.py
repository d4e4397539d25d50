# Overview: Service-layer operations for company user management.

"""
User Management (company-scoped)

All operations take the caller's company_id; a user id from another
company is reported as not found.

OWNER RULES:
- the owner always holds all three permission flags; listing users
  re-forces them (idempotent self-heal)
- the owner cannot be deleted
- nobody changes their own permissions or deletes themselves
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import User, Company, Product
from ..validation import BadRequestError, ConflictError
from .auth_service import validate_name
from .permission_service import enforce_owner_permissions, resolve_permission_update
from .tenant_service import TenantAccessError, repository_operation


def _company_owner_id(company_id: int) -> int | None:
    company = db.session.get(Company, company_id)
    return company.owner_id if company is not None else None


def _get_user_in_company(user_id: int, company_id: int) -> User:
    user = db.session.query(User).filter_by(id=user_id, company_id=company_id).first()
    if user is None:
        raise TenantAccessError("User not found")
    return user


def _user_dict(user: User, owner_id: int | None) -> dict:
    data = user.to_dict()
    data["is_owner"] = user.id == owner_id
    return data


def list_users(company_id: int) -> list[dict]:
    """Company users ordered by id, each flagged is_owner."""
    owner_id = _company_owner_id(company_id)

    with repository_operation("list_users"):
        users = (
            db.session.query(User)
            .filter(User.company_id == company_id)
            .order_by(User.id.asc())
            .all()
        )

        owner = next((u for u in users if u.id == owner_id), None)
        if owner is not None and enforce_owner_permissions(owner):
            current_app.logger.warning("Restored owner permissions for user %s", owner.id)
            db.session.commit()

    return [_user_dict(u, owner_id) for u in users]


def update_permissions(*, company_id: int, acting_user_id: int, target_user_id: int, requested: dict) -> dict:
    """
    Update a user's permission flags.

    Raises:
        BadRequestError: target is the caller
        ValidationError: no flags, non-boolean, or revoking from the owner
        TenantAccessError: target not in company
    """
    if target_user_id == acting_user_id:
        raise BadRequestError("You cannot change your own permissions")

    target = _get_user_in_company(target_user_id, company_id)
    owner_id = _company_owner_id(company_id)

    changes = resolve_permission_update(
        acting_user_id=acting_user_id,
        target=target,
        target_is_owner=target.id == owner_id,
        requested=requested if isinstance(requested, dict) else {},
    )

    with repository_operation("update_permissions"):
        for flag, value in changes.items():
            setattr(target, flag, value)
        db.session.commit()

    current_app.logger.info(
        "User %s updated permissions of user %s: %s", acting_user_id, target.id, changes
    )
    return _user_dict(target, owner_id)


def delete_user(*, company_id: int, acting_user_id: int, target_user_id: int) -> dict:
    """
    Delete a user of the company.

    Raises:
        BadRequestError: target is the caller
        ConflictError: target is the company owner
        TenantAccessError: target not in company
    """
    if target_user_id == acting_user_id:
        raise BadRequestError("You cannot delete yourself")

    target = _get_user_in_company(target_user_id, company_id)

    if target.id == _company_owner_id(company_id):
        raise ConflictError("Owner cannot be deleted")

    with repository_operation("delete_user"):
        # Products outlive their creator
        db.session.query(Product).filter(Product.created_by_user_id == target.id).update(
            {"created_by_user_id": None}, synchronize_session=False
        )
        db.session.delete(target)
        db.session.commit()

    current_app.logger.info("User %s deleted user %s", acting_user_id, target_user_id)
    return {"id": target_user_id}


def update_own_name(*, user_id: int, company_id: int, name) -> User:
    """Self-service rename. The caller is responsible for reissuing the token."""
    cleaned = validate_name(name, "Name")
    user = _get_user_in_company(user_id, company_id)

    with repository_operation("update_own_name"):
        user.name = cleaned
        db.session.commit()

    return user
