# Overview: Service-layer operations for categories; shared reference data, not tenant-scoped.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Category
from ..validation import ValidationError
from .tenant_service import repository_operation, TenantAccessError


# Upper bound on parent hops when walking a category chain
MAX_CATEGORY_DEPTH = 25


def list_categories() -> list[Category]:
    with repository_operation("list_categories"):
        return db.session.query(Category).order_by(Category.name.asc(), Category.id.asc()).all()


def get_category(category_id: int) -> Category | None:
    with repository_operation("get_category"):
        return db.session.get(Category, category_id)


def require_category(category_id: int, label: str = "category_id") -> Category:
    """Referenced categories must exist; a dangling reference is a ValidationError."""
    category = get_category(category_id)
    if category is None:
        raise ValidationError(f"{label} does not reference an existing category")
    return category


def category_path(category_id: int) -> list[dict]:
    """
    Ancestry of a category, root first.

    The walk stops after MAX_CATEGORY_DEPTH hops or on the first revisited
    id, so a corrupted parent chain cannot loop.
    """
    category = get_category(category_id)
    if category is None:
        raise TenantAccessError("Category not found")

    chain = []
    visited = set()
    current = category
    while current is not None and len(chain) < MAX_CATEGORY_DEPTH:
        if current.id in visited:
            current_app.logger.warning("Category chain cycle detected at category %s", current.id)
            break
        visited.add(current.id)
        chain.append({"id": current.id, "name": current.name})
        current = get_category(current.parent_id) if current.parent_id is not None else None

    chain.reverse()
    return chain


def create_category(*, name: str, parent_id: int | None = None, commit: bool = True) -> Category:
    """
    Insert a category.

    commit=False only flushes, so the category can share a transaction
    with the product that references it.
    """
    if parent_id is not None:
        require_category(parent_id, "parent_id")

    category = Category(name=name, parent_id=parent_id)
    db.session.add(category)
    if commit:
        with repository_operation("create_category"):
            db.session.commit()
    else:
        db.session.flush()
    return category
