# backend/backoffice/services/products_service.py
"""
Products Service with Multi-Tenant Support

MULTI-TENANT: All product operations are company-scoped.
- list_products returns only the caller's company products
- get/update/delete treat a foreign product exactly like a missing one
- create_product stamps company_id and created_by_user_id from the caller

INVARIANTS: create and patch both run enforce_rules_product on the full
post-write candidate, never on the delta alone.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import delete as sa_delete

from ..extensions import db
from ..models import Product, Inventory, Review
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    ConflictError,
    enforce_rules_product,
    validate_new_category,
    validate_payload,
)
from .catalog_service import create_category, require_category, category_path
from .tenant_service import (
    TenantAccessError,
    count_orders_for_product,
    find_products_by_company,
    get_product_in_company,
    repository_operation,
)

PRODUCT_MUTABLE_FIELDS = {
    "name",
    "description",
    "cost_price",
    "selling_price",
    "category_id",
    "attributes",
    "image_urls",
}

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_MUTABLE_FIELDS,
    required_on_create={"name", "cost_price", "selling_price", "image_urls"},
)

# Image edits on patch: keep a subset of the current urls and append new ones
IMAGE_CHANGE_FIELDS = {"keep_image_urls", "add_image_urls"}


def _current_values(p: Product) -> dict:
    return {k: getattr(p, k) for k in PRODUCT_MUTABLE_FIELDS}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _url_list(raw, field: str) -> list[str]:
    if not isinstance(raw, list):
        raise ValidationError(f"{field} must be an array")
    urls = []
    for url in raw:
        if not isinstance(url, str) or not url.strip():
            raise ValidationError(f"{field} must contain non-empty strings")
        urls.append(url.strip())
    return urls


def list_products(company_id: int) -> list[dict]:
    return [p.to_dict() for p in find_products_by_company(company_id)]


def get_product(product_id: int, company_id: int) -> dict:
    """Product detail with its category ancestry. Raises TenantAccessError."""
    product = get_product_in_company(product_id, company_id)
    if product is None:
        raise TenantAccessError("Product not found")

    data = product.to_dict()
    data["category_path"] = category_path(product.category_id) if product.category_id is not None else []
    return data


def create_product(*, payload: dict, company_id: int, user_id: int) -> dict:
    """
    Create a product from a raw JSON payload.

    The payload may carry either category_id (existing category) or
    category ({name, parent_id}) to create a new one; never both. A new
    category and the product are inserted in one transaction.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    payload = dict(payload)
    raw_category = payload.pop("category", None)
    new_category = validate_new_category(raw_category) if raw_category is not None else None

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    patch.setdefault("description", None)
    patch.setdefault("attributes", None)
    patch.setdefault("category_id", None)

    enforce_rules_product(patch, new_category=new_category)

    if patch["image_urls"] is not None:
        patch["image_urls"] = [u.strip() for u in patch["image_urls"]]

    if patch["category_id"] is not None:
        require_category(patch["category_id"])

    with repository_operation("create_product"):
        try:
            if new_category is not None:
                category = create_category(
                    name=new_category["name"],
                    parent_id=new_category["parent_id"],
                    commit=False,
                )
                patch["category_id"] = category.id

            product = Product(company_id=company_id, created_by_user_id=user_id)
            apply_product_patch(product, patch)
            db.session.add(product)
            db.session.commit()
        except ValidationError:
            db.session.rollback()
            raise

    current_app.logger.info("Created product %s in company %s", product.id, company_id)
    return product.to_dict()


def update_product(*, product_id: int, payload: dict, company_id: int) -> dict:
    """
    Patch a product.

    The validated delta is merged over the stored row and the merged
    candidate is re-validated in full (price ordering, images, attributes).
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    payload = dict(payload)
    image_changes = {k: payload.pop(k) for k in IMAGE_CHANGE_FIELDS if k in payload}

    if "category" in payload:
        raise ValidationError("Field not allowed: category")

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)

    if not patch and not image_changes:
        raise ValidationError("No fields to update")

    if image_changes and "image_urls" in patch:
        raise ValidationError("Provide either image_urls or keep_image_urls/add_image_urls, not both")

    product = get_product_in_company(product_id, company_id)
    if product is None:
        raise TenantAccessError("Product not found")

    if image_changes:
        current = list(product.image_urls or [])
        keep = (
            _url_list(image_changes["keep_image_urls"], "keep_image_urls")
            if "keep_image_urls" in image_changes
            else current
        )
        unknown = [u for u in keep if u not in current]
        if unknown:
            raise ValidationError("keep_image_urls may only contain the product's current images")
        added = _url_list(image_changes.get("add_image_urls", []), "add_image_urls")
        patch["image_urls"] = keep + added

    if "image_urls" in patch and isinstance(patch["image_urls"], list):
        patch["image_urls"] = [u.strip() if isinstance(u, str) else u for u in patch["image_urls"]]

    candidate = {**_current_values(product), **patch}
    enforce_rules_product(candidate)

    if patch.get("category_id") is not None:
        require_category(patch["category_id"])

    with repository_operation("update_product"):
        apply_product_patch(product, patch)
        db.session.commit()

    return product.to_dict()


def delete_product(*, product_id: int, company_id: int) -> dict:
    """
    Delete a product with its inventory row and reviews.

    Blocked with ConflictError while any order references the product.
    """
    product = get_product_in_company(product_id, company_id)
    if product is None:
        raise TenantAccessError("Product not found")

    if count_orders_for_product(product.id) > 0:
        raise ConflictError("Cannot delete product with existing orders")

    deleted = {"id": product.id, "name": product.name}

    with repository_operation("delete_product"):
        db.session.execute(sa_delete(Inventory).where(Inventory.product_id == product.id))
        db.session.execute(sa_delete(Review).where(Review.product_id == product.id))
        db.session.execute(
            sa_delete(Product).where(Product.id == product.id, Product.company_id == company_id)
        )
        db.session.commit()

    current_app.logger.info("Deleted product %s in company %s", deleted["id"], company_id)
    return deleted
