# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/backoffice/routes/products.py
"""
Product management routes with multi-tenant support.

MULTI-TENANT: All product operations are scoped to the caller's company.
The company_id is derived from g.company_id (set by @require_auth).

SECURITY: All routes require authentication.
- Read operations need only a valid token
- Write operations require the live manage_products flag
"""
from flask import Blueprint, request, g, current_app

from ..services import products_service
from ..services.tenant_service import TenantAccessError, InfrastructureError
from ..validation import ValidationError, ConflictError, parse_id
from ..decorators import require_auth, require_permission


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """List the company's products, category joined, ordered by id."""
    try:
        products = products_service.list_products(g.company_id)
    except InfrastructureError:
        return {"error": "Failed to fetch products"}, 500
    return {"products": products}, 200


@products_bp.get("/<product_id>")
@require_auth
def get_product_route(product_id: str):
    """Product detail including its category path (root first)."""
    try:
        pid = parse_id(product_id, "product")
        product = products_service.get_product(pid, g.company_id)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except TenantAccessError:
        return {"error": "Product not found"}, 404
    except InfrastructureError:
        return {"error": "Failed to fetch product"}, 500

    return {"product": product}, 200


@products_bp.post("")
@require_auth
@require_permission("manage_products")
def create_product_route():
    """
    Create a new product in the caller's company.

    Body: name, cost_price, selling_price, image_urls (>= 1), and optionally
    description, attributes, and either category_id or category {name, parent_id}.
    """
    payload = request.get_json(silent=True)
    if payload is None:
        return {"error": "Invalid JSON payload"}, 400

    try:
        created = products_service.create_product(
            payload=payload,
            company_id=g.company_id,
            user_id=g.current_user.id,
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except InfrastructureError:
        return {"error": "Failed to create product"}, 500

    return {"product": created}, 201


@products_bp.patch("/<product_id>")
@require_auth
@require_permission("manage_products")
def update_product_route(product_id: str):
    """
    Patch a product. Any subset of the mutable fields, plus image changes
    (image_urls to replace, or keep_image_urls / add_image_urls).
    """
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}

    try:
        pid = parse_id(product_id, "product")
        updated = products_service.update_product(product_id=pid, payload=payload, company_id=g.company_id)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except TenantAccessError:
        return {"error": "Product not found"}, 404
    except InfrastructureError:
        return {"error": "Failed to update product"}, 500

    return {"product": updated}, 200


@products_bp.delete("/<product_id>")
@require_auth
@require_permission("manage_products")
def delete_product_route(product_id: str):
    """
    Delete a product (with its inventory row and reviews).

    Blocked with 409 while any order references the product.
    """
    try:
        pid = parse_id(product_id, "product")
        deleted = products_service.delete_product(product_id=pid, company_id=g.company_id)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except TenantAccessError:
        return {"error": "Product not found"}, 404
    except InfrastructureError:
        current_app.logger.error("Product delete failed for product %s", product_id)
        return {"error": "Failed to delete product"}, 500

    return {"deleted": deleted}, 200
