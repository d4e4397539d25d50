# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

# backend/backoffice/routes/inventory.py
from flask import Blueprint, request, g

from ..services import inventory_service
from ..services.tenant_service import TenantAccessError, ProductsNotFoundError, InfrastructureError
from ..validation import ValidationError, StockBelowReservedError, ConflictError, parse_id
from ..decorators import require_auth, require_permission

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _write_error(e):
    """Map coordinator failures to responses; None if e is not one of them."""
    if isinstance(e, StockBelowReservedError):
        return {"error": str(e), "invalid": e.invalid}, 400
    if isinstance(e, ValidationError):
        return {"error": str(e)}, 400
    if isinstance(e, ProductsNotFoundError):
        return {"error": "Some products were not found", "invalid_product_ids": e.invalid_product_ids}, 404
    if isinstance(e, TenantAccessError):
        return {"error": "Product not found"}, 404
    if isinstance(e, ConflictError):
        return {"error": str(e)}, 409
    if isinstance(e, InfrastructureError):
        return {"error": "Failed to update inventory"}, 500
    return None


@inventory_bp.get("")
@require_auth
def list_inventory_route():
    """Every company product with stock (or null), reserved count and timestamps."""
    try:
        items = inventory_service.list_inventory(g.company_id)
    except InfrastructureError:
        return {"error": "Failed to fetch inventory"}, 500
    return {"items": items}, 200


@inventory_bp.get("/count")
@require_auth
def inventory_count_route():
    try:
        total = inventory_service.get_total_in_stock(g.company_id)
    except InfrastructureError:
        return {"error": "Failed to fetch inventory count"}, 500
    return {"total_in_stock": total}, 200


@inventory_bp.get("/<product_id>")
@require_auth
def get_inventory_route(product_id: str):
    try:
        pid = parse_id(product_id, "product")
        inventory = inventory_service.get_inventory(g.company_id, pid)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except TenantAccessError:
        return {"error": "Product not found"}, 404
    except InfrastructureError:
        return {"error": "Failed to fetch inventory"}, 500
    return {"inventory": inventory}, 200


@inventory_bp.post("")
@require_auth
@require_permission("manage_inventory")
def bulk_update_route():
    """
    Bulk inventory update.

    Body: {"updates": [{"product_id": 1, "in_stock": 5}, ...]} or the bare list.
    At most MAX_BULK_UPDATES entries; the last entry for a product wins.
    The batch is all-or-nothing.
    """
    body = request.get_json(silent=True)
    if isinstance(body, list):
        raw_updates = body
    elif isinstance(body, dict):
        raw_updates = body.get("updates")
    else:
        raw_updates = None

    try:
        result = inventory_service.bulk_update_inventory(g.company_id, raw_updates)
    except (ValidationError, TenantAccessError, ConflictError, InfrastructureError) as e:
        return _write_error(e)

    return result, 200


@inventory_bp.put("/<product_id>")
@require_auth
@require_permission("manage_inventory")
def set_inventory_route(product_id: str):
    """Set stock for one product. Body: {"in_stock": n}."""
    body = request.get_json(silent=True)
    if not isinstance(body, dict) or "in_stock" not in body:
        return {"error": "in_stock is required"}, 400

    try:
        pid = parse_id(product_id, "product")
        inventory = inventory_service.set_inventory(g.company_id, pid, body["in_stock"])
    except (ValidationError, TenantAccessError, ConflictError, InfrastructureError) as e:
        return _write_error(e)

    return {"inventory": inventory}, 200
