# Overview: Flask API routes for orders and the company overview; read-only.

from flask import Blueprint, request, g

from ..services import order_service
from ..services.tenant_service import TenantAccessError, InfrastructureError
from ..validation import ValidationError, parse_id, parse_bool_arg
from ..decorators import require_auth

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")
overview_bp = Blueprint("overview", __name__, url_prefix="/api/overview")


@orders_bp.get("")
@require_auth
def list_orders_route():
    """
    Company orders, newest first, customer joined.

    Query params:
    - in_inventory: true|false (optional)
    """
    try:
        in_inventory = parse_bool_arg(request.args.get("in_inventory"), "in_inventory")
        orders = order_service.list_orders(g.company_id, in_inventory=in_inventory)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except InfrastructureError:
        return {"error": "Failed to fetch orders"}, 500
    return {"orders": orders}, 200


@orders_bp.get("/<product_id>")
@require_auth
def list_product_orders_route(product_id: str):
    try:
        pid = parse_id(product_id, "product")
        orders = order_service.list_product_orders(g.company_id, pid)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except TenantAccessError:
        return {"error": "Product not found"}, 404
    except InfrastructureError:
        return {"error": "Failed to fetch orders"}, 500
    return {"orders": orders}, 200


@overview_bp.get("")
@require_auth
def overview_route():
    try:
        overview = order_service.company_overview(g.company_id)
    except InfrastructureError:
        return {"error": "Failed to fetch overview"}, 500
    return overview, 200
