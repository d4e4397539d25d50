# Overview: Flask API routes for categories; shared reference data, no authentication.

from flask import Blueprint

from ..services import catalog_service
from ..services.tenant_service import TenantAccessError, InfrastructureError
from ..validation import ValidationError, parse_id

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
def list_categories_route():
    try:
        categories = catalog_service.list_categories()
    except InfrastructureError:
        return {"error": "Failed to fetch categories"}, 500
    return {"categories": [c.to_dict() for c in categories]}, 200


@categories_bp.get("/<category_id>/path")
def category_path_route(category_id: str):
    """Ancestry of a category, root first."""
    try:
        cid = parse_id(category_id, "category")
        path = catalog_service.category_path(cid)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except TenantAccessError:
        return {"error": "Category not found"}, 404
    except InfrastructureError:
        return {"error": "Failed to fetch category"}, 500
    return {"path": path}, 200
