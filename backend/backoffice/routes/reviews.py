# Overview: Flask API routes for reviews; company listing and public per-product view.

from flask import Blueprint, g

from ..services import review_service
from ..services.tenant_service import InfrastructureError
from ..validation import ValidationError, parse_id
from ..decorators import require_auth

reviews_bp = Blueprint("reviews", __name__, url_prefix="/api/reviews")


@reviews_bp.get("")
@require_auth
def list_reviews_route():
    """Reviews on the company's products, with product name and images."""
    try:
        reviews = review_service.list_company_reviews(g.company_id)
    except InfrastructureError:
        return {"error": "Failed to fetch reviews"}, 500
    return {"reviews": reviews}, 200


@reviews_bp.get("/<product_id>")
def product_reviews_route(product_id: str):
    """Public: reviews of one product with rating_count and average_rating."""
    try:
        pid = parse_id(product_id, "product")
        summary = review_service.review_summary(pid)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except InfrastructureError:
        return {"error": "Failed to fetch reviews"}, 500
    return summary, 200
