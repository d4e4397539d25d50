# Overview: Service-layer operations for reviews; company listing and public per-product summary.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Review, Product
from .tenant_service import repository_operation


def list_company_reviews(company_id: int) -> list[dict]:
    """Reviews on the company's products, newest first, with product name and images."""
    with repository_operation("list_company_reviews"):
        reviews = (
            db.session.query(Review)
            .join(Product, Product.id == Review.product_id)
            .filter(Product.company_id == company_id)
            .order_by(Review.created_at.desc(), Review.id.desc())
            .all()
        )
    return [r.to_dict(include_product=True) for r in reviews]


def review_summary(product_id: int) -> dict:
    """
    Public review listing for one product.

    average_rating is the mean of the integer ratings rounded to two
    places, or None when the product has no reviews.
    """
    with repository_operation("review_summary"):
        reviews = (
            db.session.query(Review)
            .filter(Review.product_id == product_id)
            .order_by(Review.created_at.desc(), Review.id.desc())
            .all()
        )
        count, average = (
            db.session.query(func.count(Review.id), func.avg(Review.rating))
            .filter(Review.product_id == product_id)
            .one()
        )

    return {
        "reviews": [r.to_dict() for r in reviews],
        "rating_count": int(count or 0),
        "average_rating": round(float(average), 2) if average is not None else None,
    }
