# Overview: Service-layer operations for orders; read-only, company-scoped.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Order, Product
from .tenant_service import (
    TenantAccessError,
    find_orders_by_company,
    get_product_in_company,
    repository_operation,
)


def list_orders(company_id: int, *, in_inventory: bool | None = None) -> list[dict]:
    """Company orders, newest first, optionally filtered by in_inventory."""
    return [o.to_dict() for o in find_orders_by_company(company_id, in_inventory=in_inventory)]


def list_product_orders(company_id: int, product_id: int) -> list[dict]:
    """
    Orders of one company product, newest first.

    Raises TenantAccessError if the product is not in the company.
    """
    if get_product_in_company(product_id, company_id) is None:
        raise TenantAccessError("Product not found")
    return [o.to_dict() for o in find_orders_by_company(company_id, product_id=product_id)]


def company_overview(company_id: int) -> dict:
    """Headline totals for the dashboard."""
    with repository_operation("company_overview"):
        products = (
            db.session.query(func.count(Product.id))
            .filter(Product.company_id == company_id)
            .scalar()
        )
        orders = (
            db.session.query(func.count(Order.id))
            .join(Product, Product.id == Order.product_id)
            .filter(Product.company_id == company_id)
            .scalar()
        )
    return {"totals": {"products": int(products or 0), "orders": int(orders or 0)}}
