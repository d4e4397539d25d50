"""
Multi-Tenant Service: Company-Scoped Repository Helpers

WHY: Centralize tenant scoping for reuse across services and routes.
Every query touching company-owned data goes through here, and a row that
exists in another company is reported exactly like a row that does not exist.

SECURITY INVARIANTS:
1. Every authenticated request has g.company_id set (see decorators.require_auth)
2. Products carry company_id directly; inventory, orders and reviews are
   only reachable through a product of the caller's company
3. Cross-tenant probes are logged, never revealed to the caller

USAGE:
    from backoffice.services.tenant_service import get_product_in_company

    product = get_product_in_company(product_id, g.company_id)
    if product is None:
        return {"error": "Product not found"}, 404
"""

from __future__ import annotations

from contextlib import contextmanager

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product, Inventory, Order, Customer


class TenantAccessError(Exception):
    """Raised when an entity is missing from the caller's company scope."""
    pass


class ProductsNotFoundError(TenantAccessError):
    """One or more product ids are not owned by the caller's company."""

    def __init__(self, product_ids):
        super().__init__("One or more products not found")
        self.invalid_product_ids = sorted(product_ids)


class InfrastructureError(Exception):
    """
    The database failed underneath an operation.

    Carries the operation name only; internal detail is logged server-side.
    """

    def __init__(self, operation: str):
        super().__init__(f"{operation} failed")
        self.operation = operation


@contextmanager
def repository_operation(name: str):
    """
    Wrap database work so store failures surface as InfrastructureError.

    The session is rolled back before re-raising.
    """
    try:
        yield
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Repository operation %s failed", name)
        raise InfrastructureError(name)


def _log_cross_tenant_attempt(message: str, company_id: int) -> None:
    current_app.logger.warning("Cross-tenant lookup denied (company_id=%s): %s", company_id, message)


def find_products_by_company(company_id: int) -> list[Product]:
    """All products of a company, category joined, stable by id ascending."""
    with repository_operation("find_products_by_company"):
        return (
            db.session.query(Product)
            .filter(Product.company_id == company_id)
            .order_by(Product.id.asc())
            .all()
        )


def get_product_in_company(product_id: int, company_id: int) -> Product | None:
    """
    Return the product if it belongs to the company, else None.

    SECURITY: A product owned by another company is indistinguishable from
    a missing one.
    """
    with repository_operation("get_product_in_company"):
        product = db.session.query(Product).filter_by(id=product_id).first()

    if product is None:
        return None

    if product.company_id != company_id:
        _log_cross_tenant_attempt(
            f"Product {product_id} belongs to company {product.company_id}",
            company_id,
        )
        return None

    return product


def require_product_in_company(product_id: int, company_id: int) -> Product:
    """Like get_product_in_company but raises TenantAccessError."""
    product = get_product_in_company(product_id, company_id)
    if product is None:
        raise TenantAccessError("Product not found")
    return product


def find_company_product_ids(company_id: int, product_ids) -> set[int]:
    """Subset of product_ids owned by the company."""
    ids = set(product_ids)
    if not ids:
        return set()

    with repository_operation("find_company_product_ids"):
        rows = (
            db.session.query(Product.id)
            .filter(Product.company_id == company_id, Product.id.in_(ids))
            .all()
        )
    return {row[0] for row in rows}


def find_inventory_by_company(company_id: int) -> list[tuple[Product, Inventory | None]]:
    """
    One entry per company product with its inventory row (LEFT join).

    Products without an inventory row appear with None.
    """
    with repository_operation("find_inventory_by_company"):
        return (
            db.session.query(Product, Inventory)
            .outerjoin(Inventory, Inventory.product_id == Product.id)
            .filter(Product.company_id == company_id)
            .order_by(Product.id.asc())
            .all()
        )


def get_inventory_in_company(product_id: int, company_id: int) -> Inventory | None:
    """Inventory row of a company product, or None (missing row or foreign product)."""
    with repository_operation("get_inventory_in_company"):
        return (
            db.session.query(Inventory)
            .join(Product, Product.id == Inventory.product_id)
            .filter(Inventory.product_id == product_id, Product.company_id == company_id)
            .first()
        )


def total_in_stock(company_id: int) -> int:
    """Sum of in_stock across the company's inventory rows."""
    with repository_operation("total_in_stock"):
        total = (
            db.session.query(func.coalesce(func.sum(Inventory.in_stock), 0))
            .join(Product, Product.id == Inventory.product_id)
            .filter(Product.company_id == company_id)
            .scalar()
        )
    return int(total or 0)


def find_orders_by_company(
    company_id: int,
    product_id: int | None = None,
    in_inventory: bool | None = None,
) -> list[Order]:
    """
    Orders on the company's products, customer joined, newest first.

    Optional filters: a single product id and the in_inventory flag.
    """
    with repository_operation("find_orders_by_company"):
        q = (
            db.session.query(Order)
            .join(Product, Product.id == Order.product_id)
            .outerjoin(Customer, Customer.id == Order.customer_id)
            .filter(Product.company_id == company_id)
        )
        if product_id is not None:
            q = q.filter(Order.product_id == product_id)
        if in_inventory is not None:
            q = q.filter(Order.in_inventory.is_(in_inventory))

        return q.order_by(Order.created_at.desc(), Order.id.desc()).all()


def reserved_count_by_product(company_id: int, product_ids) -> dict[int, int]:
    """
    Count of reserved orders (in_inventory = false) per product, in one query.

    Every requested id is present in the result; ids with no reserved
    orders map to 0.
    """
    ids = set(product_ids)
    counts = {pid: 0 for pid in ids}
    if not ids:
        return counts

    with repository_operation("reserved_count_by_product"):
        rows = (
            db.session.query(Order.product_id, func.count(Order.id))
            .join(Product, Product.id == Order.product_id)
            .filter(
                Product.company_id == company_id,
                Order.product_id.in_(ids),
                Order.in_inventory.is_(False),
            )
            .group_by(Order.product_id)
            .all()
        )

    for pid, count in rows:
        counts[pid] = int(count)
    return counts


def count_orders_for_product(product_id: int) -> int:
    with repository_operation("count_orders_for_product"):
        return db.session.query(func.count(Order.id)).filter(Order.product_id == product_id).scalar() or 0


def upsert_inventory(rows: dict[int, int]) -> tuple[list[Inventory], list[Inventory]]:
    """
    Insert-if-absent / update-if-present for {product_id: in_stock}.

    Partitioned from a single existence lookup. Inserts are added as one
    batch, updates applied row by row. Flushes but does not commit; the
    caller owns the transaction.

    Returns (updated_rows, inserted_rows).
    """
    if not rows:
        return [], []

    existing = {
        inv.product_id: inv
        for inv in db.session.query(Inventory).filter(Inventory.product_id.in_(rows.keys())).all()
    }

    inserted = [
        Inventory(product_id=pid, in_stock=in_stock)
        for pid, in_stock in rows.items()
        if pid not in existing
    ]
    db.session.add_all(inserted)

    updated = []
    for pid, in_stock in rows.items():
        inv = existing.get(pid)
        if inv is None:
            continue
        inv.in_stock = in_stock
        updated.append(inv)

    db.session.flush()
    return updated, inserted
