# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/backoffice/services/inventory_service.py
"""
Inventory Invariants (authoritative)

Stock model:
- One Inventory row per product, created lazily. A product without a row
  reads as null inventory (zero stock).
- in_stock is a stored quantity, never negative.

Business invariants:
- in_stock >= reserved_count(product), where reserved_count is the number
  of the product's orders with in_inventory = false. Checked at write time
  against live order data, for every product in a batch.

Bulk writes:
- A batch is validated as a whole before anything is written: size,
  structure, tenancy, stock floor. Any failure rejects the entire batch.
- Duplicate product ids: the last occurrence wins.
- Inserts and updates are applied in one database transaction and
  committed once.

Concurrency:
- Inventory.version_id makes a concurrent writer's flush fail with
  StaleDataError, and two first-time inserts of one product collide on
  uq_inventory_product_id (IntegrityError). The whole attempt (tenancy,
  floor, existence, write) is re-run via run_with_retry, so the floor is
  re-checked against fresh data on every attempt; the last successful
  commit wins.
- Any other database failure rolls the whole batch back and surfaces as
  InfrastructureError.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..validation import BadRequestError, StockBelowReservedError, fits_db_int, parse_int_text
from .concurrency import run_with_retry
from .tenant_service import (
    ProductsNotFoundError,
    TenantAccessError,
    find_company_product_ids,
    find_inventory_by_company,
    get_inventory_in_company,
    get_product_in_company,
    repository_operation,
    reserved_count_by_product,
    total_in_stock,
    upsert_inventory,
)


def _max_batch() -> int:
    return int(current_app.config.get("MAX_BULK_UPDATES", 500))


def _parse_int(value):
    """Integer from an int or an integral string; None if not parseable or out of column range."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, float):
        parsed = int(value) if value.is_integer() else None
    elif isinstance(value, str):
        parsed = parse_int_text(value.strip())
    else:
        parsed = None
    if parsed is None or not fits_db_int(parsed):
        return None
    return parsed


def normalize_updates(raw_updates) -> dict[int, int]:
    """
    Validate batch shape and collapse duplicates.

    Returns {product_id: in_stock} in first-seen id order, with the value
    from the last occurrence of each id.
    """
    if not isinstance(raw_updates, list):
        raise BadRequestError("Invalid request body. Expected {updates: [{product_id, in_stock}, ...]}")

    if len(raw_updates) == 0:
        raise BadRequestError("No updates provided")

    max_batch = _max_batch()
    if len(raw_updates) > max_batch:
        raise BadRequestError(f"Too many updates. Max is {max_batch}")

    by_product_id: dict[int, int] = {}
    for row in raw_updates:
        if not isinstance(row, dict):
            raise BadRequestError("Each update must be an object with product_id and in_stock")

        pid = _parse_int(row.get("product_id"))
        if pid is None or pid <= 0:
            raise BadRequestError("Invalid product_id in updates")

        in_stock = _parse_int(row.get("in_stock"))
        if in_stock is None or in_stock < 0:
            raise BadRequestError("in_stock must be a non-negative integer")

        by_product_id[pid] = in_stock

    return by_product_id


def _check_stock_floor(company_id: int, rows: dict[int, int]) -> None:
    reserved = reserved_count_by_product(company_id, rows.keys())
    invalid = [
        {"product_id": pid, "in_stock": in_stock, "reserved_count": reserved[pid]}
        for pid, in_stock in rows.items()
        if in_stock < reserved[pid]
    ]
    if invalid:
        raise StockBelowReservedError(invalid)


def _apply_batch(company_id: int, rows: dict[int, int]) -> dict:
    owned = find_company_product_ids(company_id, rows.keys())
    missing = set(rows) - owned
    if missing:
        raise ProductsNotFoundError(missing)

    _check_stock_floor(company_id, rows)

    updated, inserted = upsert_inventory(rows)
    db.session.commit()

    written = updated + inserted
    return {"updated": [inv.to_dict() for inv in written], "count": len(written)}


def bulk_update_inventory(company_id: int, raw_updates) -> dict:
    """
    Apply a batch of {product_id, in_stock} updates for one company.

    Raises:
        BadRequestError: not a list, empty, oversize, malformed entry
        ProductsNotFoundError: ids outside the company (invalid_product_ids)
        StockBelowReservedError: every offender below its reserved floor
        ConflictError: concurrent writers kept winning after retries
        InfrastructureError: the database failed; nothing was committed
    """
    rows = normalize_updates(raw_updates)

    with repository_operation("bulk_update_inventory"):
        result = run_with_retry(lambda: _apply_batch(company_id, rows))

    current_app.logger.info(
        "Bulk inventory update for company %s: %s row(s) written",
        company_id,
        result["count"],
    )
    return result


def set_inventory(company_id: int, product_id: int, in_stock) -> dict:
    """Single-product write through the same batch path."""
    result = bulk_update_inventory(company_id, [{"product_id": product_id, "in_stock": in_stock}])
    return result["updated"][0]


def list_inventory(company_id: int) -> list[dict]:
    """Every company product with its inventory row (or None) and reserved count."""
    pairs = find_inventory_by_company(company_id)
    reserved = reserved_count_by_product(company_id, [p.id for p, _ in pairs])

    return [
        {
            "product": {
                "id": product.id,
                "name": product.name,
                "image_urls": list(product.image_urls or []),
            },
            "inventory": inv.to_dict() if inv is not None else None,
            "reserved_count": reserved.get(product.id, 0),
        }
        for product, inv in pairs
    ]


def get_inventory(company_id: int, product_id: int) -> dict | None:
    """
    Inventory of one company product; None when the product has no row yet.

    Raises TenantAccessError if the product is not in the company.
    """
    if get_product_in_company(product_id, company_id) is None:
        raise TenantAccessError("Product not found")

    inv = get_inventory_in_company(product_id, company_id)
    return inv.to_dict() if inv is not None else None


def get_total_in_stock(company_id: int) -> int:
    return total_in_stock(company_id)
