from __future__ import annotations

import math
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import JSON, Boolean, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta


# Maximum price that fits Numeric(12, 2)
MAX_PRICE = Decimal("9999999999.99")

# Largest value a signed 64-bit INTEGER column holds
MAX_DB_INT = 2**63 - 1
MIN_DB_INT = -(2**63)

# ASCII digits with an optional leading minus
_INT_RE = re.compile(r"-?[0-9]+")


class ValidationError(ValueError):
    """400-level input problem."""


class BadRequestError(ValidationError):
    """400-level structural request problem (batch size, self-targeting, bad ids)."""


class StockBelowReservedError(ValidationError):
    """
    Requested stock is below the reserved-order floor.

    `invalid` lists every offender as {product_id, in_stock, reserved_count}.
    """

    def __init__(self, invalid: list[dict]):
        super().__init__("in_stock cannot be less than reserved_count")
        self.invalid = invalid


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., deleting a product with orders)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        parsed = None
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            parsed = value
        # String input - must be plain digits (with optional leading minus)
        elif isinstance(value, str):
            stripped = value.strip()
            if 'e' in stripped.lower() or '.' in stripped:
                raise ValidationError(f"{col.key} must be a plain integer")
            parsed = parse_int_text(stripped)
        if parsed is None:
            raise ValidationError(f"{col.key} must be an integer")
        if not fits_db_int(parsed):
            raise ValidationError(f"{col.key} is out of range")
        return parsed

    # Money columns: any finite number, kept as Decimal
    if isinstance(coltype, Numeric):
        if isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a number")
        if isinstance(value, float) and not math.isfinite(value):
            raise ValidationError(f"{col.key} must be a valid number")
        if isinstance(value, (int, float, Decimal)):
            return Decimal(str(value))
        if isinstance(value, str):
            try:
                parsed = Decimal(value.strip())
            except InvalidOperation:
                raise ValidationError(f"{col.key} must be a number")
            if not parsed.is_finite():
                raise ValidationError(f"{col.key} must be a valid number")
            return parsed
        raise ValidationError(f"{col.key} must be a number")

    # Booleans are never inferred from truthiness
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be a boolean")

    # JSON columns are checked by the per-model business rules
    if isinstance(coltype, JSON):
        return value

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        if not isinstance(value, (str, int, float)) or isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a string")
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and isinstance(val, str) and val == "":
            # Blank optional text is stored as NULL
            if col.nullable:
                patch[k] = None
                continue
            raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def _check_price(field: str, value: Any) -> None:
    if value is None:
        raise ValidationError(f"{field} is required")
    if value < 0:
        raise ValidationError(f"{field} must be 0 or more")
    if value > MAX_PRICE:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE}")


def enforce_rules_product(candidate: dict, *, new_category: dict | None = None) -> None:
    """
    Full-entity product rules. `candidate` is always the complete
    post-write product (create payload, or existing row merged with a patch).
    """
    if not candidate.get("name"):
        raise ValidationError("name is required")

    _check_price("cost_price", candidate.get("cost_price"))
    _check_price("selling_price", candidate.get("selling_price"))
    if candidate["selling_price"] < candidate["cost_price"]:
        raise ValidationError("selling_price must be greater than or equal to cost_price")

    image_urls = candidate.get("image_urls")
    if not isinstance(image_urls, list) or len(image_urls) == 0:
        raise ValidationError("image_urls must be a non-empty array")
    for url in image_urls:
        if not isinstance(url, str) or not url.strip():
            raise ValidationError("image_urls must contain non-empty strings")

    attributes = candidate.get("attributes")
    if attributes is not None and not isinstance(attributes, dict):
        raise ValidationError("attributes must be an object (JSON) or null")

    if new_category is not None and candidate.get("category_id") is not None:
        raise ValidationError("Provide either category_id or category, not both")


def validate_new_category(raw: Any) -> dict:
    """Validate the `category` object of a product create request."""
    if not isinstance(raw, dict):
        raise ValidationError("category must be an object")

    unknown = set(raw) - {"name", "parent_id"}
    if unknown:
        raise ValidationError(f"Field not allowed: {sorted(unknown)[0]}")

    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Category name is required")
    if len(name.strip()) > 120:
        raise ValidationError("Category name exceeds max length 120")

    parent_id = raw.get("parent_id")
    if parent_id is not None:
        parent_id = parse_id(parent_id, "parent category")

    return {"name": name.strip(), "parent_id": parent_id}


def fits_db_int(value: int) -> bool:
    return MIN_DB_INT <= value <= MAX_DB_INT


def parse_int_text(text: str) -> int | None:
    """Integer from ASCII digits with an optional leading minus; None otherwise."""
    if not _INT_RE.fullmatch(text):
        return None
    return int(text)


def parse_id(raw: Any, label: str = "") -> int:
    """Parse a positive integer id (at most MAX_DB_INT) from a path segment or JSON value."""
    message = f"Invalid {label} id" if label else "Invalid id"
    if isinstance(raw, bool):
        raise ValidationError(message)
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str):
        value = parse_int_text(raw.strip())
    else:
        value = None
    if value is None or value <= 0 or value > MAX_DB_INT:
        raise ValidationError(message)
    return value


def parse_bool_arg(raw: str | None, name: str) -> bool | None:
    """Parse an optional true/false query-string flag."""
    if raw is None or raw == "":
        return None
    lowered = raw.strip().lower()
    if lowered in {"true", "1"}:
        return True
    if lowered in {"false", "0"}:
        return False
    raise ValidationError(f"{name} must be true or false")
