from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from backoffice.time_utils import to_utc_z


def _money(value: Decimal | None) -> float | None:
    if value is None:
        return None
    return float(value)


class Category(db.Model):
    """
    Product category tree.

    Categories are shared reference data (no company_id). parent_id forms
    a tree of unbounded depth; walks up the chain are cycle-guarded in
    catalog_service.category_path.
    """
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    parent_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    parent = db.relationship("Category", remote_side=[id], backref=db.backref("children", lazy=True))

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r} parent_id={self.parent_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "parent_id": self.parent_id,
        }


class Product(db.Model):
    """
    Product master data.

    MULTI-TENANT: Products carry company_id directly; every other
    company-owned entity (inventory, orders, reviews) is scoped through it.

    INVARIANTS (checked in validation.enforce_rules_product):
    - selling_price >= cost_price
    - image_urls is a non-empty list of URLs
    - attributes is a JSON object or null
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("selling_price >= cost_price", name="ck_products_selling_ge_cost"),
        db.Index("ix_products_company_id", "company_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    cost_price = db.Column(db.Numeric(12, 2), nullable=False)
    selling_price = db.Column(db.Numeric(12, 2), nullable=False)

    attributes = db.Column(db.JSON, nullable=True)
    image_urls = db.Column(db.JSON, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    company = db.relationship("Company", backref=db.backref("products", lazy=True))
    category = db.relationship("Category", lazy="joined")
    created_by = db.relationship("User", foreign_keys=[created_by_user_id])

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} company_id={self.company_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "created_by_user_id": self.created_by_user_id,
            "name": self.name,
            "description": self.description,
            "cost_price": _money(self.cost_price),
            "selling_price": _money(self.selling_price),
            "category_id": self.category_id,
            "category": (
                {"id": self.category.id, "name": self.category.name}
                if self.category is not None
                else None
            ),
            "attributes": self.attributes,
            "image_urls": list(self.image_urls or []),
            "created_at": to_utc_z(self.created_at),
        }
