from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z

class Customer(db.Model):
    """End customer. Referenced by orders and reviews; never mutated by the API."""
    __tablename__ = "customers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    region = db.Column(db.String(120), nullable=True)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "region": self.region}


class Order(db.Model):
    """
    A single-unit order for a product.

    There is no quantity column: one order is one unit. An order with
    in_inventory = False is a reserved unit and counts against the
    product's stock floor.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_product_in_inventory", "product_id", "in_inventory"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    delivery_location = db.Column(db.String(255), nullable=True)
    delivered = db.Column(db.Boolean, nullable=False, default=False)
    in_inventory = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    customer = db.relationship("Customer", lazy="joined")
    product = db.relationship("Product", backref=db.backref("orders", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "created_at": to_utc_z(self.created_at),
            "customer_id": self.customer_id,
            "product_id": self.product_id,
            "delivery_location": self.delivery_location,
            "delivered": self.delivered,
            "in_inventory": self.in_inventory,
            "customer": (
                {"name": self.customer.name, "region": self.customer.region}
                if self.customer is not None
                else None
            ),
        }


class Review(db.Model):
    """Customer review; rating is an integer from 1 to 5."""
    __tablename__ = "reviews"
    __table_args__ = (
        db.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    rating = db.Column(db.Integer, nullable=False)
    feedback = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    customer = db.relationship("Customer", lazy="joined")
    product = db.relationship("Product", backref=db.backref("reviews", lazy=True))

    def to_dict(self, include_product: bool = False) -> dict:
        data = {
            "id": self.id,
            "created_at": to_utc_z(self.created_at),
            "customer_id": self.customer_id,
            "product_id": self.product_id,
            "rating": self.rating,
            "feedback": self.feedback,
            "customer": (
                {"name": self.customer.name, "region": self.customer.region}
                if self.customer is not None
                else None
            ),
        }
        if include_product:
            data["product"] = (
                {"name": self.product.name, "image_urls": list(self.product.image_urls or [])}
                if self.product is not None
                else None
            )
        return data
