from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z

class Inventory(db.Model):
    """
    Stock level for a single product (at most one row per product).

    A product with no row is treated as zero stock with a null inventory.
    Rows are created lazily by the inventory write paths, which insert
    when absent and update when present rather than relying on a dialect
    specific upsert.

    version_id enables optimistic locking: a concurrent writer that
    updated the row first makes our flush raise StaleDataError, which the
    bulk coordinator retries after re-validating.
    """
    __tablename__ = "inventory"
    __table_args__ = (
        db.UniqueConstraint("product_id", name="uq_inventory_product_id"),
        db.CheckConstraint("in_stock >= 0", name="ck_inventory_in_stock_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    in_stock = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", backref=db.backref("inventory", uselist=False, lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Inventory product_id={self.product_id} in_stock={self.in_stock}>"

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "in_stock": self.in_stock,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
