from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z

class Company(db.Model):
    """
    Multi-tenant root: every tenant is a Company.

    WHY: Shared-database multi-tenancy with strict isolation.
    Products belong to a company directly (company_id FK); inventory,
    orders and reviews are reachable only through a company's products.

    DESIGN:
    - owner_id <-> users.company_id is a circular reference. The FK is
      declared with use_alter so the tables can be created, and the
      column is nullable so registration can insert both rows in a
      single transaction (see auth_service.register_company).
    - The owner's three permission flags are pinned true.
    """
    __tablename__ = "companies"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    owner_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", use_alter=True, name="fk_companies_owner_id"),
        nullable=True,
        index=True,
    )

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    owner = db.relationship("User", foreign_keys=[owner_id], post_update=True)

    def __repr__(self) -> str:
        return f"<Company id={self.id} name={self.name!r} owner_id={self.owner_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "owner_id": self.owner_id,
            "created_at": to_utc_z(self.created_at),
        }
