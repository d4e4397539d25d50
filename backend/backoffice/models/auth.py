from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z

class User(db.Model):
    """
    User accounts for authentication and attribution.

    MULTI-TENANT: Users belong to exactly one company (company_id).
    Email is unique across the whole system (login is by email alone)
    and stored lower-cased, which makes uniqueness case-insensitive.

    Permissions are three independent flags rather than roles. The flags
    embedded in an identity token are only a cache; every mutating route
    re-reads this row before acting.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_users_email"),
        db.Index("ix_users_company_id", "company_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False)

    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), nullable=False)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    manage_products = db.Column(db.Boolean, nullable=False, default=False)
    manage_inventory = db.Column(db.Boolean, nullable=False, default=False)
    manage_users = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    company = db.relationship(
        "Company",
        foreign_keys=[company_id],
        backref=db.backref("users", lazy=True),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} company_id={self.company_id}>"

    def permission_flags(self) -> dict:
        return {
            "manage_products": bool(self.manage_products),
            "manage_inventory": bool(self.manage_inventory),
            "manage_users": bool(self.manage_users),
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "email": self.email,
            **self.permission_flags(),
            "created_at": to_utc_z(self.created_at),
        }
