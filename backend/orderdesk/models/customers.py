from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer master data, scoped to an organization.

    Email and phone number are unique across the whole table. Customers are
    never hard-deleted; blacklisting hides them from the default listing.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_org_blacklisted", "organization_id", "black_listed"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    owner_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    first_name = db.Column(db.String(128), nullable=False, index=True)
    last_name = db.Column(db.String(128), nullable=False, default="", index=True)
    email = db.Column(db.String(255), nullable=False, unique=True)
    phone_number = db.Column(db.String(32), nullable=False, unique=True)
    company_name = db.Column(db.String(255), nullable=True)

    address_street = db.Column(db.String(255), nullable=False, default="")
    address_city = db.Column(db.String(128), nullable=False, default="")
    address_state = db.Column(db.String(128), nullable=False, default="")
    address_zip_code = db.Column(db.String(32), nullable=False, default="")
    address_country = db.Column(db.String(128), nullable=False, default="")

    black_listed = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    organization = db.relationship("Organization", backref=db.backref("customers", lazy=True))

    @property
    def display_name(self) -> str:
        return f"{self.first_name or 'Unknown'} {self.last_name or ''}".strip()

    def address_dict(self) -> dict:
        return {
            "street": self.address_street,
            "city": self.address_city,
            "state": self.address_state,
            "zipCode": self.address_zip_code,
            "country": self.address_country,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "organization": self.organization_id,
            "owner": self.owner_user_id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phoneNumber": self.phone_number,
            "address": self.address_dict(),
            "companyName": self.company_name,
            "blackListed": self.black_listed,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
