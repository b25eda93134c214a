from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


PRODUCT_STATUS_ACTIVE = "Active"
PRODUCT_STATUS_INACTIVE = "Inactive"

# Newest-first price entries kept per product
PRICE_HISTORY_LIMIT = 3


class Product(db.Model):
    """
    Catalog item owned by an organization.

    INVARIANTS:
    - prices holds at most PRICE_HISTORY_LIMIT rows, newest first; prices[0]
      is the current unit price.
    - quantity >= 0 and is only changed by the order workflow.
    - is_deleted is a soft delete; rows are never removed.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_nonneg"),
        db.Index("ix_products_org_deleted", "organization_id", "is_deleted"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    owner_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    name = db.Column(db.String(255), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False, default="")
    category = db.Column(db.String(128), nullable=False)
    supplier = db.Column(db.String(255), nullable=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    discount_percent = db.Column(db.Float, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=10)

    status = db.Column(db.String(16), nullable=False, default=PRODUCT_STATUS_ACTIVE)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)

    cover_img = db.Column(db.String(512), nullable=False)
    photos = db.Column(db.JSON, nullable=False, default=list)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    organization = db.relationship("Organization", backref=db.backref("products", lazy=True))
    prices = db.relationship(
        "ProductPrice",
        order_by="ProductPrice.id.desc()",
        cascade="all, delete-orphan",
        lazy="selectin",
        back_populates="product",
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} qty={self.quantity}>"

    @property
    def current_price(self) -> float | None:
        return self.prices[0].price if self.prices else None

    def price_history(self) -> list[dict]:
        return [p.to_dict() for p in self.prices]

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "coverImg": self.cover_img,
            "discountPercent": self.discount_percent,
            "price": self.price_history(),
            "quantity": self.quantity,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "organization": self.organization_id,
            "owner": self.owner_user_id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "supplier": self.supplier,
            "price": self.price_history(),
            "quantity": self.quantity,
            "discountPercent": self.discount_percent,
            "lowStockThreshold": self.low_stock_threshold,
            "status": self.status,
            "isDeleted": self.is_deleted,
            "coverImg": self.cover_img,
            "photos": list(self.photos or []),
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class ProductPrice(db.Model):
    """One entry of a product's price history."""
    __tablename__ = "product_prices"
    __table_args__ = (
        db.CheckConstraint("price >= 0", name="ck_product_prices_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    price = db.Column(db.Float, nullable=False)
    date = db.Column(db.DateTime(timezone=True), nullable=False)

    product = db.relationship("Product", back_populates="prices")

    def to_dict(self) -> dict:
        return {"date": to_utc_z(self.date), "price": self.price}
