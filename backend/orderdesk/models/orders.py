from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


ORDER_STATUS_PENDING = "Pending"
ORDER_STATUS_COMPLETED = "Completed"
ORDER_STATUS_CANCELLED = "Cancelled"
ORDER_STATUSES = (ORDER_STATUS_PENDING, ORDER_STATUS_COMPLETED, ORDER_STATUS_CANCELLED)


class Order(db.Model):
    """
    Customer order within an organization.

    Prices are stored as computed at create/edit time:
    - total_price = sum(quantity * unit_price)
    - initial_discounted_price = total after each product's own discount
    - final_discounted_price = initial * (1 - additional_discount_percent / 100)
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_org_status", "organization_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    owner_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    total_price = db.Column(db.Float, nullable=False, default=0)
    initial_discounted_price = db.Column(db.Float, nullable=False, default=0)
    additional_discount_percent = db.Column(db.Float, nullable=False, default=0)
    final_discounted_price = db.Column(db.Float, nullable=False, default=0)

    payment_method = db.Column(db.String(64), nullable=True)
    status = db.Column(db.String(16), nullable=False, default=ORDER_STATUS_PENDING)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))
    lines = db.relationship(
        "OrderLine",
        order_by="OrderLine.position",
        cascade="all, delete-orphan",
        lazy="selectin",
        back_populates="order",
    )

    def __repr__(self) -> str:
        return f"<Order id={self.id} status={self.status} final={self.final_discounted_price}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "organization": self.organization_id,
            "owner": self.owner_user_id,
            "customer": self.customer_id,
            "products": [line.to_dict() for line in self.lines],
            "totalPrice": self.total_price,
            "initialDiscountedPrice": self.initial_discounted_price,
            "additionalDiscountPercent": self.additional_discount_percent,
            "finalDiscountedPrice": self.final_discounted_price,
            "paymentMethod": self.payment_method,
            "status": self.status,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class OrderLine(db.Model):
    """Line item: product, quantity and the unit price snapshotted at order time."""
    __tablename__ = "order_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_lines_quantity_pos"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)
    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Float, nullable=False)

    order = db.relationship("Order", back_populates="lines")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "product": self.product_id,
            "quantity": self.quantity,
            "price": self.price,
        }
