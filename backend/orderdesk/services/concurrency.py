# Overview: Row-level concurrency helpers for stock and price mutations.

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db
from ..models import Product


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def decrement_stock(product_id: int, quantity: int) -> bool:
    """
    Atomically take `quantity` units from a product's stock.

    Issues a single conditional UPDATE (quantity = quantity - q WHERE
    quantity >= q). Returns False when the row did not have enough stock;
    nothing is written in that case. Two concurrent orders can therefore
    never both consume the same units.
    """
    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id, Product.quantity >= quantity)
        .values(quantity=Product.quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    _expire_quantity(product_id)
    return result.rowcount == 1


def restore_stock(product_id: int, quantity: int) -> bool:
    """Atomically give `quantity` units back. Returns False if the product is gone."""
    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(quantity=Product.quantity + quantity)
        .execution_options(synchronize_session=False)
    )
    _expire_quantity(product_id)
    return result.rowcount == 1


def _expire_quantity(product_id: int) -> None:
    # The UPDATE bypassed the identity map; force a reload on next access.
    product = db.session.identity_map.get(db.session.identity_key(Product, product_id))
    if product is not None:
        db.session.expire(product, ["quantity", "updated_at"])
