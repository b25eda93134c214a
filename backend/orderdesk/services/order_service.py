# Overview: Order workflow; pricing, stock reconciliation and listing for one organization.

"""
Order Workflow Service

Creates, edits and transitions orders while keeping product stock in step
with order contents.

INVARIANTS:
1. Stock is taken with a conditional UPDATE (quantity >= requested), so two
   orders can never consume the same units.
2. create_order and edit_order are single transactions. Any failure rolls
   back every stock movement and every order row written so far.
3. Line items snapshot the unit price at order time; later price changes
   never alter an existing order.
4. final_discounted_price = initial_discounted_price * (1 - additional / 100).
"""

from __future__ import annotations

from sqlalchemy import or_

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Customer, Order, OrderLine, Product
from ..models.orders import ORDER_STATUS_PENDING, ORDER_STATUSES
from ..validation import parse_id, parse_positive_int
from .concurrency import decrement_stock, restore_stock
from .listing import apply_sort, like_pattern, page_of, parse_list_params
from .membership_service import OrgContext
from .pricing import PricedLine, compute_totals, price_line, validate_percent


SORTABLE = {
    "createdAt": Order.created_at,
    "updatedAt": Order.updated_at,
    "totalPrice": Order.total_price,
    "initialDiscountedPrice": Order.initial_discounted_price,
    "finalDiscountedPrice": Order.final_discounted_price,
    "additionalDiscountPercent": Order.additional_discount_percent,
    "paymentMethod": Order.payment_method,
    "status": Order.status,
}

# Keys a line item may use to name its product
PRODUCT_KEYS = ("product", "productId", "_id", "id")


def _line_product_ref(item: dict):
    for key in PRODUCT_KEYS:
        if item.get(key) not in (None, ""):
            return item[key]
    return None


def _parse_line_items(line_items) -> list[tuple[object, int]]:
    if not isinstance(line_items, list) or not line_items:
        raise ValidationError("At least one product is required")

    parsed = []
    for item in line_items:
        if not isinstance(item, dict):
            raise ValidationError("Each product entry must be an object")
        ref = _line_product_ref(item)
        if ref is None:
            raise ValidationError("Each product entry needs a product id")
        quantity = parse_positive_int(item.get("quantity"), "quantity")
        parsed.append((ref, quantity))
    return parsed


def _resolve_customer(ctx: OrgContext, customer_id) -> Customer:
    cid = parse_id(customer_id, "Customer is Required")
    customer = (
        db.session.query(Customer)
        .filter_by(id=cid, organization_id=ctx.organization_id)
        .first()
    )
    if customer is None:
        raise ValidationError("Customer is Required")
    return customer


def _orderable_product(ctx: OrgContext, ref) -> Product:
    message = f"Product with ID {ref} not found"
    try:
        pid = parse_id(ref, message)
    except ValidationError:
        raise NotFoundError(message)

    product = (
        db.session.query(Product)
        .filter_by(id=pid, organization_id=ctx.organization_id, is_deleted=False)
        .first()
    )
    if product is None or product.current_price is None:
        raise NotFoundError(message)
    return product


def _take_stock(ctx: OrgContext, items: list[tuple[object, int]]) -> list[PricedLine]:
    """Validate, price and decrement stock for each requested line."""
    priced = []
    for ref, quantity in items:
        product = _orderable_product(ctx, ref)

        if product.quantity < quantity or not decrement_stock(product.id, quantity):
            available = product.quantity
            raise InsufficientStockError(
                f"Insufficient stock for {product.name}",
                product_id=product.id,
                requested=quantity,
                available=available,
            )

        priced.append(price_line(product.id, quantity, product.current_price, product.discount_percent))
    return priced


def _apply_lines(order: Order, priced: list[PricedLine], additional_discount_percent: float) -> None:
    totals = compute_totals(priced, additional_discount_percent)

    order.lines = [
        OrderLine(product_id=line.product_id, position=pos, quantity=line.quantity, price=line.unit_price)
        for pos, line in enumerate(priced)
    ]
    order.total_price = totals.total_price
    order.initial_discounted_price = totals.initial_discounted_price
    order.additional_discount_percent = totals.additional_discount_percent
    order.final_discounted_price = totals.final_discounted_price


def create_order(
    ctx: OrgContext,
    *,
    customer_id,
    line_items,
    payment_method: str | None = None,
    additional_discount_percent=0,
) -> Order:
    """
    Create an order for a customer of the organization.

    Stock for every line is decremented in the same transaction as the order
    insert; if any line fails, nothing is persisted.
    """
    customer = _resolve_customer(ctx, customer_id)
    items = _parse_line_items(line_items)
    additional = validate_percent(additional_discount_percent)

    try:
        priced = _take_stock(ctx, items)

        order = Order(
            organization_id=ctx.organization_id,
            owner_user_id=ctx.actor_id,
            customer_id=customer.id,
            payment_method=(payment_method or None),
            status=ORDER_STATUS_PENDING,
        )
        _apply_lines(order, priced, additional)
        db.session.add(order)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return order


def get_order(ctx: OrgContext, order_id, *, not_found: str = "Order not found") -> Order:
    oid = parse_id(order_id, "Invalid Order ID")
    order = (
        db.session.query(Order)
        .filter_by(id=oid, organization_id=ctx.organization_id)
        .first()
    )
    if order is None:
        raise NotFoundError(not_found)
    return order


def edit_order(ctx: OrgContext, order_id, *, line_items, additional_discount_percent=0) -> Order:
    """
    Replace an order's line items.

    Step 1 gives every current line's quantity back to its product; step 2
    re-validates, re-prices and re-decrements for the new lines. Both steps
    commit together or not at all.
    """
    order = get_order(ctx, order_id)
    items = _parse_line_items(line_items)
    additional = validate_percent(additional_discount_percent)

    try:
        for line in order.lines:
            # A product removed since the order was placed has nothing to restore
            restore_stock(line.product_id, line.quantity)

        priced = _take_stock(ctx, items)
        _apply_lines(order, priced, additional)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return order


def update_status(ctx: OrgContext, order_id, status: str | None = None) -> Order:
    order = get_order(ctx, order_id, not_found="Order Not Found")

    status = status or ORDER_STATUS_PENDING
    if status not in ORDER_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(ORDER_STATUSES)}")

    order.status = status
    db.session.commit()
    return order


def _product_details(orders: list[Order]) -> dict[int, dict]:
    ids = {line.product_id for order in orders for line in order.lines}
    if not ids:
        return {}
    products = db.session.query(Product).filter(Product.id.in_(ids)).all()
    return {p.id: p.to_summary() for p in products}


def list_orders(ctx: OrgContext, args) -> dict:
    """
    Page through the organization's orders.

    Filters (status, paymentMethod) and the customer-name search run in
    the query itself, so totalOrders counts matching orders.
    """
    params = parse_list_params(args, SORTABLE)

    query = (
        db.session.query(Order)
        .join(Customer, Customer.id == Order.customer_id)
        .filter(Order.organization_id == ctx.organization_id)
    )

    status = (args.get("status") or "").strip()
    if status:
        query = query.filter(Order.status == status)
    payment_method = (args.get("paymentMethod") or "").strip()
    if payment_method:
        query = query.filter(Order.payment_method == payment_method)

    if params.search:
        pattern = like_pattern(params.search)
        query = query.filter(or_(
            Customer.first_name.ilike(pattern, escape="\\"),
            Customer.last_name.ilike(pattern, escape="\\"),
            Customer.company_name.ilike(pattern, escape="\\"),
        ))

    query = apply_sort(query, params, SORTABLE, Order.id)
    orders, total, total_pages = page_of(query, params)

    details = _product_details(orders)
    result = []
    for order in orders:
        data = order.to_dict()
        data["customerDetails"] = order.customer.to_dict()
        data["productDetails"] = [
            details[pid]
            for pid in dict.fromkeys(line.product_id for line in order.lines)
            if pid in details
        ]
        result.append(data)

    return {
        "orders": result,
        "totalPages": total_pages,
        "currentPage": params.page,
        "totalOrders": total,
    }
