# Overview: Read-only dashboard rollups for one organization.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Customer, Order, Product
from ..models.orders import ORDER_STATUS_CANCELLED, ORDER_STATUS_COMPLETED, ORDER_STATUS_PENDING
from .membership_service import OrgContext


MONTH_NAMES = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

RECENT_ORDERS_LIMIT = 5


def _month_label(period: str) -> str:
    # period is "YYYY-MM"
    return MONTH_NAMES[int(period[5:7]) - 1]


def _count(model, organization_id: int, *criteria) -> int:
    return (
        db.session.query(func.count(model.id))
        .filter(model.organization_id == organization_id, *criteria)
        .scalar()
    ) or 0


def sales_trends(organization_id: int) -> list[dict]:
    period = func.strftime("%Y-%m", Order.created_at)
    rows = (
        db.session.query(
            period.label("period"),
            func.coalesce(func.sum(Order.final_discounted_price), 0).label("revenue"),
        )
        .filter(Order.organization_id == organization_id)
        .group_by(period)
        .order_by(period.asc())
        .all()
    )
    return [{"month": _month_label(r.period), "revenue": float(r.revenue)} for r in rows]


def customer_trends(organization_id: int) -> list[dict]:
    period = func.strftime("%Y-%m", Customer.created_at)
    rows = (
        db.session.query(period.label("period"), func.count(Customer.id).label("count"))
        .filter(Customer.organization_id == organization_id)
        .group_by(period)
        .order_by(period.asc())
        .all()
    )
    return [{"month": _month_label(r.period), "count": int(r.count)} for r in rows]


def recent_orders(organization_id: int, limit: int = RECENT_ORDERS_LIMIT) -> list[dict]:
    orders = (
        db.session.query(Order)
        .filter(Order.organization_id == organization_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            "id": o.id,
            "customer": o.customer.display_name if o.customer else "Unknown",
            "totalPrice": o.final_discounted_price,
            "status": o.status,
        }
        for o in orders
    ]


def dashboard_stats(ctx: OrgContext) -> dict:
    """Counts, revenue, low-stock tally, monthly trends and the latest orders."""
    org_id = ctx.organization_id

    revenue = (
        db.session.query(func.coalesce(func.sum(Order.final_discounted_price), 0))
        .filter(Order.organization_id == org_id)
        .scalar()
    )

    stats = {
        "totalCustomers": _count(Customer, org_id),
        "totalProducts": _count(Product, org_id),
        "totalOrders": _count(Order, org_id),
        "totalRevenue": float(revenue or 0),
        "pendingOrders": _count(Order, org_id, Order.status == ORDER_STATUS_PENDING),
        "completedOrders": _count(Order, org_id, Order.status == ORDER_STATUS_COMPLETED),
        "cancelledOrders": _count(Order, org_id, Order.status == ORDER_STATUS_CANCELLED),
        "lowStockCount": _count(Product, org_id, Product.quantity <= Product.low_stock_threshold),
        "salesTrends": sales_trends(org_id),
        "customerTrends": customer_trends(org_id),
    }
    return {"stats": stats, "recentOrders": recent_orders(org_id)}
