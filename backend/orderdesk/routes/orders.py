# Overview: Flask API routes for orders; thin wrappers over the order workflow service.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_membership
from ..responses import api_response
from ..services import order_service
from ..services.membership_service import WRITE_ROLES


orders_bp = Blueprint("orders", __name__, url_prefix="/api/v1/orders")


@orders_bp.post("")
@require_auth
@require_membership(*WRITE_ROLES)
def create_order_route():
    data = request.get_json(silent=True) or {}
    order = order_service.create_order(
        g.org_context,
        customer_id=data.get("customerId"),
        line_items=data.get("products"),
        payment_method=data.get("paymentMethod"),
        additional_discount_percent=data.get("additionalDiscountPercent", 0),
    )
    return api_response(order.to_dict(), "Order Created Successfully")


@orders_bp.get("")
@require_auth
@require_membership()
def list_orders_route():
    result = order_service.list_orders(g.org_context, request.args)
    return api_response(result, "Fetched Orders Successfully")


@orders_bp.patch("/<order_id>")
@require_auth
@require_membership(*WRITE_ROLES)
def edit_order_route(order_id):
    data = request.get_json(silent=True) or {}
    order = order_service.edit_order(
        g.org_context,
        order_id,
        line_items=data.get("products"),
        additional_discount_percent=data.get("additionalDiscountPercent", 0),
    )
    return api_response(order.to_dict(), "Order Updated Successfully")


@orders_bp.put("/<order_id>")
@require_auth
@require_membership(*WRITE_ROLES)
def update_status_route(order_id):
    data = request.get_json(silent=True) or {}
    order = order_service.update_status(g.org_context, order_id, data.get("status"))
    return api_response(order.to_dict(), "Order Status Updated Successfully")
