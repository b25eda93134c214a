# Overview: Flask API routes for customers; organization context from require_membership.
# Each route also answers on its legacy path (add-customer, getCustomers, ...) used by the existing frontend.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_membership
from ..responses import api_response
from ..services import customer_service
from ..services.membership_service import WRITE_ROLES


customers_bp = Blueprint("customers", __name__, url_prefix="/api/v1/customers")


@customers_bp.get("")
@customers_bp.get("/getCustomers")
@require_auth
@require_membership()
def list_customers_route():
    result = customer_service.list_customers(g.org_context, request.args)
    return api_response(result, "Fetched Customers Successfully")


@customers_bp.post("")
@customers_bp.post("/add-customer")
@require_auth
@require_membership(*WRITE_ROLES)
def add_customer_route():
    customer = customer_service.add_customer(g.org_context, request.get_json(silent=True) or {})
    return api_response(customer.to_dict(), "Customer Added Successfully", 201)


@customers_bp.patch("/<int:customer_id>")
@customers_bp.patch("/update-customer/<int:customer_id>")
@require_auth
@require_membership(*WRITE_ROLES)
def update_customer_route(customer_id: int):
    customer = customer_service.update_customer(g.org_context, customer_id, request.get_json(silent=True) or {})
    return api_response(customer.to_dict(), "Customer Updated Successfully")


@customers_bp.patch("/<int:customer_id>/blacklist")
@customers_bp.patch("/toggle-blacklist-customer/<int:customer_id>")
@require_auth
@require_membership(*WRITE_ROLES)
def toggle_blacklist_route(customer_id: int):
    customer = customer_service.toggle_blacklist(g.org_context, customer_id)
    message = (
        "Successfully Added to Blacklist" if customer.black_listed
        else "Successfully Removed from Blacklist"
    )
    return api_response(customer.to_dict(), message)
