# Overview: Service-layer operations for customers; tenant-scoped via OrgContext.

from __future__ import annotations

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError
from ..extensions import db
from ..models import Customer
from ..validation import ModelValidationPolicy, parse_flag, parse_id, validate_payload
from .listing import apply_sort, like_pattern, page_of, parse_list_params
from .membership_service import OrgContext


CUSTOMER_FIELDS = {
    "firstName": "first_name",
    "lastName": "last_name",
    "email": "email",
    "phoneNumber": "phone_number",
    "companyName": "company_name",
}

CREATE_POLICY = ModelValidationPolicy(
    writable_fields=CUSTOMER_FIELDS,
    required_on_create=frozenset({"firstName", "email", "phoneNumber"}),
    required_message="All Fields are Required",
)

UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={k: v for k, v in CUSTOMER_FIELDS.items() if k != "email"},
    required_on_create=frozenset({"firstName", "phoneNumber"}),
    required_message="All Fields are Required",
)

ADDRESS_FIELDS = {
    "street": "address_street",
    "city": "address_city",
    "state": "address_state",
    "zipCode": "address_zip_code",
    "country": "address_country",
}

SORTABLE = {
    "createdAt": Customer.created_at,
    "updatedAt": Customer.updated_at,
    "firstName": Customer.first_name,
    "lastName": Customer.last_name,
    "email": Customer.email,
    "companyName": Customer.company_name,
}


def _split_address(payload: dict) -> tuple[dict, dict]:
    data = dict(payload or {})
    address = data.pop("address", None) or {}
    if not isinstance(address, dict):
        address = {}
    columns = {col: str(address.get(key) or "").strip() for key, col in ADDRESS_FIELDS.items()}
    return data, columns


def _get_customer(ctx: OrgContext, customer_id) -> Customer:
    cid = parse_id(customer_id, "Customer Not Found")
    customer = (
        db.session.query(Customer)
        .filter_by(id=cid, organization_id=ctx.organization_id)
        .first()
    )
    if customer is None:
        raise NotFoundError("Customer Not Found")
    return customer


def add_customer(ctx: OrgContext, payload: dict) -> Customer:
    data, address = _split_address(payload)
    patch = validate_payload(model=Customer, payload=data, policy=CREATE_POLICY, partial=False)
    patch["email"] = patch["email"].lower()
    if not patch.get("last_name"):
        patch["last_name"] = ""
    if not patch.get("company_name"):
        patch["company_name"] = None

    existing = (
        db.session.query(Customer.id)
        .filter(or_(Customer.email == patch["email"], Customer.phone_number == patch["phone_number"]))
        .first()
    )
    if existing:
        raise ConflictError("Customer Already Exists")

    customer = Customer(
        organization_id=ctx.organization_id,
        owner_user_id=ctx.actor_id,
        **patch,
        **address,
    )
    db.session.add(customer)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Customer Already Exists")
    return customer


def update_customer(ctx: OrgContext, customer_id, payload: dict) -> Customer:
    customer = _get_customer(ctx, customer_id)

    data, address = _split_address(payload)
    data.pop("email", None)  # email is the customer's identity and stays fixed
    patch = validate_payload(model=Customer, payload=data, policy=UPDATE_POLICY, partial=False)
    if not patch.get("last_name"):
        patch["last_name"] = ""
    if not patch.get("company_name"):
        patch["company_name"] = None

    clash = (
        db.session.query(Customer.id)
        .filter(Customer.phone_number == patch["phone_number"], Customer.id != customer.id)
        .first()
    )
    if clash:
        raise ConflictError("Phone number is already used by another customer")

    for key, value in {**patch, **address}.items():
        setattr(customer, key, value)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Phone number is already used by another customer")
    return customer


def toggle_blacklist(ctx: OrgContext, customer_id) -> Customer:
    customer = _get_customer(ctx, customer_id)
    customer.black_listed = not customer.black_listed
    db.session.commit()
    return customer


def list_customers(ctx: OrgContext, args) -> dict:
    params = parse_list_params(args, SORTABLE)
    black_listed = parse_flag(args.get("blacklist"), default=False)

    query = db.session.query(Customer).filter(
        Customer.organization_id == ctx.organization_id,
        Customer.black_listed == black_listed,
    )

    if params.search:
        pattern = like_pattern(params.search)
        query = query.filter(or_(
            Customer.first_name.ilike(pattern, escape="\\"),
            Customer.last_name.ilike(pattern, escape="\\"),
            Customer.email.ilike(pattern, escape="\\"),
            Customer.phone_number.ilike(pattern, escape="\\"),
            Customer.company_name.ilike(pattern, escape="\\"),
        ))

    query = apply_sort(query, params, SORTABLE, Customer.id)
    customers, total, total_pages = page_of(query, params)

    return {
        "customers": [c.to_dict() for c in customers],
        "totalPages": total_pages,
        "currentPage": params.page,
        "totalCustomers": total,
    }
