# Overview: Service-layer operations for the catalog; tenant-scoped via OrgContext.

"""
Product Service

Products belong to one organization. Stock quantity is set at creation and
afterwards changed only by the order workflow (see order_service), so the
detail update here never writes it.

Price history is newest first and never longer than PRICE_HISTORY_LIMIT.
"""

from __future__ import annotations

from sqlalchemy import or_

from ..errors import NotFoundError, UploadError, ValidationError
from ..extensions import db
from ..models import Product, ProductPrice
from ..models.catalog import PRICE_HISTORY_LIMIT, PRODUCT_STATUS_ACTIVE, PRODUCT_STATUS_INACTIVE
from ..time_utils import utcnow
from ..validation import (
    ModelValidationPolicy,
    enforce_rules_price,
    enforce_rules_product,
    parse_flag,
    parse_id,
    validate_payload,
)
from .concurrency import lock_for_update
from .listing import apply_sort, like_pattern, page_of, parse_list_params
from .membership_service import OrgContext
from .storage_service import discard_images, upload_image


MAX_PHOTOS = 3

CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "name": "name",
        "description": "description",
        "category": "category",
        "supplier": "supplier",
        "quantity": "quantity",
        "discountPercent": "discount_percent",
        "lowStockThreshold": "low_stock_threshold",
    },
    required_on_create=frozenset({"name", "description", "category"}),
    required_message="Missing Required Fields",
)

UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "name": "name",
        "description": "description",
        "category": "category",
        "supplier": "supplier",
        "status": "status",
        "discountPercent": "discount_percent",
        "lowStockThreshold": "low_stock_threshold",
    },
    required_on_create=frozenset({"name", "description", "status", "lowStockThreshold", "category"}),
    required_message="Missing Required Fields",
)

OPTIONAL_FIELDS = ("supplier", "quantity", "discountPercent", "lowStockThreshold")

SORTABLE = {
    "createdAt": Product.created_at,
    "updatedAt": Product.updated_at,
    "name": Product.name,
    "category": Product.category,
    "quantity": Product.quantity,
    "discountPercent": Product.discount_percent,
    "status": Product.status,
}


def _drop_blank_optionals(data: dict) -> dict:
    # multipart forms send "" for untouched inputs
    return {k: v for k, v in data.items() if not (k in OPTIONAL_FIELDS and v in ("", None))}


def get_product(ctx: OrgContext, product_id, *, lock: bool = False) -> Product:
    pid = parse_id(product_id, "Invalid Product ID")
    query = db.session.query(Product).filter_by(id=pid, organization_id=ctx.organization_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise NotFoundError("Product Not Found")
    return product


def _upload_all(paths) -> list[str]:
    return [upload_image(path).url for path in paths]


def create_product(ctx: OrgContext, fields: dict, cover_path: str | None, photo_paths=None) -> Product:
    """
    Create a product with its first price entry.

    The cover image must upload before anything is written; photos are
    optional (at most MAX_PHOTOS).
    """
    data = dict(fields or {})
    price = data.pop("price", None)
    if price is None or price == "":
        raise ValidationError("Missing Required Fields")
    price = enforce_rules_price(price, allow_zero=True)

    data = _drop_blank_optionals(data)
    patch = validate_payload(model=Product, payload=data, policy=CREATE_POLICY, partial=False)
    enforce_rules_product(patch)
    if not patch.get("supplier"):
        patch["supplier"] = None

    photo_paths = list(photo_paths or [])
    if len(photo_paths) > MAX_PHOTOS:
        raise ValidationError(f"At most {MAX_PHOTOS} photos are allowed")
    if not cover_path:
        raise ValidationError("Cover Image is required")

    cover_url = upload_image(cover_path).url
    try:
        photos = _upload_all(photo_paths)
    except UploadError:
        discard_images([cover_url])
        raise

    product = Product(
        organization_id=ctx.organization_id,
        owner_user_id=ctx.actor_id,
        cover_img=cover_url,
        photos=photos,
        **patch,
    )
    product.prices.append(ProductPrice(price=price, date=utcnow()))
    db.session.add(product)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        discard_images([cover_url, *photos])
        raise
    return product


def list_products(ctx: OrgContext, args) -> dict:
    params = parse_list_params(args, SORTABLE)
    is_deleted = parse_flag(args.get("isDeleted"), default=False)

    query = db.session.query(Product).filter(
        Product.organization_id == ctx.organization_id,
        Product.is_deleted == is_deleted,
    )

    category = (args.get("category") or "").strip()
    if category:
        query = query.filter(Product.category == category)
    status = (args.get("status") or "").strip()
    if status:
        query = query.filter(Product.status == status)

    if params.search:
        pattern = like_pattern(params.search)
        query = query.filter(or_(
            Product.name.ilike(pattern, escape="\\"),
            Product.description.ilike(pattern, escape="\\"),
            Product.category.ilike(pattern, escape="\\"),
        ))

    query = apply_sort(query, params, SORTABLE, Product.id)
    products, total, total_pages = page_of(query, params)

    return {
        "products": [p.to_dict() for p in products],
        "totalPages": total_pages,
        "currentPage": params.page,
        "totalProducts": total,
    }


def list_categories(ctx: OrgContext) -> list[str]:
    rows = (
        db.session.query(Product.category)
        .filter(Product.organization_id == ctx.organization_id)
        .distinct()
        .order_by(Product.category.asc())
        .all()
    )
    return [r[0] for r in rows]


def list_suppliers(ctx: OrgContext) -> list[str | None]:
    rows = (
        db.session.query(Product.supplier)
        .filter(Product.organization_id == ctx.organization_id)
        .distinct()
        .order_by(Product.supplier.asc())
        .all()
    )
    return [r[0] for r in rows]


def update_product_details(ctx: OrgContext, product_id, fields: dict) -> Product:
    product = get_product(ctx, product_id)

    data = dict(fields or {})
    data.pop("quantity", None)  # stock moves only through orders
    data.pop("price", None)
    data = _drop_blank_optionals(data)
    patch = validate_payload(model=Product, payload=data, policy=UPDATE_POLICY, partial=False)
    enforce_rules_product(patch)
    if not patch.get("supplier"):
        patch["supplier"] = None

    for key, value in patch.items():
        setattr(product, key, value)
    db.session.commit()
    return product


def update_price(ctx: OrgContext, product_id, new_price) -> Product:
    """
    Rotate the price history: prepend new_price when it differs from the
    current head, then trim to PRICE_HISTORY_LIMIT entries. One transaction
    under a row lock.
    """
    price = enforce_rules_price(new_price, allow_zero=False)
    try:
        product = get_product(ctx, product_id, lock=True)

        if product.current_price != price:
            product.prices.insert(0, ProductPrice(price=price, date=utcnow()))

        # prices is newest first; drop everything beyond the limit
        while len(product.prices) > PRICE_HISTORY_LIMIT:
            product.prices.pop()

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return product


def update_cover_image(ctx: OrgContext, product_id, cover_path: str | None) -> Product:
    product = get_product(ctx, product_id)
    if not cover_path:
        raise ValidationError("Missing Cover Image")

    new_url = upload_image(cover_path).url
    old_url = product.cover_img
    product.cover_img = new_url
    db.session.commit()

    discard_images([old_url])
    return product


def update_photos(ctx: OrgContext, product_id, photo_paths) -> Product:
    product = get_product(ctx, product_id)
    photo_paths = list(photo_paths or [])
    if len(photo_paths) > MAX_PHOTOS:
        raise ValidationError(f"At most {MAX_PHOTOS} photos are allowed")

    new_photos = _upload_all(photo_paths)
    old_photos = list(product.photos or [])
    product.photos = new_photos
    db.session.commit()

    discard_images(old_photos)
    return product


def toggle_status(ctx: OrgContext, product_id) -> Product:
    product = get_product(ctx, product_id)
    if product.status == PRODUCT_STATUS_ACTIVE:
        product.status = PRODUCT_STATUS_INACTIVE
    else:
        product.status = PRODUCT_STATUS_ACTIVE
    db.session.commit()
    return product


def toggle_deleted(ctx: OrgContext, product_id) -> Product:
    product = get_product(ctx, product_id)
    product.is_deleted = not product.is_deleted
    db.session.commit()
    return product
