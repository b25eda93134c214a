# Overview: Flask API routes for the catalog; multipart uploads are staged on disk first.

"""
Product routes.

Image endpoints accept multipart/form-data (coverImg, photos). Incoming
files are staged under UPLOAD_FOLDER/tmp and handed to the service as local
paths; whatever the service did not consume is removed afterwards.
"""

from flask import Blueprint, g, request

from ..decorators import require_auth, require_membership
from ..responses import api_response
from ..services import product_service
from ..services.membership_service import WRITE_ROLES
from ..services.storage_service import staged_files


products_bp = Blueprint("products", __name__, url_prefix="/api/v1/products")


def _request_fields() -> dict:
    if request.is_json:
        return dict(request.get_json(silent=True) or {})
    return request.form.to_dict()


@products_bp.get("")
@require_auth
@require_membership()
def list_products_route():
    result = product_service.list_products(g.org_context, request.args)
    return api_response(result, "Fetched Products Successfully")


@products_bp.post("")
@products_bp.post("/addProduct")
@require_auth
@require_membership(*WRITE_ROLES)
def create_product_route():
    photos = request.files.getlist("photos")
    with staged_files(request.files.get("coverImg"), *photos) as paths:
        cover_path, photo_paths = paths[0], [p for p in paths[1:] if p]
        product = product_service.create_product(g.org_context, _request_fields(), cover_path, photo_paths)
    return api_response(product.to_dict(), "Product Added Successfully", 201)


@products_bp.get("/categories")
@require_auth
@require_membership()
def list_categories_route():
    return api_response(product_service.list_categories(g.org_context), "Fetched All Categories")


@products_bp.get("/suppliers")
@require_auth
@require_membership()
def list_suppliers_route():
    return api_response(product_service.list_suppliers(g.org_context), "Fetched All Suppliers")


@products_bp.put("/<product_id>")
@require_auth
@require_membership(*WRITE_ROLES)
def update_product_route(product_id):
    product = product_service.update_product_details(g.org_context, product_id, _request_fields())
    return api_response(product.to_dict(), "Product Details Updated Successfully")


@products_bp.delete("/<product_id>")
@require_auth
@require_membership(*WRITE_ROLES)
def toggle_deleted_route(product_id):
    product = product_service.toggle_deleted(g.org_context, product_id)
    return api_response(product.to_dict(), "Product Updated Successfully")


@products_bp.put("/price/<product_id>")
@require_auth
@require_membership(*WRITE_ROLES)
def update_price_route(product_id):
    data = _request_fields()
    product = product_service.update_price(g.org_context, product_id, data.get("newPrice"))
    return api_response(product.to_dict(), "Product Updated Successfully")


@products_bp.put("/coverImg/<product_id>")
@require_auth
@require_membership(*WRITE_ROLES)
def update_cover_route(product_id):
    with staged_files(request.files.get("coverImg")) as (cover_path,):
        product = product_service.update_cover_image(g.org_context, product_id, cover_path)
    return api_response(product.to_dict(), "Cover Image Updated Successfully")


@products_bp.put("/photos/<product_id>")
@require_auth
@require_membership(*WRITE_ROLES)
def update_photos_route(product_id):
    with staged_files(*request.files.getlist("photos")) as paths:
        product = product_service.update_photos(g.org_context, product_id, [p for p in paths if p])
    return api_response(product.to_dict(), "Photos Updated Successfully")


@products_bp.put("/status/<product_id>")
@require_auth
@require_membership(*WRITE_ROLES)
def toggle_status_route(product_id):
    product = product_service.toggle_status(g.org_context, product_id)
    return api_response(product.to_dict(), "Product Updated Successfully")
