# Overview: Flask API routes for organizations and memberships.

from flask import Blueprint, g, request

from ..decorators import require_auth, require_membership
from ..responses import api_response
from ..services import membership_service


organizations_bp = Blueprint("organizations", __name__, url_prefix="/api/v1/organizations")


@organizations_bp.post("")
@require_auth
def create_organization_route():
    data = request.get_json(silent=True) or {}
    org = membership_service.create_organization(
        user_id=g.current_user.id,
        name=data.get("name"),
        slug=data.get("slug"),
    )
    return api_response(org.to_dict(), "Organization Created Successfully", 201)


@organizations_bp.get("")
@require_auth
def list_organizations_route():
    orgs = membership_service.list_user_organizations(g.current_user.id)
    return api_response(orgs, "Fetched Organizations Successfully")


@organizations_bp.post("/join")
@require_auth
def join_organization_route():
    data = request.get_json(silent=True) or {}
    membership, org = membership_service.join_organization(
        user_id=g.current_user.id,
        invite_code=data.get("inviteCode"),
    )
    return api_response(
        {"membership": membership.to_dict(), "organization": org.to_dict()},
        "Joined Organization Successfully",
    )


@organizations_bp.get("/<int:organization_id>/members")
@require_auth
@require_membership()
def list_members_route(organization_id: int):
    return api_response(membership_service.list_members(g.org_context), "Fetched Members Successfully")


@organizations_bp.post("/<int:organization_id>/members")
@require_auth
def add_member_route(organization_id: int):
    data = request.get_json(silent=True) or {}
    membership = membership_service.add_member(
        requester_id=g.current_user.id,
        organization_id=organization_id,
        email=data.get("email"),
        role=data.get("role"),
    )
    return api_response(membership.to_dict(include_user=True), "Member Added Successfully", 201)


@organizations_bp.delete("/<int:organization_id>/members/<int:member_id>")
@require_auth
def remove_member_route(organization_id: int, member_id: int):
    membership_service.remove_member(
        requester_id=g.current_user.id,
        organization_id=organization_id,
        member_user_id=member_id,
    )
    return api_response({}, "Member Removed Successfully")
