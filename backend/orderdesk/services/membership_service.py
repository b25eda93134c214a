# Overview: Service-layer operations for organizations and memberships.

"""
Membership / Authorization Service

Every organization-scoped operation is gated here. A user is authorized for
an organization only if an Active Membership row exists for the pair.

The resolved authorization is handed to the rest of the services as an
explicit OrgContext value; nothing below the routes reads request globals.

INVARIANTS:
1. At most one membership per (user, organization) (unique constraint).
2. Organization + Owner membership are created in one transaction.
3. Only Owner/Admin can add or remove members.
4. Nobody removes themselves through remove_member; Admin never removes Owner.
"""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from ..extensions import db
from ..models import Membership, Organization, User
from ..models.tenancy import (
    MEMBERSHIP_ROLES,
    ROLE_ADMIN,
    ROLE_MEMBER,
    ROLE_OWNER,
    ROLE_VIEWER,
    STATUS_ACTIVE,
)


MANAGER_ROLES = (ROLE_OWNER, ROLE_ADMIN)
WRITE_ROLES = (ROLE_OWNER, ROLE_ADMIN, ROLE_MEMBER)
READ_ROLES = (ROLE_OWNER, ROLE_ADMIN, ROLE_MEMBER, ROLE_VIEWER)

INVITE_CODE_LENGTH = 6
INVITE_CODE_ALPHABET = string.ascii_uppercase + string.digits
INVITE_CODE_ATTEMPTS = 10


@dataclass(frozen=True)
class OrgContext:
    """Caller identity plus the organization it acts in."""
    actor_id: int
    organization_id: int
    role: str


def check_membership(
    user_id: int,
    organization_id: int,
    required_roles: tuple[str, ...] | None = None,
    *,
    denied_message: str | None = None,
) -> Membership:
    """
    Return the caller's Active membership or raise PermissionDeniedError.

    required_roles narrows the gate to specific roles; denied_message lets
    callers keep their own wording for the role failure.
    """
    membership = (
        db.session.query(Membership)
        .filter_by(user_id=user_id, organization_id=organization_id, status=STATUS_ACTIVE)
        .first()
    )
    if membership is None:
        raise PermissionDeniedError(denied_message or "You are not a member of this organization")

    if required_roles is not None and membership.role not in required_roles:
        raise PermissionDeniedError(
            denied_message or "You do not have permission to perform this action"
        )
    return membership


def resolve_context(
    user_id: int,
    organization_id: int,
    required_roles: tuple[str, ...] | None = None,
) -> OrgContext:
    membership = check_membership(user_id, organization_id, required_roles)
    return OrgContext(actor_id=user_id, organization_id=organization_id, role=membership.role)


def generate_invite_code() -> str:
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(INVITE_CODE_LENGTH))


def _unused_invite_code() -> str:
    for _ in range(INVITE_CODE_ATTEMPTS):
        code = generate_invite_code()
        taken = db.session.query(Organization.id).filter_by(invite_code=code).first()
        if taken is None:
            return code
    raise ConflictError("Could not allocate a unique invite code, please retry")


def create_organization(*, user_id: int, name: str | None, slug: str | None) -> Organization:
    """
    Create an organization and make the creator its Owner.

    Both rows are written in one transaction; if either insert fails,
    neither exists afterwards.
    """
    name = (name or "").strip()
    slug = (slug or "").strip().lower()
    if not name or not slug:
        raise ValidationError("Name and Slug are required")

    if db.session.query(Organization.id).filter_by(slug=slug).first():
        raise ConflictError("Organization with this slug already exists")

    try:
        org = Organization(
            name=name,
            slug=slug,
            owner_user_id=user_id,
            invite_code=_unused_invite_code(),
        )
        db.session.add(org)
        db.session.flush()

        db.session.add(Membership(
            user_id=user_id,
            organization_id=org.id,
            role=ROLE_OWNER,
            status=STATUS_ACTIVE,
        ))
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        # Lost a race on the slug, or another unique key (invite code, membership pair) collided
        if db.session.query(Organization.id).filter_by(slug=slug).first():
            raise ConflictError("Organization with this slug already exists")
        raise ConflictError("Could not create organization, please retry")
    except Exception:
        db.session.rollback()
        raise

    return org


def list_user_organizations(user_id: int) -> list[dict]:
    """Organizations where the user is an Active member, each tagged with the user's role."""
    rows = (
        db.session.query(Membership, Organization)
        .join(Organization, Organization.id == Membership.organization_id)
        .filter(Membership.user_id == user_id, Membership.status == STATUS_ACTIVE)
        .order_by(Organization.name.asc(), Organization.id.asc())
        .all()
    )
    result = []
    for membership, org in rows:
        data = org.to_dict()
        data["role"] = membership.role
        result.append(data)
    return result


def list_members(ctx: OrgContext) -> list[dict]:
    memberships = (
        db.session.query(Membership)
        .filter_by(organization_id=ctx.organization_id)
        .order_by(Membership.id.asc())
        .all()
    )
    return [m.to_dict(include_user=True) for m in memberships]


def join_organization(*, user_id: int, invite_code: str | None) -> tuple[Membership, Organization]:
    invite_code = (invite_code or "").strip().upper()
    if not invite_code:
        raise ValidationError("Invite Code is required")

    org = db.session.query(Organization).filter_by(invite_code=invite_code).first()
    if org is None:
        raise NotFoundError("Invalid Invite Code")

    membership = _create_membership(
        user_id=user_id,
        organization_id=org.id,
        role=ROLE_MEMBER,
        conflict_message="You are already a member of this organization",
    )
    return membership, org


def add_member(
    *,
    requester_id: int,
    organization_id: int,
    email: str | None,
    role: str | None = None,
) -> Membership:
    check_membership(
        requester_id,
        organization_id,
        MANAGER_ROLES,
        denied_message="You do not have permission to add members",
    )

    role = role or ROLE_MEMBER
    if role not in MEMBERSHIP_ROLES:
        raise ValidationError(f"Invalid role. Must be one of: {', '.join(MEMBERSHIP_ROLES)}")

    email = (email or "").strip().lower()
    if not email:
        raise ValidationError("Email is required")

    user = db.session.query(User).filter_by(email=email).first()
    if user is None:
        raise NotFoundError("User not found with this email")

    return _create_membership(
        user_id=user.id,
        organization_id=organization_id,
        role=role,
        conflict_message="User is already a member of this organization",
    )


def remove_member(*, requester_id: int, organization_id: int, member_user_id: int) -> None:
    requester = check_membership(
        requester_id,
        organization_id,
        MANAGER_ROLES,
        denied_message="You do not have permission to remove members",
    )

    if member_user_id == requester.user_id:
        raise ValidationError("You cannot remove yourself using this feature.")

    target = (
        db.session.query(Membership)
        .filter_by(user_id=member_user_id, organization_id=organization_id)
        .first()
    )
    if target is None:
        raise NotFoundError("Member not found in this organization")

    if requester.role == ROLE_ADMIN and target.role == ROLE_OWNER:
        raise PermissionDeniedError("Admins cannot remove Owners")

    db.session.delete(target)
    db.session.commit()


def _create_membership(*, user_id: int, organization_id: int, role: str, conflict_message: str) -> Membership:
    existing = (
        db.session.query(Membership.id)
        .filter_by(user_id=user_id, organization_id=organization_id)
        .first()
    )
    if existing:
        raise ConflictError(conflict_message)

    membership = Membership(
        user_id=user_id,
        organization_id=organization_id,
        role=role,
        status=STATUS_ACTIVE,
    )
    db.session.add(membership)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race with a concurrent insert of the same pair
        db.session.rollback()
        raise ConflictError(conflict_message)
    return membership
