from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


ROLE_OWNER = "Owner"
ROLE_ADMIN = "Admin"
ROLE_MEMBER = "Member"
ROLE_VIEWER = "Viewer"
MEMBERSHIP_ROLES = (ROLE_OWNER, ROLE_ADMIN, ROLE_MEMBER, ROLE_VIEWER)

STATUS_PENDING = "Pending"
STATUS_ACTIVE = "Active"
MEMBERSHIP_STATUSES = (STATUS_PENDING, STATUS_ACTIVE)


class Organization(db.Model):
    """
    Multi-tenant root: every customer, product and order belongs to exactly
    one Organization.

    slug and invite_code are unique and never change after creation.
    """
    __tablename__ = "organizations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(120), nullable=False, unique=True, index=True)
    owner_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    invite_code = db.Column(db.String(16), nullable=False, unique=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    owner = db.relationship("User", foreign_keys=[owner_user_id])

    def __repr__(self) -> str:
        return f"<Organization id={self.id} slug={self.slug!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "owner": self.owner_user_id,
            "inviteCode": self.invite_code,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class Membership(db.Model):
    """
    Role binding of a user to an organization.

    At most one row per (user, organization); only Active rows authorize.
    """
    __tablename__ = "memberships"
    __table_args__ = (
        db.UniqueConstraint("user_id", "organization_id", name="uq_memberships_user_org"),
        db.Index("ix_memberships_org_id", "organization_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False)
    role = db.Column(db.String(16), nullable=False, default=ROLE_MEMBER)
    status = db.Column(db.String(16), nullable=False, default=STATUS_ACTIVE)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    user = db.relationship("User", backref=db.backref("memberships", lazy=True))
    organization = db.relationship(
        "Organization",
        backref=db.backref("memberships", lazy=True, cascade="all, delete-orphan"),
    )

    def __repr__(self) -> str:
        return f"<Membership user_id={self.user_id} org_id={self.organization_id} role={self.role}>"

    def to_dict(self, include_user: bool = False) -> dict:
        data = {
            "id": self.id,
            "user": self.user_id,
            "organization": self.organization_id,
            "role": self.role,
            "status": self.status,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if include_user and self.user is not None:
            data["user"] = self.user.to_summary()
        return data
