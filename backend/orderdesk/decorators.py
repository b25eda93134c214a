# Overview: Request decorators for API routes; caller identity and organization context.

from functools import wraps

from flask import current_app, g, request

from .errors import AuthenticationError, ValidationError
from .services import session_service
from .services.membership_service import READ_ROLES, resolve_context


def request_token() -> str | None:
    """Bearer token from the Authorization header, else the access-token cookie."""
    auth_header = request.headers.get("Authorization") or ""
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1].strip()
        if token:
            return token
    return request.cookies.get(current_app.config.get("ACCESS_TOKEN_COOKIE", "accessToken"))


def require_auth(f):
    """
    Require a live session.

    Sets:
    - g.current_user: the authenticated User
    - g.session_context: the SessionContext
    - g.token: the plaintext token (used by logout)
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = request_token()
        if not token:
            raise AuthenticationError("Unauthorized Request")

        context = session_service.validate_session(token)
        if context is None:
            raise AuthenticationError("Invalid or expired token")

        g.current_user = context.user
        g.session_context = context
        g.token = token
        return f(*args, **kwargs)

    return decorated_function


def _organization_id_from_request(kwargs: dict):
    # route > header > query string > body
    if kwargs.get("organization_id") is not None:
        return kwargs["organization_id"]
    value = request.headers.get("X-Organization-Id") or request.args.get("organizationId")
    if value:
        return value
    if request.is_json:
        body = request.get_json(silent=True)
        if isinstance(body, dict) and body.get("organizationId"):
            return body["organizationId"]
    return request.form.get("organizationId")


def _parse_org_id(value) -> int:
    if value is None or value == "":
        raise ValidationError("Organization ID is required")
    try:
        org_id = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Invalid Organization ID")
    if org_id <= 0:
        raise ValidationError("Invalid Organization ID")
    return org_id


def require_membership(*roles: str):
    """
    Resolve the organization the request acts in and check the caller's role.

    Must be stacked under @require_auth. Sets g.org_context (OrgContext) for
    the route, which passes it to the service layer explicitly.
    """
    required = tuple(roles) or READ_ROLES

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not hasattr(g, "current_user"):
                raise AuthenticationError("Unauthorized Request")

            org_id = _parse_org_id(_organization_id_from_request(kwargs))
            g.org_context = resolve_context(g.current_user.id, org_id, required)
            return f(*args, **kwargs)

        return decorated_function
    return decorator
