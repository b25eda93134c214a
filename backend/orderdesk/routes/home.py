# Overview: Dashboard route.

from flask import Blueprint, g

from ..decorators import require_auth, require_membership
from ..responses import api_response
from ..services import dashboard_service


home_bp = Blueprint("home", __name__, url_prefix="/api/v1/home")


@home_bp.get("")
@require_auth
@require_membership()
def dashboard_route():
    return api_response(dashboard_service.dashboard_stats(g.org_context), "Dashboard Stats Fetched Successfully")
