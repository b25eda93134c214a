# Overview: Flask API routes for accounts and sessions; parses input and returns the envelope.

"""
User account routes.

Login returns the session token in the body and as an HttpOnly cookie, so
both SPA cookie auth and Bearer-header clients work.
"""

from flask import Blueprint, current_app, g, request

from ..decorators import require_auth
from ..responses import api_response
from ..services import auth_service, session_service
from ..services.session_service import SESSION_ABSOLUTE_TIMEOUT
from ..services.storage_service import staged_files


users_bp = Blueprint("users", __name__, url_prefix="/api/v1/users")


def _cookie_options() -> dict:
    secure = current_app.config.get("ACCESS_TOKEN_COOKIE_SECURE", False)
    return {
        "httponly": True,
        "secure": secure,
        "samesite": "None" if secure else "Lax",
    }


@users_bp.post("/send-otp")
def send_otp_route():
    data = request.get_json(silent=True) or {}
    auth_service.send_otp(data.get("email"))
    return api_response({}, "OTP Sent Successfully")


@users_bp.post("/verify-otp")
def verify_otp_route():
    data = request.get_json(silent=True) or {}
    auth_service.verify_otp(data.get("email"), data.get("otp"))
    return api_response({}, "OTP verified")


@users_bp.post("/register")
def register_route():
    # JSON, or multipart when an avatar is attached
    data = request.get_json(silent=True) or request.form.to_dict()
    with staged_files(request.files.get("avatar")) as (avatar_path,):
        user = auth_service.register(
            username=data.get("username"),
            email=data.get("email"),
            full_name=data.get("fullName"),
            password=data.get("password"),
            avatar_path=avatar_path,
        )
    return api_response(user.to_dict(), "Successfully Registered", 201)


@users_bp.post("/login")
def login_route():
    data = request.get_json(silent=True) or {}
    identifier = data.get("username") or data.get("email") or data.get("identifier")

    user = auth_service.authenticate(identifier, data.get("password"))
    _, token = session_service.create_session(
        user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    current_app.logger.info("User %s logged in", user.id)

    response, status = api_response(
        {"user": user.to_dict(), "accessToken": token},
        "Logged In Successfully",
    )
    response.set_cookie(
        current_app.config["ACCESS_TOKEN_COOKIE"],
        token,
        max_age=int(SESSION_ABSOLUTE_TIMEOUT.total_seconds()),
        **_cookie_options(),
    )
    return response, status


@users_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(g.token)
    response, status = api_response({}, "Logged Out Successfully")
    response.delete_cookie(current_app.config["ACCESS_TOKEN_COOKIE"], **_cookie_options())
    return response, status


@users_bp.get("/currentUser")
@require_auth
def current_user_route():
    return api_response(g.current_user.to_dict(), "User Fetched Successfully")


@users_bp.patch("/changePassword")
@require_auth
def change_password_route():
    data = request.get_json(silent=True) or {}
    auth_service.change_password(
        g.current_user,
        old_password=data.get("oldPassword"),
        new_password=data.get("newPassword"),
    )
    return api_response({}, "Password Updated Successfully")


@users_bp.patch("/updateAccountDetails")
@require_auth
def update_account_route():
    data = request.get_json(silent=True) or {}
    user = auth_service.update_account_details(
        g.current_user,
        full_name=data.get("fullName"),
        email=data.get("email"),
        username=data.get("username"),
    )
    return api_response({"user": user.to_dict()}, "Account Details Updated Successfully")


@users_bp.post("/forgot-password")
def forgot_password_route():
    data = request.get_json(silent=True) or {}
    auth_service.forgot_password(data.get("email"))
    return api_response({}, auth_service.FORGOT_PASSWORD_MESSAGE)


@users_bp.post("/verify-token/<token>")
def verify_token_route(token):
    auth_service.verify_reset_token(token)
    return api_response({}, "User Verified Successfully")


@users_bp.post("/reset-password")
def reset_password_route():
    data = request.get_json(silent=True) or {}
    auth_service.reset_password(data.get("token"), data.get("newPassword"))
    return api_response({}, "Password Reset Successfully")


@users_bp.patch("/updateAvatar")
@require_auth
def update_avatar_route():
    with staged_files(request.files.get("avatar")) as (avatar_path,):
        user = auth_service.update_avatar(g.current_user, avatar_path)
    return api_response(user.to_dict(), "Avatar Updated Successfully")
