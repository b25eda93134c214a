# Overview: Accounts and credentials; sign-up codes, registration, login, avatars, password change and reset.

"""
Authentication Service

Users are global. What a user may do inside an organization is decided by
Membership rows (see membership_service), never here.

SECURITY NOTES:
- Sign-up can require a mailed one-time code (REGISTRATION_REQUIRES_OTP);
  codes are hashed at rest, expire after five minutes and allow five tries
- Passwords hashed with bcrypt (cost from BCRYPT_ROUNDS, 12 by default)
- Minimum 8 characters with upper, lower, digit and special character
- Password change and reset revoke every open session
- Reset tokens are one-time, hashed at rest and expire after one hour
"""

from __future__ import annotations

import hmac
import re
import secrets
import string
from datetime import timedelta

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import EmailVerification, PasswordResetToken, User
from ..time_utils import utcnow
from .mail_service import send_mail
from .session_service import generate_token, hash_token, revoke_all_user_sessions
from .storage_service import discard_images, upload_image


RESET_TOKEN_TTL = timedelta(hours=1)

OTP_LENGTH = 6
OTP_TTL = timedelta(minutes=5)
# How long a verified code stays usable for registration
OTP_VERIFIED_TTL = timedelta(minutes=10)
OTP_MAX_ATTEMPTS = 5

FORGOT_PASSWORD_MESSAGE = "If your email is registered, you will receive a password reset link."


class PasswordValidationError(ValidationError):
    """Password does not meet strength requirements."""


def validate_password_strength(password: str) -> None:
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")
    if not re.search(r"[A-Z]", password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        raise PasswordValidationError("Password must contain at least one digit")
    if not re.search(r"[!@#$%^&*(),.'\":{}|<>?_\-]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def _normalize_identity(username: str | None, email: str | None) -> tuple[str, str]:
    return (username or "").strip().lower(), (email or "").strip().lower()


def _normalize_email(email: str | None) -> str:
    email = (email or "").strip().lower()
    if not email:
        raise ValidationError("Email is Required")
    if "@" not in email:
        raise ValidationError("Invalid email address")
    return email


def generate_otp() -> str:
    return "".join(secrets.choice(string.digits) for _ in range(OTP_LENGTH))


def _latest_verification(email: str) -> EmailVerification | None:
    return (
        db.session.query(EmailVerification)
        .filter_by(email=email, consumed_at=None)
        .order_by(EmailVerification.id.desc())
        .first()
    )


def send_otp(email: str | None) -> None:
    """
    Mail a one-time code to an address that is not registered yet.

    A new code supersedes any earlier one for the same address.
    """
    email = _normalize_email(email)
    if db.session.query(User.id).filter_by(email=email).first():
        raise ConflictError("User Already Registered")

    code = generate_otp()
    now = utcnow()
    (
        db.session.query(EmailVerification)
        .filter_by(email=email, consumed_at=None)
        .update({"consumed_at": now}, synchronize_session=False)
    )
    db.session.add(EmailVerification(
        email=email,
        code_hash=hash_token(code),
        attempts=0,
        created_at=now,
        expires_at=now + OTP_TTL,
    ))
    db.session.commit()

    send_mail(to=email, subject="Your OTP Code", html=f"<p>Your OTP is <strong>{code}</strong></p>")


def verify_otp(email: str | None, otp) -> EmailVerification:
    email = _normalize_email(email)
    code = str(otp or "").strip()
    if not code:
        raise ValidationError("OTP is Required")

    record = _latest_verification(email)
    now = utcnow()
    if record is None or record.expires_at < now or record.attempts >= OTP_MAX_ATTEMPTS:
        raise ValidationError("OTP is Expired")

    if not hmac.compare_digest(record.code_hash, hash_token(code)):
        record.attempts += 1
        db.session.commit()
        raise ValidationError("Incorrect OTP")

    record.verified_at = now
    record.expires_at = now + OTP_VERIFIED_TTL
    db.session.commit()
    return record


def _verified_email(email: str) -> EmailVerification:
    record = _latest_verification(email)
    if record is None or record.verified_at is None or record.expires_at < utcnow():
        raise ValidationError("Email is not verified")
    return record


def register(
    *,
    username: str | None,
    email: str | None,
    full_name: str | None,
    password: str | None,
    avatar_path: str | None = None,
    skip_verification: bool = False,
) -> User:
    """
    Create an account.

    With REGISTRATION_REQUIRES_OTP the email must have passed verify_otp
    recently; the verification is consumed in the same commit as the user.
    """
    username, email = _normalize_identity(username, email)
    full_name = (full_name or "").strip()
    if not (username and email and full_name and password):
        raise ValidationError("All Fields are Required")
    if "@" not in email:
        raise ValidationError("Invalid email address")

    existing = (
        db.session.query(User.id)
        .filter(db.or_(User.username == username, User.email == email))
        .first()
    )
    if existing:
        raise ConflictError("User with this username or email already exists")

    verification = None
    if current_app.config.get("REGISTRATION_REQUIRES_OTP") and not skip_verification:
        verification = _verified_email(email)

    password_hash = hash_password(password)
    avatar_url = upload_image(avatar_path).url if avatar_path else None

    user = User(
        username=username,
        email=email,
        full_name=full_name,
        password_hash=password_hash,
        avatar=avatar_url,
    )
    db.session.add(user)
    if verification is not None:
        verification.consumed_at = utcnow()
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        discard_images([avatar_url])
        raise ConflictError("User with this username or email already exists")
    return user


def authenticate(identifier: str | None, password: str | None) -> User:
    """
    Resolve credentials by username or email.

    Unknown user and wrong password produce the same error.
    """
    identifier = (identifier or "").strip().lower()
    if not identifier:
        raise ValidationError("Username or Email is required")
    if not password:
        raise ValidationError("Password is required")

    user = (
        db.session.query(User)
        .filter(
            db.or_(User.username == identifier, User.email == identifier),
            User.is_active.is_(True),
        )
        .first()
    )
    if user is None or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid username/email or password")

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def change_password(user: User, *, old_password: str | None, new_password: str | None) -> None:
    if not (old_password and new_password):
        raise ValidationError("All Fields are Required")
    if not verify_password(old_password, user.password_hash):
        raise ValidationError("Invalid Current Password")

    user.password_hash = hash_password(new_password)
    db.session.commit()
    revoke_all_user_sessions(user.id, reason="Password changed")


def update_account_details(user: User, *, full_name: str | None, email: str | None, username: str | None) -> User:
    username, email = _normalize_identity(username, email)
    full_name = (full_name or "").strip()
    if not (full_name and email and username):
        raise ValidationError("All Fields are Required")

    clash = (
        db.session.query(User.id)
        .filter(db.or_(User.username == username, User.email == email), User.id != user.id)
        .first()
    )
    if clash:
        raise ConflictError("User with this username or email already exists")

    user.full_name = full_name
    user.email = email
    user.username = username
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("User with this username or email already exists")
    return user


def update_avatar(user: User, avatar_path: str | None) -> User:
    """Upload the new avatar, point the user at it, then drop the old image."""
    if not avatar_path:
        raise ValidationError("Avatar File is Required")

    new_url = upload_image(avatar_path).url
    old_url = user.avatar
    user.avatar = new_url
    db.session.commit()

    if old_url:
        discard_images([old_url])
    return user


def _reset_email_html(link: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; line-height: 1.6;">'
        "<h2>Password Reset Request</h2>"
        "<p>You requested to reset your password. Use the link below to set a new password:</p>"
        f'<p><a href="{link}">Reset Password</a></p>'
        f'<p style="word-break: break-all;">{link}</p>'
        "<p>This link expires in one hour.</p>"
        "<hr><p>If you didn't request this, ignore this email and your password stays unchanged.</p>"
        "</div>"
    )


def forgot_password(email: str | None) -> None:
    """
    Issue a reset token and mail the link.

    Unknown emails are answered the same way as known ones.
    """
    email = (email or "").strip().lower()
    if not email:
        raise ValidationError("Email is Required")

    user = db.session.query(User).filter_by(email=email, is_active=True).first()
    if user is None:
        current_app.logger.info("Password reset requested for unknown email")
        return

    token = generate_token()
    now = utcnow()
    db.session.add(PasswordResetToken(
        user_id=user.id,
        token_hash=hash_token(token),
        created_at=now,
        expires_at=now + RESET_TOKEN_TTL,
    ))
    db.session.commit()

    link = f"{current_app.config['FRONTEND_URL'].rstrip('/')}/resetpassword/{token}"
    send_mail(to=user.email, subject="Password Reset Request", html=_reset_email_html(link))


def _live_reset_record(token: str | None) -> PasswordResetToken:
    if not token:
        raise ValidationError("Reset Token is Required")

    record = (
        db.session.query(PasswordResetToken)
        .filter_by(token_hash=hash_token(token))
        .first()
    )
    if record is None or record.used_at is not None or record.expires_at < utcnow():
        raise ValidationError("Link is Expired")
    if record.user is None:
        raise NotFoundError("User not found")
    return record


def verify_reset_token(token: str | None) -> User:
    """Check a reset link without consuming it (the frontend asks before showing the form)."""
    return _live_reset_record(token).user


def reset_password(token: str | None, new_password: str | None) -> User:
    if not token:
        raise ValidationError("Reset Token is Required")
    if not new_password:
        raise ValidationError("New Password is Required")

    record = _live_reset_record(token)
    user = record.user

    user.password_hash = hash_password(new_password)
    record.used_at = utcnow()
    db.session.commit()
    revoke_all_user_sessions(user.id, reason="Password reset")
    return user


def create_user(*, username: str, email: str, password: str, full_name: str = "") -> User:
    """Admin/CLI helper; same rules as register."""
    return register(
        username=username,
        email=email,
        full_name=full_name or username,
        password=password,
        skip_verification=True,
    )
