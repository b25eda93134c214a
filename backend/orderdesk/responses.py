# Overview: Uniform response envelope and the single error boundary for the API.

from __future__ import annotations

from flask import Flask, current_app, jsonify
from werkzeug.exceptions import HTTPException

from .errors import AppError
from .extensions import db


def api_response(data=None, message: str = "Success", status_code: int = 200):
    """Success envelope: {statusCode, data, message, success}."""
    body = {
        "statusCode": status_code,
        "data": data,
        "message": message,
        "success": status_code < 400,
    }
    return jsonify(body), status_code


def error_body(status_code: int, message: str, errors: list | None = None) -> dict:
    return {
        "statusCode": status_code,
        "data": None,
        "message": message,
        "success": False,
        "errors": errors or [],
    }


def register_error_handlers(app: Flask) -> None:
    """
    Install the top-level boundary that shapes every failure into the error
    envelope. Typed AppErrors keep their message; anything else is logged and
    surfaced as a generic 500.
    """

    @app.errorhandler(AppError)
    def handle_app_error(exc: AppError):
        db.session.rollback()
        if exc.status_code >= 500:
            current_app.logger.error("%s: %s", exc.code, exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc: HTTPException):
        status = exc.code or 500
        return jsonify(error_body(status, exc.description or exc.name)), status

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        db.session.rollback()
        current_app.logger.exception("Unhandled error")
        return jsonify(error_body(500, "Internal Server Error")), 500
