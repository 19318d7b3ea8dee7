# File: backend/campus/api/auth.py
"""Authentication API: login, ticket refresh, registration."""
from flask import Blueprint, request
from flask_jwt_extended import get_jwt, get_jwt_identity, jwt_required, verify_jwt_in_request

from campus import limiter
from campus.services.auth_service import AuthService
from campus.utils.errors import ForbiddenError
from campus.utils.helpers import success_response

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/health", methods=["GET"])
def health_check():
    """Health check endpoint."""
    return success_response(message="Auth service is running")


@auth_bp.route("/login", methods=["POST"])
@limiter.limit("5 per minute")
def login():
    """Login with email and password."""
    data = request.get_json(silent=True) or {}
    result = AuthService.login(data.get("email", "").strip(), data.get("password", ""))
    return success_response(data=result, message="Login successful")


@auth_bp.route("/refresh", methods=["POST"])
@jwt_required(refresh=True)
def refresh():
    """Exchange a refresh token for a new access token."""
    result = AuthService.refresh(get_jwt_identity())
    return success_response(data=result, message="Token refreshed")


@auth_bp.route("/register", methods=["POST"])
@limiter.limit("10 per minute")
def register():
    """Self-service registration for students; staff may register anyone."""
    data = request.get_json(silent=True)
    role = (data or {}).get("role", "student")
    if isinstance(data, dict):
        data.setdefault("role", "student")

    if role != "student":
        verify_jwt_in_request(optional=True)
        if get_jwt().get("role") != "staff":
            raise ForbiddenError("Only staff can register lecturer or staff accounts")

    user = AuthService.register(data)
    return success_response(data=user, message="User registered successfully", status_code=201)


@auth_bp.route("/me", methods=["GET"])
@jwt_required()
def me():
    """Get current user profile with role detail."""
    return success_response(data=AuthService.me(get_jwt_identity()))
