"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout
- POST /auth/forgot-password

The implementation:
- Delegates every use case to the AuthService stored on the app
- Issues short-lived access tokens in the body and rotating refresh tokens in an
  httpOnly, SameSite=Strict cookie (also echoed in the login body)
- Answers forgot-password identically whether or not the email exists
"""
from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify, request

from models.schemas.user import CredentialsSchema, ForgotPasswordSchema
from services import AuthService, TokenPair
from services.errors import UnauthorizedError

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__, url_prefix="/auth")

credentials_schema = CredentialsSchema()
forgot_password_schema = ForgotPasswordSchema()

FORGOT_PASSWORD_MESSAGE = "If user exists, email sent"


def auth_service() -> AuthService:
    return current_app.extensions["auth_service"]


def set_refresh_cookie(response, tokens: TokenPair):
    cfg = current_app.config
    response.set_cookie(
        cfg["REFRESH_COOKIE_NAME"],
        tokens.refresh_token,
        max_age=int(cfg["REFRESH_TOKEN_EXPIRES"].total_seconds()),
        httponly=True,
        secure=cfg["COOKIE_SECURE"],
        samesite="Strict",
        path="/",
    )
    return response


def presented_refresh_token() -> str | None:
    """Cookie first; a JSON body field is accepted for non-browser clients."""
    token = request.cookies.get(current_app.config["REFRESH_COOKIE_NAME"])
    if token:
        return token
    payload = request.get_json(silent=True) or {}
    token = payload.get("refreshToken") if isinstance(payload, dict) else None
    return token if isinstance(token, str) and token else None


@bp.post("/register")
def register():
    """
    Register a new user.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
            password: { type: string }
    responses:
      201:
        description: Created
      400:
        description: Validation error
      409:
        description: Email already registered
    """
    payload = request.get_json(silent=True) or {}
    data = credentials_schema.load(payload)
    auth_service().register(data["email"], data["password"])
    return jsonify({"message": "User created"}), 201


@bp.post("/login")
def login():
    """
    Login: return accessToken and refreshToken, and set the refresh cookie
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      400:
        description: Validation error
      401:
        description: Invalid credentials
    """
    payload = request.get_json(silent=True) or {}
    data = credentials_schema.load(payload)
    tokens = auth_service().login(data["email"], data["password"])
    response = jsonify({"accessToken": tokens.access_token, "refreshToken": tokens.refresh_token})
    return set_refresh_cookie(response, tokens), 200


@bp.post("/refresh")
def refresh():
    """
    Exchange the refresh cookie for a new access token; the refresh token is rotated
    ---
    tags:
      - Auth
    responses:
      200:
        description: New access token; rotated refresh cookie
      401:
        description: Missing, invalid, expired or already used refresh token
    """
    token = presented_refresh_token()
    if token is None:
        raise UnauthorizedError("Invalid refresh token")
    tokens = auth_service().refresh(token)
    response = jsonify({"accessToken": tokens.access_token})
    return set_refresh_cookie(response, tokens), 200


@bp.post("/logout")
def logout():
    """
    Logout: revoke the presented refresh token (all of the user's sessions with ?all=true)
    ---
    tags:
      - Auth
    parameters:
      - in: query
        name: all
        type: boolean
        required: false
    responses:
      204:
        description: ""
    """
    token = presented_refresh_token()
    if token:
        everywhere = request.args.get("all", "").lower() in ("1", "true", "yes")
        auth_service().logout(token, everywhere=everywhere)
    response = current_app.make_response(("", 204))
    response.delete_cookie(
        current_app.config["REFRESH_COOKIE_NAME"],
        path="/",
        httponly=True,
        secure=current_app.config["COOKIE_SECURE"],
        samesite="Strict",
    )
    return response


@bp.post("/forgot-password")
def forgot_password():
    """
    Request a password reset. The response never reveals whether the email exists.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
    responses:
      200:
        description: Always the same message
      400:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    data = forgot_password_schema.load(payload)
    reset_token = auth_service().forgot_password(data["email"])
    # TODO: hand reset_token to an email sender once one exists; until then it is only logged in debug.
    if reset_token and current_app.debug:
        logger.debug("RESET LINK: %s?token=%s", current_app.config["RESET_URL_BASE"], reset_token)
    return jsonify({"message": FORGOT_PASSWORD_MESSAGE}), 200
