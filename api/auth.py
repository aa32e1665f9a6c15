"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout
- POST /auth/logout-all

The implementation:
- Uses argon2 for password hashing (via utils.security)
- Issues short-lived access tokens and longer-lived, single-use refresh tokens (PyJWT)
- Tracks live refresh tokens in the revocation store so they can be rotated and revoked
"""
from __future__ import annotations

from flask import Blueprint, request, g, current_app

from api.responses import success_response
from models.schemas.user import UserRegisterSchema, UserLoginSchema, RefreshTokenSchema
from utils.decorators import authenticate

bp = Blueprint("auth", __name__)

user_register_schema = UserRegisterSchema()
user_login_schema = UserLoginSchema()
refresh_token_schema = RefreshTokenSchema()


def _auth_service():
    return current_app.extensions["auth_service"]


@bp.post("/register")
def register():
    """
    register a new user.
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
          required: [fullName, dateOfBirth, email, password]
          properties:
            fullName: { type: string }
            dateOfBirth: { type: string, example: "1990-04-21" }
            email: { type: string }
            password: { type: string }
    responses:
      201:
        description: Created
      400:
        description: Validation error
      409:
        description: Email already exists
    """
    payload = request.get_json(silent=True) or {}
    data = user_register_schema.load(payload)
    user = _auth_service().register(data)
    return success_response(user, 201, "User registered successfully")


@bp.post("/login")
def login():
    """
    Login: return the user and a token pair
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
      401:
        description: Invalid credentials
      403:
        description: Account is blocked
    """
    payload = request.get_json(silent=True) or {}
    data = user_login_schema.load(payload)
    result = _auth_service().login(data["email"], data["password"])
    return success_response(result, 200, "Login successful")


@bp.post("/refresh")
def refresh():
    """
    Use a refresh token to obtain a new access and refresh token (rotation)
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
             refreshToken: { type: string }
    responses:
      200:
        description: New token pair; the submitted refresh token is spent
      401:
        description: Invalid, expired or revoked token
      403:
        description: Account is blocked
      404:
        description: User no longer exists
    """
    payload = request.get_json(silent=True) or {}
    data = refresh_token_schema.load(payload)
    tokens = _auth_service().refresh(data["refresh_token"])
    return success_response(tokens, 200, "Tokens refreshed successfully")


@bp.post("/logout")
@authenticate
def logout():
    """
    logout: revokes the given refresh token. Always succeeds.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refreshToken: { type: string }
    responses:
      200:
        description: Logged out
      401:
        description: Unauthorized
    """
    payload = request.get_json(silent=True)
    refresh_token = payload.get("refreshToken") if isinstance(payload, dict) else None
    _auth_service().logout(refresh_token if isinstance(refresh_token, str) else None)
    return success_response(None, 200, "Logged out successfully")


@bp.post("/logout-all")
@authenticate
def logout_all():
    """
    logout-all: revokes every refresh token of the calling user
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Logged out from all devices
      401:
        description: Unauthorized
    """
    _auth_service().logout_all(g.current_user.user_id)
    return success_response(None, 200, "Logged out from all devices successfully")
