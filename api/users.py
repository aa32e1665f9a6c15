from __future__ import annotations

from flask import Blueprint, current_app

from api.responses import success_response
from models.schemas.user import UserIdParamSchema
from utils.decorators import authenticate, require_admin, require_self_or_admin, validate_view_args

bp = Blueprint("users", __name__)

user_id_param_schema = UserIdParamSchema()


def _user_service():
    return current_app.extensions["user_service"]


@bp.get("")
@bp.get("/")
@authenticate
@require_admin
def list_users():
    """
    List all users - admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200: { description: OK }
      401: { description: Unauthorized }
      403: { description: Forbidden }
    """
    return success_response(_user_service().list_all(), 200, "Users retrieved successfully")


@bp.get("/<user_id>")
@authenticate
@validate_view_args(user_id_param_schema)
@require_self_or_admin("user_id")
def get_user(user_id: str):
    """
    Get one user - self or admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: path
        name: user_id
        type: string
        required: true
    responses:
      200: { description: OK }
      400: { description: Invalid user id }
      403: { description: Forbidden }
      404: { description: Not found }
    """
    return success_response(_user_service().get_by_id(user_id), 200, "User retrieved successfully")


@bp.patch("/<user_id>/block")
@authenticate
@validate_view_args(user_id_param_schema)
@require_self_or_admin("user_id")
def block_user(user_id: str):
    """
    Block a user for good and revoke their refresh tokens - self or admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: path
        name: user_id
        type: string
        required: true
    responses:
      200: { description: Blocked user }
      403: { description: Forbidden }
      404: { description: Not found }
    """
    return success_response(_user_service().block(user_id), 200, "User blocked successfully")
