"""
User blueprint:
- POST /user     password signup
- GET  /logout   drop the refresh cookie (and the stored token when the caller is known)
- GET  /api/me   the authenticated principal and its user row
"""
from __future__ import annotations

import logging

from flask import Blueprint, request, jsonify, abort, redirect, current_app

from models.schemas.user import UserCreateSchema, UserOutSchema, PrincipalOutSchema
from utils.auth_filter import current_auth_context
from utils.cookies import delete_cookie
from utils.decorators import login_required
from .extensions import component

logger = logging.getLogger(__name__)

bp = Blueprint("users", __name__)

user_create_schema = UserCreateSchema()
user_out_schema = UserOutSchema()
principal_out_schema = PrincipalOutSchema()


@bp.post("/user")
def signup():
    """
    Register a user with email and password
    ---
    tags:
      - Users
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
            nickname: { type: string }
    responses:
      201:
        description: Created
      409:
        description: Email already registered
      422:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    data = user_create_schema.load(payload)

    users = component("users")
    if users.find_by_email(data["email"]):
        abort(409, description="Email already registered")

    user = users.create(data["email"], data["password"], nickname=data.get("nickname"))
    logger.info("user registered user_id=%s", user.id)
    return jsonify({"data": user_out_schema.dump(user)}), 201


@bp.get("/logout")
def logout():
    """
    Log out: clear the refresh token cookie
    ---
    tags:
      - Users
    responses:
      302:
        description: Redirect to the login page
    """
    context = current_auth_context()
    if context.is_authenticated:
        component("refresh_tokens").delete_by_user_id(context.principal.id)
        logger.info("refresh token revoked on logout user_id=%s", context.principal.id)
    response = redirect(current_app.config["LOGIN_PATH"])
    delete_cookie(response, current_app.config["REFRESH_TOKEN_COOKIE_NAME"],
                  secure=current_app.config["COOKIE_SECURE"])
    return response


@bp.get("/api/me")
@login_required()
def me(principal):
    """
    Current principal and user info
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    user = component("users").get_by_id(principal.id)
    return jsonify(
        {
            "principal": principal_out_schema.dump(principal.to_dict()),
            "data": user_out_schema.dump(user),
        }
    ), 200
