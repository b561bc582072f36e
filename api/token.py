"""
Token blueprint:
- POST /api/token  exchange a refresh token for a new access token
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify

from models.schemas.token import CreateAccessTokenRequestSchema, CreateAccessTokenResponseSchema
from .extensions import component

bp = Blueprint("token", __name__)

create_request_schema = CreateAccessTokenRequestSchema()
create_response_schema = CreateAccessTokenResponseSchema()


@bp.post("/api/token")
def create_new_access_token():
    """
    Issue a new access token from a refresh token
    ---
    tags:
      - Token
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            refreshToken: { type: string }
    responses:
      201:
        description: Created (returns accessToken)
      401:
        description: Refresh token invalid, expired or not the stored one
      422:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    data = create_request_schema.load(payload)
    access_token = component("refresh_service").create_new_access_token(data["refresh_token"])
    return jsonify(create_response_schema.dump({"access_token": access_token})), 201
