"""
OAuth blueprint:
- POST   /oauth/token   password and refresh_token grants
- DELETE /oauth/token   revoke the bearer token used for this request
- GET    /oauth/me      the account behind the bearer token
- PUT    /oauth/me      restricted self-update (password, f_name, l_name)

Tokens are opaque random strings stored in access_tokens / refresh_tokens;
see utils.orchestrator for the lifecycle rules.
"""
from __future__ import annotations

import logging

from flask import Blueprint, request, jsonify, g
from marshmallow import ValidationError

from models.schemas.token import (
    PASSWORD_GRANT_TYPE,
    REFRESH_GRANT_TYPE,
    PasswordGrantSchema,
    RefreshGrantSchema,
)
from models.schemas.user import UserOutSchema, UserSelfUpdateSchema
from models.token_store import StoreOutcome
from utils.decorators import oauth_components, require_any
from utils.errors import InvalidRequest, InvalidToken, ServerError, UnsupportedGrantType

logger = logging.getLogger(__name__)

bp = Blueprint("oauth", __name__)

password_grant_schema = PasswordGrantSchema()
refresh_grant_schema = RefreshGrantSchema()
user_out_schema = UserOutSchema()
user_self_update_schema = UserSelfUpdateSchema()


def _token_request() -> dict:
    """Accept both JSON and form-encoded token requests."""
    payload = request.get_json(silent=True)
    if payload is None:
        payload = request.form.to_dict()
    if not isinstance(payload, dict):
        raise InvalidRequest("Request body must be an object", "oauth.token")
    return payload


def _load(schema, payload: dict) -> dict:
    try:
        return schema.load(payload)
    except ValidationError as err:
        fields_ = ", ".join(sorted(err.messages))
        raise InvalidRequest(f"Missing or invalid fields: {fields_}", "oauth.token") from err


@bp.post("/token")
def token():
    """
    Request an access token (and refresh token)
    ---
    tags:
      - OAuth
    consumes:
      - application/json
      - application/x-www-form-urlencoded
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            grant_type: { type: string, enum: [password, refresh_token] }
            username: { type: string }
            password: { type: string }
            refresh_token: { type: string }
            scope: { type: string }
    responses:
      200:
        description: Token issued
      400:
        description: invalid_request, invalid_grant, invalid_scope or unsupported_grant_type
      401:
        description: invalid_token (refresh grant)
    """
    payload = _token_request()
    grant_type = payload.get("grant_type")
    orchestrator = oauth_components().orchestrator

    if grant_type == PASSWORD_GRANT_TYPE:
        data = _load(password_grant_schema, payload)
        logger.info("token: password grant username=%r", data["username"])
        pair = orchestrator.password_grant(data["username"], data["password"], data.get("scope"))
    elif grant_type == REFRESH_GRANT_TYPE:
        data = _load(refresh_grant_schema, payload)
        logger.info("token: refresh grant")
        pair = orchestrator.refresh_grant(data["refresh_token"], data.get("scope"))
    else:
        raise UnsupportedGrantType(context="oauth.token")

    response = jsonify(pair.to_response(orchestrator.now()))
    response.headers["Cache-Control"] = "no-store"
    return response, 200


@bp.delete("/token")
@require_any()
def revoke():
    """
    Revoke the access token used to authorize this request, plus its refresh token
    ---
    tags:
      - OAuth
    security:
      - Bearer: []
    responses:
      204:
        description: Revoked
      401:
        description: Missing or invalid token
    """
    # a concurrent revoke that won the race surfaces here as InvalidToken (401)
    oauth_components().orchestrator.revoke_access_token(g.token)
    return ("", 204)


@bp.get("/me")
@require_any()
def me():
    """
    The authenticated user's profile
    ---
    tags:
      - OAuth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return jsonify({"data": user_out_schema.dump(_current_account("oauth.me"))}), 200


@bp.put("/me")
@require_any()
def update_me():
    """
    Update the authenticated user's own profile.
    Only password, f_name and l_name can change; username, scope and active
    are ignored if sent.
    ---
    tags:
      - OAuth
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            password: { type: string }
            f_name: { type: string }
            l_name: { type: string }
    responses:
      200:
        description: Updated profile
      401:
        description: Unauthorized
      422:
        description: Validation error
    """
    components = oauth_components()
    user = _current_account("oauth.update_me")
    data = user_self_update_schema.load(request.get_json(silent=True) or {})
    if "password" in data:
        user.password_hash = components.verifier.hash(data.pop("password"))
    for key, value in data.items():
        setattr(user, key, value)
    components.storage.new(user)
    components.storage.save()
    logger.info("profile updated user_id=%s fields=%s", user.id, sorted(data))
    return jsonify({"data": user_out_schema.dump(user)}), 200


def _current_account(context: str):
    result = oauth_components().users.find_by_id(g.principal.user_id)
    if result.outcome is StoreOutcome.FAILED:
        raise ServerError(context, cause=result.error)
    if result.outcome is StoreOutcome.NOT_FOUND:
        # token outlived its account row; treat like any other dead token
        raise InvalidToken(context)
    return result.value
