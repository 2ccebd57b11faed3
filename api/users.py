from __future__ import annotations

from flask import Blueprint, request, jsonify, abort

from api.utils.pagination import parse_pagination
from models.schemas.user import UserCreateSchema, UserOutSchema, UserUpdateSchema
from models.user import User
from utils.decorators import oauth_components, require_superuser

bp = Blueprint("users", __name__)

user_create_schema = UserCreateSchema()
user_update_schema = UserUpdateSchema()
user_out_schema = UserOutSchema()
user_list_out_schema = UserOutSchema(many=True)


@bp.get("/users")
@require_superuser()
def list_users():
    """
    List all Users - superuser
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: query
        name: page
        type: integer
        default: 1
      - in: query
        name: limit
        type: integer
        default: 20
    responses:
      200: { description: OK }
      401: { description: Unauthorized }
      403: { description: Forbidden }
    """
    session = oauth_components().storage.get_session()
    page, limit = parse_pagination()

    query = session.query(User)
    total = query.count()
    rows = query.order_by(User.username.asc()).offset((page - 1) * limit).limit(limit).all()
    return jsonify(
        {
            "data": user_list_out_schema.dump(rows),
            "meta": {"page": page, "limit": limit, "total": total}
        }
    )


@bp.post("/users")
@require_superuser()
def create_user():
    """
    Create a user - superuser
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            username: { type: string }
            password: { type: string }
            scope: { type: string }
            active: { type: boolean }
            f_name: { type: string }
            l_name: { type: string }
    responses:
      201: { description: Created }
      409: { description: Username already registered }
      422: { description: Validation error }
    """
    components = oauth_components()
    data = user_create_schema.load(request.get_json(silent=True) or {})

    session = components.storage.get_session()
    if session.query(User).filter(User.username == data["username"]).first():
        abort(409, description="Username already registered")

    user = User(
        username=data["username"],
        password_hash=components.verifier.hash(data["password"]),
        scope=data.get("scope", ""),
        active=data.get("active", True),
        f_name=data.get("f_name"),
        l_name=data.get("l_name"),
    )
    components.storage.new(user)
    components.storage.save()
    return jsonify({"data": user_out_schema.dump(user)}), 201


@bp.get("/users/<user_id>")
@require_superuser()
def get_user(user_id: str):
    """
    Get a user by id - superuser
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
      404: { description: Not found }
    """
    user = oauth_components().storage.get(User, user_id)
    if not user:
        abort(404)
    return jsonify({"data": user_out_schema.dump(user)})


@bp.patch("/users/<user_id>")
@require_superuser()
def update_user(user_id: str):
    """
    Update a user (partial) - superuser.
    Deactivating a user stops new logins and refresh grants; tokens already
    issued stay valid until they expire or are revoked.
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
      - in: body
        name: body
        schema:
          type: object
          properties:
            password: { type: string }
            scope: { type: string }
            active: { type: boolean }
            f_name: { type: string }
            l_name: { type: string }
    responses:
      200: { description: OK }
      404: { description: Not found }
      422: { description: Validation error }
    """
    components = oauth_components()
    user = components.storage.get(User, user_id)
    if not user:
        abort(404)
    data = user_update_schema.load(request.get_json(silent=True) or {})
    if "password" in data:
        user.password_hash = components.verifier.hash(data.pop("password"))
    for key, value in data.items():
        setattr(user, key, value)
    components.storage.new(user)
    components.storage.save()
    return jsonify({"data": user_out_schema.dump(user)})
