from __future__ import annotations

from flask import Blueprint, request, jsonify, abort, g
from sqlalchemy import or_

from api.utils.pagination import parse_pagination
from models.library import Library
from models.schemas.library import (
    LibraryCreateSchema,
    LibraryUpdateSchema,
    LibraryOutSchema,
)
from utils.decorators import (
    oauth_components,
    require_admin,
    require_any,
    require_regular,
    require_superuser,
)

bp = Blueprint("libraries", __name__)

create_schema = LibraryCreateSchema()
update_schema = LibraryUpdateSchema()
out_schema = LibraryOutSchema()
out_list_schema = LibraryOutSchema(many=True)


@bp.get("/libraries")
@require_any()
def list_libraries():
    """
    List libraries visible to the caller (all of them for a superuser)
    ---
    tags: [Libraries]
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
    """
    components = oauth_components()
    session = components.storage.get_session()
    page, limit = parse_pagination()

    query = session.query(Library)
    granted = g.principal.scopes
    if components.superuser_scope not in granted:
        prefixes = {s.split(":", 1)[0] for s in granted if ":" in s}
        if not prefixes:
            return jsonify({"data": [], "meta": {"page": page, "limit": limit, "total": 0}})
        query = query.filter(Library.active.is_(True), or_(*(Library.scope == p for p in prefixes)))

    total = query.count()
    rows = query.order_by(Library.name.asc()).offset((page - 1) * limit).limit(limit).all()
    return jsonify({"data": out_list_schema.dump(rows), "meta": {"page": page, "limit": limit, "total": total}})


@bp.post("/libraries")
@require_superuser()
def create_library():
    """
    Create a library - superuser
    ---
    tags: [Libraries]
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            name: { type: string, maxLength: 255 }
            scope: { type: string, maxLength: 64 }
            active: { type: boolean }
            notes: { type: string }
    responses:
      201: { description: Created }
      409: { description: Name or scope already in use }
      422: { description: Validation error }
    """
    storage = oauth_components().storage
    data = create_schema.load(request.get_json(silent=True) or {})
    # unique name/scope violations surface as IntegrityError -> 409
    library = Library(**data)
    storage.new(library)
    storage.save()
    return jsonify({"data": out_schema.dump(library)}), 201


@bp.get("/libraries/<library_id>")
@require_regular()
def get_library(library_id: str):
    """
    Get a library by id - regular
    ---
    tags: [Libraries]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: library_id
        type: string
        required: true
    responses:
      200: { description: OK }
      403: { description: Forbidden }
      404: { description: Not found }
    """
    library = oauth_components().storage.get(Library, library_id)
    if not library:
        abort(404)
    return jsonify({"data": out_schema.dump(library)})


@bp.patch("/libraries/<library_id>")
@require_admin()
def update_library(library_id: str):
    """
    Update a library (partial) - admin. The scope is fixed once created.
    ---
    tags: [Libraries]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: library_id
        type: string
        required: true
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            name: { type: string, maxLength: 255 }
            active: { type: boolean }
            notes: { type: string }
    responses:
      200: { description: OK }
      403: { description: Forbidden }
      404: { description: Not found }
      422: { description: Validation error }
    """
    storage = oauth_components().storage
    library = storage.get(Library, library_id)
    if not library:
        abort(404)
    data = update_schema.load(request.get_json(silent=True) or {})
    for key, value in data.items():
        setattr(library, key, value)
    storage.new(library)
    storage.save()
    return jsonify({"data": out_schema.dump(library)})


@bp.delete("/libraries/<library_id>")
@require_superuser()
def delete_library(library_id: str):
    """
    Delete a library - superuser
    ---
    tags: [Libraries]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: library_id
        type: string
        required: true
    responses:
      204: { description: Deleted }
      404: { description: Not found }
    """
    storage = oauth_components().storage
    library = storage.get(Library, library_id)
    if not library:
        abort(404)
    storage.delete(library)
    storage.save()
    return ("", 204)
