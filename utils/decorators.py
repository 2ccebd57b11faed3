"""
Authorization gate for Flask views.

    @require_any()        any live bearer token
    @require_regular()    <library scope>:regular (or admin) on the route's library_id
    @require_admin()      <library scope>:admin on the route's library_id
    @require_superuser()  the configured superuser scope

Every decorator validates the token before looking at scope, so an invalid
token is always a 401 and never reveals what scope a route needs.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import wraps

from flask import current_app, g, request

from models.db_storage import DBStorage
from models.directories import LibraryDirectory, UserDirectory
from models.token_store import StoreOutcome, TokenStore
from utils.errors import Forbidden, InvalidToken, ServerError, Unauthorized
from utils.orchestrator import Principal, TokenOrchestrator
from utils.security import CredentialVerifier

REGULAR = "regular"
ADMIN = "admin"

logger = logging.getLogger(__name__)


@dataclass
class OAuthComponents:
    """Everything create_app() wires together, kept in app.extensions["oauth"]."""
    storage: DBStorage
    store: TokenStore
    users: UserDirectory
    libraries: LibraryDirectory
    verifier: CredentialVerifier
    orchestrator: TokenOrchestrator
    superuser_scope: str = "superuser"


def oauth_components() -> OAuthComponents:
    return current_app.extensions["oauth"]


def bearer_token() -> str:
    """Extract the token from 'Authorization: Bearer <token>' or raise Unauthorized."""
    auth = request.headers.get("Authorization", "")
    scheme, _, token = auth.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token or " " in token:
        raise Unauthorized("Missing or invalid Authorization header", "require_any")
    return token


def authenticate_request() -> Principal:
    """Validate the bearer token and attach the principal to flask.g."""
    token = bearer_token()
    try:
        info = oauth_components().orchestrator.validate_access_token(token)
    except InvalidToken as exc:
        raise Unauthorized(context=exc.context) from exc
    g.token = token
    g.principal = Principal(user_id=info.user_id, scope=info.scope)
    return g.principal


def has_library_scope(principal: Principal, library_scope: str, tier: str, superuser_scope: str) -> bool:
    granted = principal.scopes
    if superuser_scope in granted:
        return True
    if f"{library_scope}:{ADMIN}" in granted:
        return True
    return tier == REGULAR and f"{library_scope}:{REGULAR}" in granted


def _check_library_tier(principal: Principal, tier: str) -> None:
    components = oauth_components()
    if components.superuser_scope in principal.scopes:
        return
    library_id = (request.view_args or {}).get("library_id")
    if not library_id:
        raise Forbidden(context=f"require_{tier}")
    result = components.libraries.scope_for(library_id)
    if result.outcome is StoreOutcome.FAILED:
        logger.error("require_%s: library lookup failed", tier, exc_info=result.error)
        raise ServerError(f"require_{tier} ({result.operation})", cause=result.error)
    if result.outcome is StoreOutcome.NOT_FOUND:
        raise Forbidden(context=f"require_{tier}")
    if not has_library_scope(principal, result.value, tier, components.superuser_scope):
        raise Forbidden(context=f"require_{tier}")


def require_any():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            authenticate_request()
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def _require_tier(tier: str):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            principal = authenticate_request()
            _check_library_tier(principal, tier)
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def require_regular():
    """Allow regular or admin users of the route's library, and superusers."""
    return _require_tier(REGULAR)


def require_admin():
    """Allow admin users of the route's library, and superusers."""
    return _require_tier(ADMIN)


def require_superuser():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            principal = authenticate_request()
            if oauth_components().superuser_scope not in principal.scopes:
                raise Forbidden(context="require_superuser")
            return fn(*args, **kwargs)

        return wrapper

    return decorator
