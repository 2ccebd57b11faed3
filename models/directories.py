"""
Read-only lookups the token core consumes but does not own.

UserDirectory resolves accounts for authentication and refresh grants.
LibraryDirectory resolves the scope prefix of a library for the tier checks in
utils.decorators. Both report through StoreResult like TokenStore does.
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from models.db_storage import DBStorage
from models.library import Library
from models.token_store import StoreResult
from models.user import User


class UserDirectory:
    def __init__(self, storage: DBStorage) -> None:
        self._storage = storage

    def find_by_username(self, username: str) -> StoreResult:
        return self._lookup(User.username == username, "UserDirectory.find_by_username")

    def find_by_id(self, user_id: str) -> StoreResult:
        return self._lookup(User.id == user_id, "UserDirectory.find_by_id")

    def _lookup(self, criterion, operation: str) -> StoreResult:
        session = self._storage.get_session()
        try:
            user: Optional[User] = session.query(User).filter(criterion).one_or_none()
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            return StoreResult.failed(operation, exc)
        return StoreResult.found(operation, user)


class LibraryDirectory:
    def __init__(self, storage: DBStorage) -> None:
        self._storage = storage

    def scope_for(self, library_id: str) -> StoreResult:
        """Return the scope prefix of an active library."""
        operation = "LibraryDirectory.scope_for"
        session = self._storage.get_session()
        try:
            scope = (
                session.query(Library.scope)
                .filter(Library.id == library_id, Library.active.is_(True))
                .scalar()
            )
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            return StoreResult.failed(operation, exc)
        return StoreResult.found(operation, scope)
