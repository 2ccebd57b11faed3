"""
TokenStore: the only code that reads or writes the access_tokens and
refresh_tokens tables.

Every operation returns a StoreResult instead of raising, so callers switch on
the outcome rather than catching and re-throwing:

- OK         the operation succeeded; value/count carry the result
- NOT_FOUND  lookup matched nothing, or a delete affected zero rows where the
             caller needs to know that
- FAILED     the database raised (timeouts and unique-constraint violations
             included); error carries the original exception

The store never retries. An insert that timed out has an unknown outcome and
is reported as FAILED.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError

from models.access_token import AccessToken
from models.db_storage import DBStorage
from models.refresh_token import RefreshToken

logger = logging.getLogger(__name__)


class StoreOutcome(enum.Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class StoreResult:
    outcome: StoreOutcome
    operation: str
    value: Any = None
    count: int = 0
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.outcome is StoreOutcome.OK

    @classmethod
    def found(cls, operation: str, value: Any) -> "StoreResult":
        if value is None:
            return cls(StoreOutcome.NOT_FOUND, operation)
        return cls(StoreOutcome.OK, operation, value=value, count=1)

    @classmethod
    def deleted(cls, operation: str, count: int, zero_is_not_found: bool = True) -> "StoreResult":
        if count == 0 and zero_is_not_found:
            return cls(StoreOutcome.NOT_FOUND, operation, count=0)
        return cls(StoreOutcome.OK, operation, count=count)

    @classmethod
    def failed(cls, operation: str, error: BaseException) -> "StoreResult":
        return cls(StoreOutcome.FAILED, operation, error=error)


class TokenStore:
    """Persistence for AccessToken and RefreshToken rows.

    Usage:
        store = TokenStore(storage)
        result = store.find_access_token(value)
        if result.outcome is StoreOutcome.OK:
            row = result.value
    """

    def __init__(self, storage: DBStorage) -> None:
        self._storage = storage

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_access_token(self, token: str) -> StoreResult:
        return self._find(AccessToken, token, "TokenStore.find_access_token")

    def find_refresh_token(self, token: str) -> StoreResult:
        return self._find(RefreshToken, token, "TokenStore.find_refresh_token")

    def _find(self, model, token: str, operation: str) -> StoreResult:
        session = self._storage.get_session()
        try:
            row = session.query(model).filter(model.token == token).one_or_none()
            # end the read transaction so the next lookup sees fresh rows
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            return StoreResult.failed(operation, exc)
        return StoreResult.found(operation, row)

    # ------------------------------------------------------------------
    # Inserts
    # ------------------------------------------------------------------

    def insert_access_token(self, token: str, user_id: str, scope: str, expires: datetime) -> StoreResult:
        row = AccessToken(token=token, user_id=user_id, scope=scope, expires=expires)
        return self._insert(row, "TokenStore.insert_access_token")

    def insert_refresh_token(self, token: str, access_token: str, user_id: str, expires: datetime) -> StoreResult:
        row = RefreshToken(token=token, access_token=access_token, user_id=user_id, expires=expires)
        return self._insert(row, "TokenStore.insert_refresh_token")

    def _insert(self, row, operation: str) -> StoreResult:
        try:
            self._storage.new(row)
            self._storage.save()
        except SQLAlchemyError as exc:
            # save() has already rolled back
            return StoreResult.failed(operation, exc)
        return StoreResult(StoreOutcome.OK, operation, value=row, count=1)

    # ------------------------------------------------------------------
    # Deletes (each one is a single delete-and-count statement)
    # ------------------------------------------------------------------

    def revoke_access_token(self, token: str) -> StoreResult:
        operation = "TokenStore.revoke_access_token"
        result = self._delete(AccessToken, AccessToken.token == token, operation)
        if result.outcome is StoreOutcome.FAILED:
            return result
        return StoreResult.deleted(operation, result.count)

    def revoke_refresh_token(self, token: str) -> StoreResult:
        operation = "TokenStore.revoke_refresh_token"
        result = self._delete(RefreshToken, RefreshToken.token == token, operation)
        if result.outcome is StoreOutcome.FAILED:
            return result
        return StoreResult.deleted(operation, result.count)

    def revoke_refresh_tokens_by_access_token(self, access_token: str) -> StoreResult:
        operation = "TokenStore.revoke_refresh_tokens_by_access_token"
        result = self._delete(RefreshToken, RefreshToken.access_token == access_token, operation)
        if result.outcome is StoreOutcome.FAILED:
            return result
        return StoreResult.deleted(operation, result.count, zero_is_not_found=False)

    def _delete(self, model, criterion, operation: str) -> StoreResult:
        session = self._storage.get_session()
        try:
            count = session.query(model).filter(criterion).delete(synchronize_session=False)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            return StoreResult.failed(operation, exc)
        logger.debug("%s deleted %d row(s)", operation, count)
        return StoreResult(StoreOutcome.OK, operation, count=count)
