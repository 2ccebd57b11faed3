"""
TokenOrchestrator: authenticates credentials, issues access/refresh token
pairs, validates bearer tokens, and revokes tokens with cascade.

The orchestrator holds no mutable state of its own. Everything it changes
lives behind TokenStore, which reports each operation as a StoreResult; the
orchestrator maps those outcomes onto the taxonomy in utils.errors:

    NOT_FOUND on a lookup or revoke  -> InvalidToken
    FAILED anywhere                  -> ServerError (logged with the operation)

Expiry is strict: a token is live while now < expires.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from models.base_model import as_naive_utc, utc_now
from models.directories import UserDirectory
from models.token_store import StoreOutcome, StoreResult, TokenStore
from utils.errors import AuthenticationFailed, InvalidScope, InvalidToken, ServerError
from utils.security import CredentialVerifier

logger = logging.getLogger(__name__)

DEFAULT_ACCESS_TOKEN_LIFETIME = 24 * 60 * 60        # one day
DEFAULT_REFRESH_TOKEN_LIFETIME = 365 * 24 * 60 * 60  # one year


@dataclass(frozen=True)
class Principal:
    user_id: str
    scope: str

    @property
    def scopes(self) -> frozenset:
        return frozenset(self.scope.split())


@dataclass(frozen=True)
class AccessTokenInfo:
    token: str
    user_id: str
    scope: str
    expires: datetime


@dataclass(frozen=True)
class RefreshTokenInfo:
    token: str
    access_token: str
    user_id: str
    expires: datetime


@dataclass(frozen=True)
class TokenPair:
    access_token: AccessTokenInfo
    refresh_token: Optional[RefreshTokenInfo] = None

    def to_response(self, now: datetime) -> dict:
        """Body of a successful POST /oauth/token."""
        body = {
            "access_token": self.access_token.token,
            "token_type": "bearer",
            "expires_in": max(0, int((self.access_token.expires - now).total_seconds())),
            "expires": self.access_token.expires.isoformat() + "Z",
            "scope": self.access_token.scope,
            "user_id": self.access_token.user_id,
        }
        if self.refresh_token is not None:
            body["refresh_token"] = self.refresh_token.token
        return body


def _mask(token: str) -> str:
    return f"{token[:8]}..." if isinstance(token, str) else "<none>"


class TokenOrchestrator:
    """Token lifecycle over an explicitly supplied store, directory and verifier.

    Usage:
        orchestrator = TokenOrchestrator(TokenStore(storage), UserDirectory(storage), CredentialVerifier())
        pair = orchestrator.password_grant("alice", "s3cret")
        info = orchestrator.validate_access_token(pair.access_token.token)
        orchestrator.revoke_access_token(pair.access_token.token)
    """

    def __init__(
        self,
        store: TokenStore,
        users: UserDirectory,
        verifier: CredentialVerifier,
        access_token_lifetime: int = DEFAULT_ACCESS_TOKEN_LIFETIME,
        issue_refresh_token: bool = True,
        refresh_token_lifetime: int = DEFAULT_REFRESH_TOKEN_LIFETIME,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if access_token_lifetime <= 0 or refresh_token_lifetime <= 0:
            raise ValueError("token lifetimes must be positive")
        self.store = store
        self.users = users
        self.verifier = verifier
        self.access_token_lifetime = access_token_lifetime
        self.issue_refresh_token = issue_refresh_token
        self.refresh_token_lifetime = refresh_token_lifetime
        self._clock = clock or utc_now

    def now(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def authenticate(self, username: str, password: str) -> Principal:
        """Resolve and check credentials.

        Unknown username, inactive account and wrong password all raise the
        same AuthenticationFailed. The first two still pay for one argon2
        verify so the failure branch is not visible in response time.
        """
        context = "TokenOrchestrator.authenticate"
        if not isinstance(username, str) or not username:
            self.verifier.equalize(password)
            raise AuthenticationFailed(context)

        account = self._expect(self.users.find_by_username(username), context)
        if account is None or not account.active:
            self.verifier.equalize(password)
            logger.info("authenticate: rejected username=%r", username)
            raise AuthenticationFailed(context)
        if not self.verifier.verify(password, account.password_hash):
            logger.info("authenticate: rejected username=%r", username)
            raise AuthenticationFailed(context)
        return Principal(user_id=account.id, scope=account.scope or "")

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    def issue_token_pair(
        self,
        principal: Principal,
        access_token_lifetime: Optional[int] = None,
        refresh_token_lifetime: Optional[int] = None,
    ) -> TokenPair:
        """Insert a new access token and, when enabled, its refresh token.

        If the refresh insert fails the access token just created is deleted
        again before ServerError is raised, so a failed issuance leaves no
        usable credential behind.
        """
        context = "TokenOrchestrator.issue_token_pair"
        access_lifetime = self.access_token_lifetime if access_token_lifetime is None else access_token_lifetime
        refresh_lifetime = self.refresh_token_lifetime if refresh_token_lifetime is None else refresh_token_lifetime
        if access_lifetime <= 0 or refresh_lifetime <= 0:
            raise ValueError("token lifetimes must be positive")

        access_value = self.verifier.generate_token()
        access_expires = self.now() + timedelta(seconds=access_lifetime)
        self._expect(
            self.store.insert_access_token(access_value, principal.user_id, principal.scope, access_expires),
            context,
        )
        access_info = AccessTokenInfo(access_value, principal.user_id, principal.scope, access_expires)

        refresh_info = None
        if self.issue_refresh_token:
            refresh_value = self.verifier.generate_token()
            refresh_expires = self.now() + timedelta(seconds=refresh_lifetime)
            result = self.store.insert_refresh_token(
                refresh_value, access_value, principal.user_id, refresh_expires
            )
            if result.outcome is not StoreOutcome.OK:
                self._compensate(access_value)
                self._raise_server_error(result, context)
            refresh_info = RefreshTokenInfo(refresh_value, access_value, principal.user_id, refresh_expires)

        logger.info(
            "issued token pair user_id=%s access=%s refresh=%s",
            principal.user_id, _mask(access_value),
            _mask(refresh_info.token) if refresh_info else None,
        )
        return TokenPair(access_info, refresh_info)

    def _compensate(self, access_value: str) -> None:
        result = self.store.revoke_access_token(access_value)
        if result.outcome is StoreOutcome.FAILED:
            logger.error(
                "could not remove access token %s after refresh insert failed",
                _mask(access_value), exc_info=result.error,
            )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_access_token(self, token: str) -> AccessTokenInfo:
        context = "TokenOrchestrator.validate_access_token"
        if not isinstance(token, str) or not token:
            raise InvalidToken(context)
        row = self._expect(self.store.find_access_token(token), context)
        if row is None or self._expired(row.expires):
            raise InvalidToken(context)
        return AccessTokenInfo(row.token, row.user_id, row.scope or "", as_naive_utc(row.expires))

    def validate_refresh_token(self, token: str) -> RefreshTokenInfo:
        context = "TokenOrchestrator.validate_refresh_token"
        if not isinstance(token, str) or not token:
            raise InvalidToken(context)
        row = self._expect(self.store.find_refresh_token(token), context)
        if row is None or self._expired(row.expires):
            raise InvalidToken(context)
        return RefreshTokenInfo(row.token, row.access_token, row.user_id, as_naive_utc(row.expires))

    def _expired(self, expires: datetime) -> bool:
        return self.now() >= as_naive_utc(expires)

    # ------------------------------------------------------------------
    # Revocation
    # ------------------------------------------------------------------

    def revoke_access_token(self, token: str) -> None:
        """Delete the access token, then every refresh token it spawned.

        Zero rows deleted means the token never existed or a concurrent
        revoke got there first; either way the caller gets InvalidToken.
        """
        context = "TokenOrchestrator.revoke_access_token"
        if not isinstance(token, str) or not token:
            raise InvalidToken(context)
        result = self.store.revoke_access_token(token)
        if result.outcome is StoreOutcome.NOT_FOUND:
            raise InvalidToken(context)
        self._expect(result, context)

        cascade = self.store.revoke_refresh_tokens_by_access_token(token)
        self._expect(cascade, context)
        logger.info("revoked access token %s (%d refresh token(s))", _mask(token), cascade.count)

    # ------------------------------------------------------------------
    # Grants (the POST /oauth/token entry points)
    # ------------------------------------------------------------------

    def password_grant(self, username: str, password: str, scope: Optional[str] = None) -> TokenPair:
        principal = self.authenticate(username, password)
        return self.issue_token_pair(self._narrow(principal, scope))

    def refresh_grant(self, refresh_token: str, scope: Optional[str] = None) -> TokenPair:
        """Exchange a refresh token for a new pair, retiring the old one.

        The old refresh token is consumed with a delete-and-count before
        anything is issued, so two racing refreshes cannot both succeed.
        """
        context = "TokenOrchestrator.refresh_grant"
        info = self.validate_refresh_token(refresh_token)

        consumed = self.store.revoke_refresh_token(info.token)
        if consumed.outcome is StoreOutcome.NOT_FOUND:
            raise InvalidToken(context)
        self._expect(consumed, context)

        parent = self.store.revoke_access_token(info.access_token)
        if parent.outcome is StoreOutcome.FAILED:
            self._raise_server_error(parent, context)
        self._expect(self.store.revoke_refresh_tokens_by_access_token(info.access_token), context)

        account = self._expect(self.users.find_by_id(info.user_id), context)
        if account is None or not account.active:
            raise InvalidToken(context)
        principal = Principal(user_id=account.id, scope=account.scope or "")
        return self.issue_token_pair(self._narrow(principal, scope))

    @staticmethod
    def _narrow(principal: Principal, requested: Optional[str]) -> Principal:
        if requested is None or not requested.strip():
            return principal
        wanted = requested.split()
        if not set(wanted) <= principal.scopes:
            raise InvalidScope(context="TokenOrchestrator.narrow")
        return Principal(user_id=principal.user_id, scope=" ".join(wanted))

    # ------------------------------------------------------------------
    # Result handling
    # ------------------------------------------------------------------

    def _expect(self, result: StoreResult, context: str):
        """Value of an OK result, None for NOT_FOUND, ServerError for FAILED."""
        if result.outcome is StoreOutcome.FAILED:
            self._raise_server_error(result, context)
        if result.outcome is StoreOutcome.NOT_FOUND:
            return None
        return result.value

    @staticmethod
    def _raise_server_error(result: StoreResult, context: str):
        logger.error("%s failed in %s", context, result.operation, exc_info=result.error)
        raise ServerError(f"{context} ({result.operation})", cause=result.error)
