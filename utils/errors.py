"""
OAuth error taxonomy.

Each class carries the HTTP status and the OAuth `error` code that
api.errors renders. Messages for authentication and token failures are fixed
so callers cannot tell an unknown username from a disabled account or a wrong
password, or a forged token from an expired one.

`context` names the operation that raised; it is logged, never returned.
"""
from __future__ import annotations


class OAuthError(Exception):
    status = 400
    error = "invalid_request"
    default_message = "Invalid request"

    def __init__(self, message: str | None = None, context: str | None = None):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)


class InvalidRequest(OAuthError):
    pass


class UnsupportedGrantType(OAuthError):
    error = "unsupported_grant_type"
    default_message = "Unsupported token grant type"


class InvalidScope(OAuthError):
    error = "invalid_scope"
    default_message = "Requested scope exceeds the granted scope"


class AuthenticationFailed(OAuthError):
    error = "invalid_grant"
    default_message = "Invalid username or password"

    def __init__(self, context: str | None = None):
        # message is deliberately not overridable
        super().__init__(None, context)


class InvalidToken(OAuthError):
    status = 401
    error = "invalid_token"
    default_message = "Missing or invalid token"

    def __init__(self, context: str | None = None):
        super().__init__(None, context)


class Unauthorized(OAuthError):
    status = 401
    error = "unauthorized"
    default_message = "Missing or invalid token"


class Forbidden(OAuthError):
    status = 403
    error = "forbidden"
    default_message = "Insufficient scope"


class ServerError(OAuthError):
    status = 500
    error = "server_error"
    default_message = "An unexpected error occurred"

    def __init__(self, context: str | None = None, cause: BaseException | None = None):
        super().__init__(None, context)
        self.cause = cause
