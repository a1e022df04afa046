# Error taxonomy shared by the session engine, the store and the routes.

from typing import Any, Dict


class AuthError(Exception):
    code = "auth_error"
    status_code = 500

    def __init__(self, message: str = "Authentication error.", **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context


class InvalidInput(AuthError):
    """Malformed identity or token. Never retried."""

    code = "invalid_input"
    status_code = 400

    def __init__(self, message: str = "Invalid input.", **context: Any):
        super().__init__(message, **context)


class NotFound(AuthError):
    code = "not_found"
    status_code = 404

    def __init__(self, message: str = "Session not found.", **context: Any):
        super().__init__(message, **context)


class StoreUnavailable(AuthError):
    """Persistence failure. The operation was not applied and may be retried as a whole."""

    code = "store_unavailable"
    status_code = 503

    def __init__(self, message: str = "Session store unavailable.", **context: Any):
        super().__init__(message, **context)


class Conflict(AuthError):
    """Token collision on creation. Handled inside the engine."""

    code = "conflict"
    status_code = 409

    def __init__(self, message: str = "Token already issued.", **context: Any):
        super().__init__(message, **context)


class ConfigError(AuthError):
    code = "config_error"
    status_code = 500

    def __init__(self, message: str = "Configuration error.", **context: Any):
        super().__init__(message, **context)
