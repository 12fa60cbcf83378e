"""Error kinds raised by the vault services.

Each carries the HTTP status it maps to; ``main.create_app`` registers a
single handler that renders them as ``{"error": ..., "code": ...}``.
"""
from typing import Optional


class VaultError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(VaultError):
    """Malformed or disallowed input (bad extension, missing file)."""
    status_code = 400
    code = "validation_error"


class NotFoundError(VaultError):
    status_code = 404
    code = "not_found"


class ConflictError(VaultError):
    """Identifier collision on create. Should never happen with uuid4 ids."""
    status_code = 409
    code = "conflict"


class ExternalSuggestionError(VaultError):
    """Tag suggestion service failed. Carries upstream status and body."""
    status_code = 500
    code = "suggestion_failed"

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        self.status = status
        self.body = body
        super().__init__(message)

    def __str__(self) -> str:
        if self.status:
            return f"Suggestion service returned HTTP {self.status}: {self.body or self.message}"
        return self.message


class SuggestionNotConfiguredError(ExternalSuggestionError):
    code = "suggestion_not_configured"


class SuggestionTimeoutError(ExternalSuggestionError):
    code = "suggestion_timeout"
