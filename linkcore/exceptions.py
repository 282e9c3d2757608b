"""Exceptions raised by the link registry core.

Every error subclasses ``LinkcoreError`` (itself a ``ValueError``) so callers
that only care about "the input was rejected" can catch one type, while the
web layer maps each concrete class to its own HTTP status.
"""

from typing import Any, Dict, Optional


class LinkcoreError(ValueError):
    """Base exception for all registry errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class DuplicateEmailError(LinkcoreError):
    """Raised when an email is already registered to another user."""

    def __init__(self, email: str):
        super().__init__(
            f"Email '{email}' already exists",
            code="DUPLICATE_EMAIL",
            details={"email": email},
        )


class InvalidCredentialsError(LinkcoreError):
    """Raised when email/password do not match any account."""

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message, code="INVALID_CREDENTIALS")


class NotFoundError(LinkcoreError):
    """Raised when a user or link does not exist."""

    def __init__(self, kind: str, identifier: str):
        super().__init__(
            f"{kind} not found: {identifier}",
            code="NOT_FOUND",
            details={"kind": kind, "id": identifier},
        )


class SlugTakenError(LinkcoreError):
    """Raised when a slug is already used by another link."""

    def __init__(self, slug: str):
        super().__init__(
            f"Slug '{slug}' already exists",
            code="SLUG_TAKEN",
            details={"slug": slug},
        )


class ForbiddenError(LinkcoreError):
    """Raised when the acting role may not perform an operation."""

    def __init__(self, message: str, actor_role: Optional[str] = None):
        super().__init__(
            message,
            code="FORBIDDEN",
            details={"actor_role": actor_role} if actor_role else None,
        )


class InvalidFormatError(LinkcoreError):
    """Raised when a snapshot or bulk payload is malformed."""

    def __init__(self, message: str = "Invalid data format"):
        super().__init__(message, code="INVALID_FORMAT")


class InvalidInputError(LinkcoreError):
    """Raised when a URL or slug fails validation."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message,
            code="INVALID_INPUT",
            details={"field": field} if field else None,
        )


class GuestLinkExistsError(LinkcoreError):
    """Raised when a guest session already holds a live link."""

    def __init__(self, link_id: str):
        super().__init__(
            "This guest session already has an active link; confirm replacement to create a new one",
            code="GUEST_LINK_EXISTS",
            details={"link_id": link_id},
        )
