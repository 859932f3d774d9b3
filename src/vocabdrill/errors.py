"""Exceptions raised by the drill services."""
from typing import Any, Dict, Optional


class VocabDrillError(Exception):
    """Base class for drill errors."""


class StoreError(VocabDrillError):
    """A store operation failed; nothing was applied."""

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[str] = None,
        hint: Optional[str] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details
        self.hint = hint

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form for the presentation layer."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
            "hint": self.hint,
        }

    @classmethod
    def from_exception(cls, code: str, exc: Exception, hint: Optional[str] = None) -> "StoreError":
        """Wrap a driver or ORM exception."""
        text = str(getattr(exc, "orig", None) or exc)
        return cls(
            code=code,
            message=text.splitlines()[0] if text else code,
            details=type(exc).__name__,
            hint=hint,
        )


class AuthenticationError(VocabDrillError):
    """The bearer credential is missing or invalid."""
