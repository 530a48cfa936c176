"""
Bundle Generator - Error Types
Structured exceptions and validation results for the generation core.

The core prefers best-effort results over raising. The only hard failure is an
empty catalog; soft problems (malformed import fields, unparseable hints) are
collected as ValidationIssue entries so callers can report all of them at once.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCode(str, Enum):
    """Standard error codes for the generation core."""
    UNKNOWN = "UNKNOWN"
    INVALID_REQUEST = "INVALID_REQUEST"

    # Catalog
    CATALOG_EMPTY = "CATALOG_EMPTY"
    CATALOG_RECORD_INVALID = "CATALOG_RECORD_INVALID"

    # Import payload validation
    FIELD_MUST_BE_STRING = "FIELD_MUST_BE_STRING"
    FIELD_MUST_BE_NUMBER = "FIELD_MUST_BE_NUMBER"
    FIELD_MUST_BE_OBJECT = "FIELD_MUST_BE_OBJECT"
    FIELD_MUST_BE_LIST = "FIELD_MUST_BE_LIST"
    ITEM_REFERENCE_INVALID = "ITEM_REFERENCE_INVALID"


class BundleError(Exception):
    """
    Base exception for generation errors.

    Carries an error code, a human-readable message, context details and a
    recovery hint for whoever presents the failure to a user.
    """

    def __init__(
        self,
        code: ErrorCode = ErrorCode.UNKNOWN,
        message: str = "An unexpected error occurred",
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
        recovery_hint: Optional[str] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable
        self.recovery_hint = recovery_hint

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for serialization."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
                "recoverable": self.recoverable,
                "recovery_hint": self.recovery_hint,
            }
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"


class EmptyCatalogError(BundleError):
    """Raised when there is nothing at all to select from."""

    def __init__(self, context: Optional[str] = None):
        details = {}
        if context:
            details["context"] = context
        super().__init__(
            code=ErrorCode.CATALOG_EMPTY,
            message="The catalog has no records usable for this request",
            details=details,
            recovery_hint="Load a catalog containing item records or relax the magic/rarity filters",
        )


class InvalidRequestError(BundleError):
    """Raised for requests that cannot be interpreted at all (e.g. wrong payload type)."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            code=ErrorCode.INVALID_REQUEST,
            message=message,
            details={"field": field} if field else {},
            recovery_hint="Check the request parameters",
        )


# =============================================================================
# Validation Results
# =============================================================================

@dataclass
class ValidationIssue:
    """A single problem found while normalizing external input."""
    field: str
    message: str
    code: ErrorCode = ErrorCode.UNKNOWN

    def to_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "message": self.message, "code": self.code.value}


@dataclass
class ValidationResult:
    """
    Outcome of a normalization step.

    ``value`` always holds the best-effort normalized data; ``valid`` is False
    when at least one issue was recorded.
    """
    valid: bool
    value: Any = None
    issues: List[ValidationIssue] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def from_issues(
        cls,
        value: Any,
        issues: List[ValidationIssue],
        warnings: Optional[List[str]] = None,
    ) -> "ValidationResult":
        return cls(valid=not issues, value=value, issues=list(issues), warnings=list(warnings or ()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "issues": [issue.to_dict() for issue in self.issues],
            "warnings": list(self.warnings),
        }
