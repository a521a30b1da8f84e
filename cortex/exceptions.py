"""Custom exception hierarchy for cortex.

Exception Hierarchy:
    CortexError (base)
    ├── ValidationError - rejected user input, state unchanged
    │   ├── FilterValidationError
    │   └── PageSizeError
    ├── PreferenceError - preference store I/O
    │   ├── PreferenceReadError
    │   └── PreferenceWriteError
    ├── RemoteMutationError - one or more remote calls in a batch failed
    ├── DragStateError - invalid drag state transition
    └── LibraryFileError - unreadable or malformed library file

Usage:
    from cortex.exceptions import FilterValidationError

    if sort_by not in SORT_KEYS:
        raise FilterValidationError("Unknown sort key", value=sort_by)
"""

from typing import Any, Dict, Optional


class CortexError(Exception):
    """Base exception for all cortex errors.

    Attributes:
        message: Human-readable error description
        context: Additional context about the error (e.g., IDs, keys)
        retryable: Whether this error might succeed on retry
    """

    def __init__(
        self,
        message: str,
        *,
        retryable: bool = False,
        **context: Any,
    ) -> None:
        self.message = message
        self.context = context
        self.retryable = retryable
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with context."""
        if self.context:
            context_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(CortexError):
    """Base exception for rejected input."""

    pass


class FilterValidationError(ValidationError):
    """A filter axis value is malformed."""

    def __init__(
        self,
        message: str = "Invalid filter",
        *,
        axis: Optional[str] = None,
        **context: Any,
    ) -> None:
        if axis:
            context["axis"] = axis
        super().__init__(message, **context)


class PageSizeError(ValidationError):
    """A page size outside the allowed options was requested."""

    def __init__(
        self,
        message: str = "Unsupported page size",
        *,
        page_size: Optional[int] = None,
        **context: Any,
    ) -> None:
        if page_size is not None:
            context["page_size"] = page_size
        super().__init__(message, **context)


# =============================================================================
# Preference Errors
# =============================================================================


class PreferenceError(CortexError):
    """Base exception for preference store operations."""

    pass


class PreferenceReadError(PreferenceError):
    """Failed to read the preference store."""

    def __init__(
        self,
        message: str = "Failed to read preferences",
        *,
        path: Optional[str] = None,
        **context: Any,
    ) -> None:
        if path:
            context["path"] = path
        super().__init__(message, **context)


class PreferenceWriteError(PreferenceError):
    """Failed to write the preference store."""

    def __init__(
        self,
        message: str = "Failed to write preferences",
        *,
        path: Optional[str] = None,
        **context: Any,
    ) -> None:
        if path:
            context["path"] = path
        super().__init__(message, retryable=True, **context)


# =============================================================================
# Remote Mutation Errors
# =============================================================================


class RemoteMutationError(CortexError):
    """One or more remote calls in a mutation batch failed.

    The batch is rolled back as a whole, so ``failures`` lists every id
    whose remote call failed, keyed to the underlying exception.
    """

    def __init__(
        self,
        operation: str,
        failures: Dict[str, BaseException],
        message: Optional[str] = None,
    ) -> None:
        self.operation = operation
        self.failures = dict(failures)
        if message is None:
            noun = "item" if len(self.failures) == 1 else "items"
            message = f"Failed to {operation} {len(self.failures)} {noun}"
        super().__init__(message, operation=operation, ids=sorted(self.failures))


# =============================================================================
# Drag & Library Errors
# =============================================================================


class DragStateError(CortexError):
    """A drag transition is not allowed from the current state."""

    def __init__(
        self,
        message: str = "A drag is already in progress",
        *,
        active_id: Optional[str] = None,
        **context: Any,
    ) -> None:
        if active_id is not None:
            context["active_id"] = active_id
        super().__init__(message, **context)


class LibraryFileError(CortexError):
    """A library file could not be read or parsed."""

    def __init__(
        self,
        message: str = "Failed to load library",
        *,
        path: Optional[str] = None,
        **context: Any,
    ) -> None:
        if path:
            context["path"] = path
        super().__init__(message, **context)
