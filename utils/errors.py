"""
SCRIPTBOARD error taxonomy.

Table-scoped errors abort the whole operation and leave prior state untouched.
Row-scoped errors (GenerationError and subclasses) are captured into the
row's ``error`` field by the batch orchestrator and never reach sibling rows.
"""

from typing import Optional


class ScriptboardError(Exception):
    """Base class for all scriptboard errors."""


class TableImportError(ScriptboardError):
    """Source table is empty or malformed. Nothing is committed."""


class ReplaceConfirmationRequired(ScriptboardError):
    """An import would replace a non-empty table without confirmation."""

    def __init__(self, row_count: int):
        self.row_count = row_count
        super().__init__(
            f"This will replace the current script ({row_count} rows). "
            "Pass confirm_replace=True to continue."
        )


class ProjectLoadError(ScriptboardError):
    """Project payload is not structurally usable. Nothing is committed."""


class GenerationError(ScriptboardError):
    """An external generation call did not produce a usable result."""


class GenerationBlocked(GenerationError):
    """
    The model answered but returned no asset.

    The message is rendered at capture time from the finish reason, any text
    the model sent instead, and the safety annotations.
    """

    def __init__(self, message: str, reason: Optional[str] = None, detail: Optional[str] = None):
        self.reason = reason
        self.detail = detail
        super().__init__(message)


class GenerationTransportError(GenerationError):
    """Network or API level failure while calling the model."""
