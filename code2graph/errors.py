"""
Error taxonomy for the analysis pipeline.

Per-file problems (``ParseFailure``) are isolated by the caller and never abort
a batch. ``InputValidationError`` is recorded and the offending input is left
out. ``ResourceExhaustedError`` and ``GraphConstructionError`` propagate to the
caller, which is expected to abort.
"""
import traceback
from typing import Any, Dict, Optional


class AnalysisError(Exception):
    """Base class for every error raised by the analyzers."""

    error_type = "validation"

    def __init__(self, message: str, file: Optional[str] = None, stack: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.file = file
        self.stack = stack

    @classmethod
    def from_exception(cls, message: str, error: BaseException, file: Optional[str] = None) -> "AnalysisError":
        """Wrap an unexpected exception, keeping its formatted traceback."""
        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        return cls(f"{message}: {error}", file=file, stack=stack)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data: Dict[str, Any] = {"type": self.error_type, "message": self.message}
        if self.file:
            data["file"] = self.file
        if self.stack:
            data["stack"] = self.stack
        return data


class ParseFailure(AnalysisError):
    """A single file could not be turned into a syntax tree."""

    error_type = "syntax"


class InputValidationError(AnalysisError):
    """Malformed input to a core operation (e.g. a route naming an unknown component)."""

    error_type = "validation"


class ResourceExhaustedError(AnalysisError):
    """The analysis exceeded a configured resource limit."""

    error_type = "system"


class GraphConstructionError(AnalysisError):
    """Graph construction failed; the partial graph must not be used."""

    error_type = "validation"
