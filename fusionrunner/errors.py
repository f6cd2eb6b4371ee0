"""
Exception classes for the fusionrunner pipeline.

All errors derive from PipelineError, which carries the name of the step
where the error occurred and a dictionary of details for diagnostics.
"""

from typing import Dict, Optional


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str, stage: Optional[str] = None, details: Optional[Dict] = None):
        """Initialize pipeline error.

        Parameters
        ----------
        message : str
            Error message
        stage : str, optional
            Step where error occurred
        details : dict, optional
            Additional error details
        """
        super().__init__(message)
        self.stage = stage
        self.details = details or {}


class ConfigurationError(PipelineError):
    """Raised when a command, step template or driver parameter is malformed."""


class ToolNotFoundError(PipelineError):
    """Raised when a required external tool is not found."""

    def __init__(self, tool: str, stage: Optional[str] = None):
        """Initialize tool not found error."""
        message = f"Required tool '{tool}' not found in PATH"
        super().__init__(message, stage, {"tool": tool})
        self.tool = tool


class ExecutionError(PipelineError):
    """Raised when an invocation exits with a failure status."""

    def __init__(
        self, marker_id: str, invocation: str, returncode: int, stage: Optional[str] = None
    ):
        """Initialize execution error.

        Parameters
        ----------
        marker_id : str
            Marker of the step that failed
        invocation : str
            Display text of the failing invocation
        returncode : int
            Exit status reported for the process (negative for signals)
        stage : str, optional
            Step name, defaults to the marker id
        """
        stage = stage or marker_id
        if returncode < 0:
            status = f"killed by signal {-returncode}"
        else:
            status = f"exit status {returncode}"
        message = f"Step '{stage}' (marker '{marker_id}') failed with {status}: {invocation}"
        super().__init__(
            message,
            stage,
            {"marker_id": marker_id, "invocation": invocation, "returncode": returncode},
        )
        self.marker_id = marker_id
        self.invocation = invocation
        self.returncode = returncode

    def __reduce__(self):
        """Rebuild from constructor arguments when pickled."""
        return (
            self.__class__,
            (self.marker_id, self.invocation, self.returncode, self.stage),
        )


class MarkerIOError(PipelineError):
    """Raised when a completion marker cannot be read or written."""

    def __init__(self, marker_id: str, path: str, original_error: Exception):
        """Initialize marker I/O error."""
        message = f"Cannot access marker '{marker_id}' at {path}: {original_error}"
        super().__init__(
            message,
            marker_id,
            {
                "path": path,
                "original_error": str(original_error),
                "error_type": type(original_error).__name__,
            },
        )
        self.marker_id = marker_id
        self.path = path
        self.original_error = original_error
