# File: fusionrunner/__init__.py
# Location: fusionrunner/fusionrunner/__init__.py

"""
fusionrunner Package.

This package drives a resumable sequence of external analysis tools
(read alignment, fusion calling and fusion filtering). Each step leaves a
completion marker in the output directory so that a failed run can be
restarted without repeating finished work.
"""

from .command import Command
from .context import ExecutionContext
from .errors import ConfigurationError, ExecutionError, MarkerIOError, PipelineError
from .pipeline import NORMAL, QUIET, VERBOSE, Pipeline, StepOutcome
from .version import __version__

__all__ = [
    "Command",
    "ConfigurationError",
    "ExecutionContext",
    "ExecutionError",
    "MarkerIOError",
    "NORMAL",
    "Pipeline",
    "PipelineError",
    "QUIET",
    "StepOutcome",
    "VERBOSE",
    "__version__",
]
