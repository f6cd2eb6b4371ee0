"""Execution context passed to each invocation."""

import os
from dataclasses import dataclass, field, replace
from typing import Dict, Mapping, Optional


@dataclass(frozen=True)
class ExecutionContext:
    """Working directory, environment and output sink for invocations.

    The context is handed to the process runner instead of changing the
    interpreter's own working directory or environment, so two pipelines
    in the same process never see each other's settings.

    Parameters
    ----------
    cwd : str, optional
        Directory the invocation runs in. None inherits the current one.
    env : mapping, optional
        Variables overlaid on the inherited environment.
    stdout : str, optional
        File that receives invocation stdout (appended). None leaves
        stdout unredirected.
    """

    cwd: Optional[str] = None
    env: Optional[Mapping[str, str]] = field(default=None)
    stdout: Optional[str] = None

    def environment(self) -> Dict[str, str]:
        """Return the full environment for a child process."""
        merged = dict(os.environ)
        if self.env:
            merged.update({str(k): str(v) for k, v in self.env.items()})
        return merged

    def with_env(self, **variables: str) -> "ExecutionContext":
        """Return a copy with additional environment variables."""
        env = dict(self.env or {})
        env.update(variables)
        return replace(self, env=env)
