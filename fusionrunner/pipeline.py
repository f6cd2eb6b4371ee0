"""Sequential, resumable execution of pipeline steps.

A Pipeline runs its Commands one at a time in the order they were appended.
Before running a Command it looks for that Command's completion marker; if
the marker is present the step is skipped. After a successful run the
marker is written before the next step starts. The first failing step stops
the pipeline with an ExecutionError and leaves no marker behind, so a later
run resumes at exactly that step.
"""

import logging
import time
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import pandas as pd

from .command import Command
from .context import ExecutionContext
from .errors import ConfigurationError, ExecutionError, MarkerIOError
from .markers import MarkerStore
from .runner import run_invocation

logger = logging.getLogger("fusionrunner")

# Verbosity levels
QUIET = 0
NORMAL = 1
VERBOSE = 2

# Step outcomes
SKIPPED = "skipped"
SUCCEEDED = "succeeded"


@dataclass
class StepOutcome:
    """Result of one step within a successful run."""

    name: str
    marker_id: str
    status: str
    duration: float = 0.0


class Pipeline:
    """Ordered executor of Commands with marker-based resumability."""

    def __init__(
        self,
        marker_dir: str,
        verbosity: int = NORMAL,
        context: Optional[ExecutionContext] = None,
        verify_invocation: bool = False,
        shell: str = "bash",
    ):
        """Initialize the pipeline.

        Parameters
        ----------
        marker_dir : str
            Directory holding completion markers, usually the output directory
        verbosity : int
            QUIET, NORMAL or VERBOSE. Only affects what is logged.
        context : ExecutionContext, optional
            Default working directory, environment and stdout sink
        verify_invocation : bool
            Treat a marker whose recorded invocation differs from the
            current one as absent, re-running the step
        shell : str
            Shell used for string invocations
        """
        if verbosity not in (QUIET, NORMAL, VERBOSE):
            raise ConfigurationError(f"Unknown verbosity level: {verbosity!r}")
        self.markers = MarkerStore(marker_dir)
        self.verbosity = verbosity
        self.context = context or ExecutionContext()
        self.verify_invocation = verify_invocation
        self.shell = shell
        self._steps: List[Command] = []

    @property
    def steps(self) -> Tuple[Command, ...]:
        """Commands in execution order."""
        return tuple(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    def append(self, command: Command) -> "Pipeline":
        """Add a Command to the end of the pipeline."""
        if not isinstance(command, Command):
            raise ConfigurationError(
                f"Pipeline steps must be Command objects, got {type(command).__name__}"
            )
        self._steps.append(command)
        return self

    def extend(self, commands: Iterable[Command]) -> "Pipeline":
        """Append several Commands in order."""
        for command in commands:
            self.append(command)
        return self

    def _notice(self, level: int, message: str, *args) -> None:
        if self.verbosity >= level:
            logger.info(message, *args)

    def is_complete(self, command: Command) -> bool:
        """Check whether a step's marker proves it already succeeded."""
        if not self.markers.exists(command.marker_id):
            return False

        # Marker content is informational unless invocations are verified
        try:
            record = self.markers.read(command.marker_id)
        except MarkerIOError as e:
            if self.verify_invocation:
                raise
            logger.debug(f"Cannot read marker content, trusting its presence: {e}")
            return True
        recorded_hash = record.get("invocation_hash")
        if recorded_hash is None or recorded_hash == command.invocation_hash:
            return True

        if self.verify_invocation:
            logger.warning(
                f"Invocation for step '{command.name}' changed since marker "
                f"'{command.marker_id}' was written; re-running"
            )
            return False
        logger.warning(
            f"Invocation for step '{command.name}' changed since marker "
            f"'{command.marker_id}' was written; skipping anyway "
            f"(remove {self.markers.path(command.marker_id)} to re-run)"
        )
        return True

    def pending(self) -> List[Command]:
        """Return the Commands that the next run would execute."""
        return [command for command in self._steps if not self.is_complete(command)]

    def run(self, context: Optional[ExecutionContext] = None) -> List[StepOutcome]:
        """Execute all steps in order, skipping those already completed.

        Parameters
        ----------
        context : ExecutionContext, optional
            Overrides the pipeline's default context for this run

        Returns
        -------
        List[StepOutcome]
            One outcome per step, in execution order

        Raises
        ------
        ExecutionError
            If a step exits with a failure status. Later steps do not run.
        MarkerIOError
            If a marker cannot be checked or written.
        """
        context = context or self.context
        outcomes: List[StepOutcome] = []
        total = len(self._steps)

        for index, command in enumerate(self._steps, start=1):
            if self.is_complete(command):
                self._notice(
                    NORMAL,
                    "[%d/%d] Skipping completed step '%s' (marker %s)",
                    index,
                    total,
                    command.name,
                    command.marker_id,
                )
                outcomes.append(StepOutcome(command.name, command.marker_id, SKIPPED))
                continue

            self._notice(NORMAL, "[%d/%d] Running step '%s'", index, total, command.name)
            self._notice(VERBOSE, "  %s", command.text)

            start = time.time()
            returncode = run_invocation(command, context, self.shell)
            duration = time.time() - start

            if returncode != 0:
                logger.error(
                    f"Step '{command.name}' failed with exit status {returncode} "
                    f"after {duration:.2f}s"
                )
                raise ExecutionError(command.marker_id, command.text, returncode, command.name)

            self.markers.create(command, duration)
            self._notice(NORMAL, "Completed step '%s' in %.2fs", command.name, duration)
            outcomes.append(StepOutcome(command.name, command.marker_id, SUCCEEDED, duration))

        return outcomes

    def status(self) -> pd.DataFrame:
        """Tabulate the completion state of every step.

        Returns
        -------
        pd.DataFrame
            Columns: step, marker_id, state ("completed" or "pending"),
            invocation
        """
        rows = [
            {
                "step": command.name,
                "marker_id": command.marker_id,
                "state": "completed" if self.is_complete(command) else "pending",
                "invocation": command.text,
            }
            for command in self._steps
        ]
        return pd.DataFrame(rows, columns=["step", "marker_id", "state", "invocation"])
