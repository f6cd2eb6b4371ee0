"""Completion markers for resumable pipeline runs.

A marker is a small file in the marker directory whose presence proves that
the step with the same marker id has already finished successfully. The
file holds a JSON record of what was run, but only its existence decides
whether a step is skipped.
"""

import json
import logging
import os
import time
import uuid
from typing import Any, Dict, List

from .command import Command
from .errors import MarkerIOError
from .version import __version__

logger = logging.getLogger("fusionrunner")


class MarkerStore:
    """Marker files scoped to one directory."""

    SUFFIX = ".done"

    def __init__(self, directory: str):
        """Initialize the marker store.

        Parameters
        ----------
        directory : str
            Directory where marker files are stored. It is created on the
            first write.
        """
        self.directory = os.path.abspath(directory)

    def path(self, marker_id: str) -> str:
        """Return the marker file path for marker_id."""
        return os.path.join(self.directory, marker_id + self.SUFFIX)

    def exists(self, marker_id: str) -> bool:
        """Check whether the marker for marker_id is present.

        Raises
        ------
        MarkerIOError
            If the marker location cannot be inspected.
        """
        path = self.path(marker_id)
        try:
            os.stat(path)
        except FileNotFoundError:
            return False
        except OSError as e:
            raise MarkerIOError(marker_id, path, e)
        return True

    def read(self, marker_id: str) -> Dict[str, Any]:
        """Return the recorded content of a marker.

        Markers written by hand (for example with ``touch``) or by other
        tools may hold anything; an empty dict is returned unless the
        content is a JSON object.
        """
        path = self.path(marker_id)
        try:
            with open(path, "rb") as f:
                content = f.read()
        except OSError as e:
            raise MarkerIOError(marker_id, path, e)

        if not content.strip():
            return {}
        try:
            record = json.loads(content.decode("utf-8"))
        except ValueError:
            # Covers both undecodable bytes and malformed JSON
            logger.debug(f"Marker {path} does not contain a JSON record")
            return {}
        return record if isinstance(record, dict) else {}

    def create(self, command: Command, duration: float = 0.0) -> str:
        """Write the marker for command atomically.

        The record is written to a temporary file in the marker directory
        and renamed into place, so a crash never leaves a partial marker.

        Returns
        -------
        str
            Path of the marker file.

        Raises
        ------
        MarkerIOError
            If the directory or the marker file cannot be written.
        """
        path = self.path(command.marker_id)
        record = {
            "marker_id": command.marker_id,
            "name": command.name,
            "invocation": command.text,
            "invocation_hash": command.invocation_hash,
            "completed_at": time.time(),
            "duration": round(duration, 3),
            "version": __version__,
        }

        temp_file = f"{path}.tmp.{uuid.uuid4().hex[:8]}"
        try:
            os.makedirs(self.directory, exist_ok=True)
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(record, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_file, path)
        except OSError as e:
            if os.path.exists(temp_file):
                try:
                    os.remove(temp_file)
                except OSError:
                    logger.debug(f"Could not remove temporary marker {temp_file}")
            raise MarkerIOError(command.marker_id, path, e)

        logger.debug(f"Wrote marker {path}")
        return path

    def list(self) -> List[str]:
        """Return the ids of all markers present, sorted by name."""
        try:
            names = os.listdir(self.directory)
        except FileNotFoundError:
            return []
        except OSError as e:
            raise MarkerIOError("*", self.directory, e)
        return sorted(
            name[: -len(self.SUFFIX)]
            for name in names
            if name.endswith(self.SUFFIX)
        )

    def __repr__(self) -> str:
        return f"MarkerStore({self.directory!r})"
