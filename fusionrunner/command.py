"""A single external invocation bundled with its completion marker."""

import hashlib
import os
import shlex
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from .errors import ConfigurationError


@dataclass(frozen=True)
class Command:
    """One pipeline step: an invocation plus the marker that proves it succeeded.

    The invocation is either a shell-command string, which is run through a
    shell with pipefail enabled, or an argument vector, which is executed
    directly. Argument vectors are stored as tuples so a Command never
    changes after construction.

    Parameters
    ----------
    invocation : str or sequence of str
        Fully-formed command line or argument vector
    marker_id : str
        Name of the completion marker; must be a plain file name
    name : str, optional
        Label used in logs and status reports, defaults to marker_id
    """

    invocation: Union[str, Tuple[str, ...]]
    marker_id: str
    name: Optional[str] = field(default=None, compare=False)

    def __post_init__(self):
        invocation = self.invocation
        if isinstance(invocation, str):
            if not invocation.strip():
                raise ConfigurationError("Command invocation must not be empty", self.marker_id)
        else:
            try:
                invocation = tuple(invocation)
            except TypeError:
                raise ConfigurationError(
                    f"Command invocation must be a string or a sequence of strings, "
                    f"got {type(self.invocation).__name__}",
                    self.marker_id,
                )
            if not invocation or not invocation[0]:
                raise ConfigurationError("Command invocation must not be empty", self.marker_id)
            if not all(isinstance(arg, str) for arg in invocation):
                raise ConfigurationError(
                    "Command argument vector must contain only strings", self.marker_id
                )
            object.__setattr__(self, "invocation", invocation)

        if not isinstance(self.marker_id, str) or not self.marker_id.strip():
            raise ConfigurationError("Command marker_id must be a non-empty string")
        separators = {os.sep, "/"} | ({os.altsep} if os.altsep else set())
        if any(sep in self.marker_id for sep in separators) or self.marker_id in (".", ".."):
            raise ConfigurationError(
                f"Command marker_id must be a plain file name: {self.marker_id!r}",
                self.marker_id,
            )

        if self.name is None:
            object.__setattr__(self, "name", self.marker_id)

    @property
    def is_shell(self) -> bool:
        """True when the invocation is a shell-command string."""
        return isinstance(self.invocation, str)

    @property
    def text(self) -> str:
        """Return the invocation as it would be typed in a shell."""
        if self.is_shell:
            return self.invocation
        return shlex.join(self.invocation)

    @property
    def invocation_hash(self) -> str:
        """SHA256 of the invocation text, recorded in the marker."""
        return hashlib.sha256(self.text.encode("utf-8")).hexdigest()

    def __str__(self) -> str:
        return f"{self.name}: {self.text}"
