"""
Process execution for pipeline steps.

Shell-command strings are run through a shell with ``pipefail`` enabled so
that a failing stage anywhere in a ``a | b | c`` pipeline fails the whole
step, not only when the last stage fails. Argument vectors are executed
directly without a shell.
"""

import errno
import logging
import subprocess
from typing import List, Optional

from .command import Command
from .context import ExecutionContext
from .errors import ConfigurationError

logger = logging.getLogger("fusionrunner")

# Exit statuses a POSIX shell reports for programs that cannot be started
EXIT_NOT_EXECUTABLE = 126
EXIT_NOT_FOUND = 127


def build_argv(command: Command, shell: str = "bash") -> List[str]:
    """
    Return the argument vector used to execute command.

    Parameters
    ----------
    command : Command
        The step to execute.
    shell : str
        Shell used for string invocations. It must understand
        ``-o pipefail`` (bash, zsh, ksh, or a recent dash).

    Returns
    -------
    list of str
        Argument vector for subprocess.
    """
    if command.is_shell:
        return [shell, "-o", "pipefail", "-c", command.invocation]
    return list(command.invocation)


def run_invocation(
    command: Command, context: Optional[ExecutionContext] = None, shell: str = "bash"
) -> int:
    """
    Run a command synchronously and return its exit status.

    Stdout is left attached to the parent process unless the context names
    a sink file, in which case it is appended there. Stderr is always
    inherited so the tool's diagnostics reach the caller's terminal or log.

    Parameters
    ----------
    command : Command
        The step to execute.
    context : ExecutionContext, optional
        Working directory, environment and stdout sink.
    shell : str
        Shell used for string invocations.

    Returns
    -------
    int
        Exit status. Negative values mean the process was killed by a signal.
        126/127 are returned when the program cannot be started.
    """
    context = context or ExecutionContext()
    argv = build_argv(command, shell)
    logger.debug("Running command: %s", " ".join(argv))

    out_f = None
    if context.stdout:
        try:
            out_f = open(context.stdout, "a", encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(
                f"Cannot open stdout sink {context.stdout}: {e}", command.name
            )

    try:
        result = subprocess.run(argv, stdout=out_f, cwd=context.cwd, env=context.environment())
    except FileNotFoundError as e:
        # Raised for a missing program and for a missing cwd alike
        logger.error("Cannot start %s: %s", argv[0], e)
        return EXIT_NOT_FOUND
    except PermissionError as e:
        logger.error("Cannot execute %s: %s", argv[0], e)
        return EXIT_NOT_EXECUTABLE
    except OSError as e:
        if e.errno == errno.ENOEXEC:
            logger.error("Cannot execute %s: %s", argv[0], e)
            return EXIT_NOT_EXECUTABLE
        raise
    finally:
        if out_f is not None:
            out_f.close()

    if result.returncode != 0:
        logger.debug("Command exited with status %d: %s", result.returncode, command.text)
    else:
        logger.debug("Command completed successfully.")
    return result.returncode
