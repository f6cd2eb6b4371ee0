"""
Build pipeline Commands from the step templates in the configuration.

Each entry of ``config["steps"]`` describes one external tool invocation:

- ``name``: step label used in logs and status reports
- ``marker``: completion marker id (defaults to ``name``)
- ``tool``: executable that must be on PATH for the step to run
- ``template``: jinja2 template of the shell command line

Templates are rendered with the run parameters (reads, output_dir, threads,
genome_dir, ...). Values inserted into a command line should be passed
through the ``quote`` filter.
"""

import logging
import shlex
from typing import Any, Dict, List

from jinja2 import Environment, StrictUndefined, TemplateError, UndefinedError

from .command import Command
from .errors import ConfigurationError

logger = logging.getLogger("fusionrunner")


def _quote(value: Any) -> str:
    return shlex.quote(str(value))


def create_environment() -> Environment:
    """Return the jinja2 environment used for step templates."""
    env = Environment(
        undefined=StrictUndefined, autoescape=False, trim_blocks=True, lstrip_blocks=True
    )
    env.filters["quote"] = _quote
    return env


def render_step(step: Dict[str, Any], params: Dict[str, Any], env: Environment = None) -> Command:
    """
    Render one step definition into a Command.

    Parameters
    ----------
    step : dict
        Step definition with name, marker, tool and template keys.
    params : dict
        Values available to the template.
    env : jinja2.Environment, optional
        Environment to render with; created if not given.

    Returns
    -------
    Command
        The rendered step.

    Raises
    ------
    ConfigurationError
        If the definition is incomplete, the template is invalid or refers
        to a parameter that was not provided.
    """
    env = env or create_environment()
    name = step.get("name")
    template_text = step.get("template")
    if not name or not template_text:
        raise ConfigurationError(f"Step definition needs 'name' and 'template': {step}")

    try:
        invocation = env.from_string(template_text).render(**params)
    except UndefinedError as e:
        raise ConfigurationError(f"Step '{name}' template uses an unset parameter: {e}", name)
    except TemplateError as e:
        raise ConfigurationError(f"Step '{name}' template is invalid: {e}", name)

    invocation = invocation.strip()
    logger.debug(f"Rendered step '{name}': {invocation}")
    return Command(invocation, step.get("marker") or name, name=name)


def build_steps(config: Dict[str, Any], params: Dict[str, Any]) -> List[Command]:
    """
    Render all configured steps in order.

    Configuration values are available to templates as defaults and are
    overridden by params.

    Parameters
    ----------
    config : dict
        Configuration containing a ``steps`` list.
    params : dict
        Run parameters, usually taken from the command line.

    Returns
    -------
    List[Command]
        Commands in execution order.
    """
    steps = config.get("steps")
    if not isinstance(steps, list) or not steps:
        raise ConfigurationError("Configuration does not define any steps")

    values = {k: v for k, v in config.items() if k != "steps"}
    values.update({k: v for k, v in params.items() if v is not None})

    env = create_environment()
    commands = [render_step(step, values, env) for step in steps]

    seen = set()
    for command in commands:
        if command.marker_id in seen:
            raise ConfigurationError(
                f"Marker '{command.marker_id}' is used by more than one step", command.name
            )
        seen.add(command.marker_id)
    return commands


def required_tools(config: Dict[str, Any]) -> List[str]:
    """Return the executables named by the configured steps, in order, without duplicates."""
    tools = []
    for step in config.get("steps") or []:
        tool = step.get("tool")
        if tool and tool not in tools:
            tools.append(tool)
    return tools
