# File: fusionrunner/utils.py
# Location: fusionrunner/fusionrunner/utils.py

"""
Utility functions module.

Provides helper functions for checking tool availability and retrieving
tool versions for the run log.
"""

import logging
import shutil
import subprocess
from typing import List

from .errors import ToolNotFoundError

logger = logging.getLogger("fusionrunner")


def check_external_tools(tools: List[str]) -> None:
    """
    Check that external tools are available in PATH.

    Parameters
    ----------
    tools : List[str]
        List of tool names to check for availability

    Raises
    ------
    ToolNotFoundError
        For the first tool that cannot be found.
    """
    for tool in tools:
        if not shutil.which(tool):
            logger.error(f"Required tool not found in PATH: {tool}")
            raise ToolNotFoundError(tool)
        logger.debug(f"Found tool in PATH: {tool}")


def get_tool_version(tool_name: str) -> str:
    """
    Retrieve the version of a given tool.

    Supported tools:

    - STAR
    - STAR-Fusion
    - awk

    Parameters
    ----------
    tool_name : str
        Name of the tool to retrieve version for.

    Returns
    -------
    str
        Version string or 'N/A' if not found or cannot be retrieved.
    """

    def first_line(stdout, stderr):
        for line in (stdout + "\n" + stderr).splitlines():
            if line.strip():
                return line.strip()
        return "N/A"

    def parse_star_fusion(stdout, stderr):
        for line in (stdout + "\n" + stderr).splitlines():
            if "version" in line.lower():
                return line.strip()
        return "N/A"

    tool_map = {
        "STAR": {"command": ["STAR", "--version"], "parse_func": first_line},
        "STAR-Fusion": {
            "command": ["STAR-Fusion", "--version"],
            "parse_func": parse_star_fusion,
        },
        "awk": {"command": ["awk", "--version"], "parse_func": first_line},
    }

    if tool_name not in tool_map:
        logger.debug("No version retrieval logic for %s. Returning 'N/A'.", tool_name)
        return "N/A"

    cmd = tool_map[tool_name]["command"]
    parse_func = tool_map[tool_name]["parse_func"]

    try:
        result = subprocess.run(
            cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True, check=False
        )
        # mawk and BSD awk reject --version and print usage instead
        if result.returncode != 0:
            logger.warning(
                "Version query for %s exited with status %d. Returning 'N/A'.",
                tool_name,
                result.returncode,
            )
            return "N/A"
        version = parse_func(result.stdout, result.stderr)
        if version == "N/A":
            logger.warning("Could not parse version for %s. Returning 'N/A'.", tool_name)
        return version
    except OSError as e:
        logger.warning("Failed to retrieve version for %s: %s", tool_name, e)
        return "N/A"
