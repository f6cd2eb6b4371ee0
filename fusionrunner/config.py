# File: fusionrunner/config.py
# Location: fusionrunner/fusionrunner/config.py

"""
Configuration management module.

This module handles loading configuration from a JSON file.
All default values, including the step templates of the default
align / call / filter pipeline, reside in config.json, which is
included in the installed package directory.
"""

import json
import os
from typing import Any, Dict, Optional


def load_config(config_file: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from a JSON file.

    If no config_file is provided, the function loads the 'config.json'
    from the installed package directory.

    Parameters
    ----------
    config_file : str, optional
        Path to a configuration file in JSON format. If None, defaults to
        the package-installed 'config.json'.

    Returns
    -------
    dict
        Configuration dictionary loaded from the JSON file.

    Raises
    ------
    FileNotFoundError
        If the specified configuration file does not exist.
    ValueError
        If there is an error parsing the JSON configuration file.
    """
    if not config_file:
        config_file = os.path.join(os.path.dirname(__file__), "config.json")

    if not os.path.exists(config_file):
        raise FileNotFoundError(f"Configuration file '{config_file}' not found.")

    with open(config_file, "r", encoding="utf-8") as f:
        try:
            config = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Error parsing JSON configuration: {e}")

    if not isinstance(config, dict):
        raise ValueError("Configuration file must contain a JSON object")
    validate_steps(config.get("steps"), config_file)
    return config


def validate_steps(steps: Any, source: str) -> None:
    """
    Check the shape of the ``steps`` list of a configuration.

    Each step must be an object with a non-empty ``name`` and ``template``;
    ``marker`` and ``tool`` are optional strings.

    Raises
    ------
    ValueError
        Naming the offending step, so a broken configuration is reported
        before any template is rendered.
    """
    if not isinstance(steps, list) or not steps:
        raise ValueError(f"Configuration '{source}' must define a non-empty 'steps' list")

    for index, step in enumerate(steps, start=1):
        if not isinstance(step, dict):
            raise ValueError(f"Step {index} in '{source}' must be a JSON object")
        label = step.get("name") or f"#{index}"
        for key in ("name", "template"):
            if not isinstance(step.get(key), str) or not step[key].strip():
                raise ValueError(f"Step {label} in '{source}' needs a non-empty '{key}'")
        for key in ("marker", "tool"):
            if key in step and not isinstance(step[key], str):
                raise ValueError(f"Step {label} in '{source}' has a non-string '{key}'")
