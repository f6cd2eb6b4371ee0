"""Shared pytest fixtures for all test modules."""

import json
import shlex
from pathlib import Path

import pytest

from fusionrunner.command import Command


@pytest.fixture
def marker_dir(tmp_path) -> Path:
    """Directory for completion markers."""
    path = tmp_path / "markers"
    path.mkdir()
    return path


@pytest.fixture
def order_log(tmp_path) -> Path:
    """File that fake steps append their label to when they run."""
    return tmp_path / "order.log"


@pytest.fixture
def logging_command(order_log):
    """Factory for commands that record their execution in order_log."""

    def make(label: str, marker_id: str = None, exit_status: int = 0) -> Command:
        script = f"echo {shlex.quote(label)} >> {shlex.quote(str(order_log))}"
        if exit_status:
            script += f"; exit {exit_status}"
        return Command(script, marker_id or label)

    return make


@pytest.fixture
def read_labels(order_log):
    """Return the labels recorded in order_log, in execution order."""

    def read():
        if not order_log.exists():
            return []
        return order_log.read_text().split()

    return read


@pytest.fixture
def step_config(tmp_path, order_log) -> Path:
    """Configuration file with three fake steps that record their execution."""
    log = shlex.quote(str(order_log))
    config = {
        "threads": 1,
        "steps": [
            {
                "name": "align",
                "marker": "align",
                "tool": "sh",
                "template": "echo align {{ reads | map('quote') | join(' ') }} >> " + log,
            },
            {
                "name": "call_fusions",
                "marker": "call_fusions",
                "tool": "sh",
                "template": (
                    "echo call_fusions >> " + log
                    + " && test ! -e {{ (output_dir ~ '/fail_call') | quote }}"
                ),
            },
            {
                "name": "filter_fusions",
                "marker": "filter_fusions",
                "tool": "sh",
                "template": "echo filter_fusions >> " + log,
            },
        ],
    }
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config))
    return path


@pytest.fixture
def reads_file(tmp_path) -> Path:
    """Small non-empty FASTQ file."""
    path = tmp_path / "sample_R1.fastq"
    path.write_text("@read1\nACGT\n+\nIIII\n")
    return path
