"""Tests for process execution of pipeline steps."""

import os

import pytest

from fusionrunner.command import Command
from fusionrunner.context import ExecutionContext
from fusionrunner.errors import ConfigurationError
from fusionrunner.runner import EXIT_NOT_FOUND, build_argv, run_invocation


class TestBuildArgv:
    """Test how invocations are turned into argument vectors."""

    def test_shell_string_uses_pipefail(self):
        """Shell strings run through the shell with pipefail enabled."""
        argv = build_argv(Command("a | b", "m1"))
        assert argv == ["bash", "-o", "pipefail", "-c", "a | b"]

    def test_custom_shell(self):
        """The shell executable can be changed."""
        assert build_argv(Command("true", "m1"), shell="zsh")[0] == "zsh"

    def test_argument_vector_runs_directly(self):
        """Argument vectors are executed without a shell."""
        assert build_argv(Command(["echo", "$HOME"], "m1")) == ["echo", "$HOME"]


class TestRunInvocation:
    """Test exit status handling."""

    def test_success(self):
        """A successful command returns 0."""
        assert run_invocation(Command("true", "m1")) == 0

    def test_failure_status(self):
        """The exit status of a failing command is returned."""
        assert run_invocation(Command("exit 3", "m1")) == 3

    def test_pipeline_failure_in_first_stage(self):
        """A failing stage before the last one fails the step."""
        assert run_invocation(Command("false | cat", "m1")) != 0

    def test_pipeline_success(self):
        """A pipeline where every stage succeeds returns 0."""
        assert run_invocation(Command("echo x | cat > /dev/null", "m1")) == 0

    def test_argument_vector_failure(self):
        """Argument vectors report their own exit status."""
        assert run_invocation(Command(["false"], "m1")) == 1

    def test_missing_program(self):
        """A program that does not exist reports 127."""
        command = Command(["fusionrunner-no-such-tool-xyz"], "m1")
        assert run_invocation(command) == EXIT_NOT_FOUND

    def test_missing_program_in_shell(self):
        """The shell reports 127 for an unknown command."""
        assert run_invocation(Command("fusionrunner-no-such-tool-xyz", "m1")) == 127

    def test_killed_by_signal(self):
        """A process killed by a signal returns a negative status."""
        assert run_invocation(Command(["sh", "-c", "kill -TERM $$"], "m1")) < 0


class TestExecutionContext:
    """Test that the context is honoured without touching global state."""

    def test_working_directory(self, tmp_path):
        """Invocations run in the context's working directory."""
        cwd_before = os.getcwd()
        context = ExecutionContext(cwd=str(tmp_path))
        assert run_invocation(Command("touch created_here", "m1"), context) == 0
        assert (tmp_path / "created_here").exists()
        assert os.getcwd() == cwd_before

    def test_environment_overlay(self, tmp_path):
        """Context variables are added to the inherited environment."""
        out = tmp_path / "env.txt"
        context = ExecutionContext(env={"FUSION_SAMPLE": "S1"})
        command = Command(f'echo "$FUSION_SAMPLE:$PATH" > {out}', "m1")
        assert run_invocation(command, context) == 0
        sample, path = out.read_text().strip().split(":", 1)
        assert sample == "S1"
        assert path == os.environ["PATH"]
        assert "FUSION_SAMPLE" not in os.environ

    def test_with_env(self):
        """with_env returns a new context and leaves the original alone."""
        base = ExecutionContext(env={"A": "1"})
        extended = base.with_env(B="2")
        assert dict(extended.env) == {"A": "1", "B": "2"}
        assert dict(base.env) == {"A": "1"}

    def test_stdout_sink_appends(self, tmp_path):
        """Stdout goes to the sink file, appending across steps."""
        sink = tmp_path / "tools.log"
        context = ExecutionContext(stdout=str(sink))
        run_invocation(Command("echo first", "m1"), context)
        run_invocation(Command(["echo", "second"], "m2"), context)
        assert sink.read_text() == "first\nsecond\n"

    def test_unopenable_stdout_sink(self, tmp_path):
        """A sink that cannot be opened is a configuration error."""
        context = ExecutionContext(stdout=str(tmp_path / "missing" / "tools.log"))
        with pytest.raises(ConfigurationError):
            run_invocation(Command("true", "m1"), context)
