"""
Test Executor Module
====================

Unit tests for running reactions. Shell and command reactions start
real processes through /bin/sh.
"""

import shutil
import pytest
from pathlib import Path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from services.executor import Executor, ExecResult, ResultKind, is_veto, SHELL_ARGV0
from rules.actions import ChatMode, Reaction, ReactionKind
from core.exceptions import ProcessSpawnError

pytestmark = pytest.mark.skipif(
    not Path("/bin/sh").exists(), reason="needs a POSIX shell"
)


def shell(script: str) -> Reaction:
    return Reaction(ReactionKind.SHELL, script)


def command(line: str) -> Reaction:
    return Reaction(ReactionKind.COMMAND, line)


@pytest.fixture
def executor():
    return Executor(shell="/bin/sh", timeout=10)


def run(executor, reaction, mode=ChatMode.CHANNEL, text="hi", user="alice", uid="uid-1"):
    return executor.execute(reaction, mode, text, user, uid)


class TestIsVeto:
    """Tests for exit status classification."""

    @pytest.mark.parametrize("code", [255, 0xFFFFFFFF, -9, -15])
    def test_veto(self, code):
        assert is_veto(code)

    @pytest.mark.parametrize("code", [0, 1, 2, 127, 254])
    def test_not_veto(self, code):
        assert not is_veto(code)


class TestResponseReactions:
    """Plain responses need no process."""

    def test_respond(self, executor):
        result = run(executor, Reaction(ReactionKind.RESPONSE, "Ask away"))
        assert result.kind is ResultKind.RESPOND
        assert result.text == "Ask away"
        assert result.returncode is None

    def test_empty_is_silent(self, executor):
        result = run(executor, Reaction(ReactionKind.RESPONSE, ""))
        assert result.kind is ResultKind.SILENT

    def test_no_argv_for_response(self, executor):
        with pytest.raises(ValueError):
            executor.build_argv(Reaction(ReactionKind.RESPONSE, "x"), [])


class TestShellReactions:
    """Tests for shell snippets."""

    def test_output_is_response(self, executor):
        result = run(executor, shell("echo hello"))
        assert result.kind is ResultKind.RESPOND
        assert result.text == "hello"
        assert result.returncode == 0

    def test_nonzero_exit_still_responds(self, executor):
        """Only 255 vetoes, other failures keep their output."""
        result = run(executor, shell("echo oops; exit 3"))
        assert result.kind is ResultKind.RESPOND
        assert result.text == "oops"
        assert result.returncode == 3

    def test_multiline_output(self, executor):
        result = run(executor, shell("printf 'a\\nb\\n\\n'"))
        assert result.text == "a\nb"

    def test_no_output_is_silent(self, executor):
        result = run(executor, shell("true"))
        assert result.kind is ResultKind.SILENT

    def test_whitespace_output_is_silent(self, executor):
        result = run(executor, shell("echo '   '"))
        assert result.kind is ResultKind.SILENT

    def test_stderr_is_not_a_response(self, executor):
        result = run(executor, shell("echo problem >&2"))
        assert result.kind is ResultKind.SILENT

    def test_exit_255_vetoes(self, executor):
        """Output of a vetoing process is discarded."""
        result = run(executor, shell("echo ignored; exit 255"))
        assert result.kind is ResultKind.VETO
        assert result.text == ""

    @pytest.mark.skipif(shutil.which("bash") is None, reason="needs bash")
    def test_exit_minus_one_vetoes(self):
        executor = Executor(shell=shutil.which("bash"))
        result = run(executor, shell("exit -1"))
        assert result.kind is ResultKind.VETO
        assert result.returncode == 255

    def test_killed_by_signal_vetoes(self, executor):
        result = run(executor, shell("kill -9 $$"))
        assert result.kind is ResultKind.VETO
        assert result.returncode < 0

    def test_positional_arguments(self, executor):
        result = run(
            executor,
            shell('echo "$1|$2|$3|$4"'),
            mode=ChatMode.CLIENT,
            text="hi there",
            user="alice",
            uid="uid-1",
        )
        assert result.text == "client|hi there|alice|uid-1"

    def test_unknown_uid_is_empty(self, executor):
        result = run(executor, shell('echo "[$4]"'), uid=None)
        assert result.text == "[]"

    def test_argv0(self, executor):
        result = run(executor, shell('echo "$0"'))
        assert result.text == SHELL_ARGV0

    def test_message_text_is_not_interpreted(self, executor):
        """Message text arrives as an argument, never as shell code."""
        result = run(executor, shell('echo "$2"'), text="$(echo injected); rm -rf /tmp/x")
        assert result.text == "$(echo injected); rm -rf /tmp/x"


class TestCommandReactions:
    """Tests for direct commands."""

    def test_arguments_appended(self, executor):
        result = run(executor, command("printf '%s;'"), mode=ChatMode.POKE, text="a b")
        assert result.kind is ResultKind.RESPOND
        assert result.text == "poke;a b;alice;uid-1;"

    def test_build_argv(self, executor):
        argv = executor.build_argv(command("fortune -s 'short ones'"), ["channel", "hi", "bob", ""])
        assert argv == ["fortune", "-s", "short ones", "channel", "hi", "bob", ""]

    def test_missing_program(self, executor):
        result = run(executor, command("/nonexistent/simple-bot-program"))
        assert result.kind is ResultKind.ERROR
        assert isinstance(result.error, ProcessSpawnError)
        assert "/nonexistent/simple-bot-program" in result.error.message

    def test_nul_byte_in_message(self, executor):
        """Text that cannot be a process argument is an error, not a crash."""
        result = run(executor, shell('echo "$2"'), text="a\x00b")
        assert result.kind is ResultKind.ERROR
        assert isinstance(result.error, ProcessSpawnError)

    def test_timeout(self):
        executor = Executor(shell="/bin/sh", timeout=0.5)
        result = run(executor, shell("exec sleep 5"))
        assert result.kind is ResultKind.ERROR
        assert "timed out" in result.error.message


class TestExecResult:
    """Tests for result constructors."""

    def test_constructors(self):
        assert ExecResult.respond("x").kind is ResultKind.RESPOND
        assert ExecResult.silent().kind is ResultKind.SILENT
        assert ExecResult.veto(255).returncode == 255
        error = ProcessSpawnError("boom")
        assert ExecResult.failed(error).error is error
