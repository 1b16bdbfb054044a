"""
Executor - Turn a reaction into output
======================================

Plain responses are returned as they are. Command and shell reactions
spawn an external process with four positional arguments appended:

    chat_mode  message_text  username  user_uid (empty if unknown)

and capture its standard output. The exit status decides how the
dispatcher continues:

- 255 (what `exit -1` becomes) or killed by a signal: veto, try the next action
- empty output: handled silently
- anything else: respond with the output, whatever the status
"""

import shlex
import subprocess
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from core.config import default_shell
from core.exceptions import ProcessSpawnError
from core.logging import get_logger
from rules.actions import ChatMode, Reaction, ReactionKind

logger = get_logger("services.executor")

# `exit -1` as seen by the parent on POSIX and on Windows
VETO_EXIT_CODES = frozenset({255, 0xFFFFFFFF})
SHELL_ARGV0 = "simple-bot"


class ResultKind(Enum):
    """Outcome of executing a reaction."""
    RESPOND = "respond"
    SILENT = "silent"
    VETO = "veto"
    ERROR = "error"


@dataclass
class ExecResult:
    """
    Result of executing a reaction.

    Attributes:
        kind (ResultKind): How the dispatcher should continue
        text (str): Response text for RESPOND
        error (ProcessSpawnError): Cause for ERROR
        returncode (int): Exit status of the process, if one ran
    """
    kind: ResultKind
    text: str = ""
    error: Optional[ProcessSpawnError] = None
    returncode: Optional[int] = None

    @classmethod
    def respond(cls, text: str, returncode: Optional[int] = None) -> "ExecResult":
        return cls(ResultKind.RESPOND, text=text, returncode=returncode)

    @classmethod
    def silent(cls, returncode: Optional[int] = None) -> "ExecResult":
        return cls(ResultKind.SILENT, returncode=returncode)

    @classmethod
    def veto(cls, returncode: Optional[int] = None) -> "ExecResult":
        return cls(ResultKind.VETO, returncode=returncode)

    @classmethod
    def failed(cls, error: ProcessSpawnError) -> "ExecResult":
        return cls(ResultKind.ERROR, error=error)


def is_veto(returncode: int) -> bool:
    """True for the reserved `exit -1` status or death by signal."""
    return returncode < 0 or returncode in VETO_EXIT_CODES


class Executor:
    """
    Runs reactions synchronously.

    Example:
        executor = Executor(timeout=10)
        result = executor.execute(action.reaction, ChatMode.CHANNEL, "hi", "alice")
        if result.kind is ResultKind.RESPOND:
            print(result.text)
    """

    def __init__(self, shell: Optional[str] = None, timeout: Optional[float] = None):
        """
        Args:
            shell: Shell used for shell reactions (bash if found, else /bin/sh)
            timeout: Seconds before a process is killed, None to wait forever
        """
        self.shell = shell or default_shell()
        self.timeout = timeout

    @staticmethod
    def positional_args(
        chat_mode: ChatMode,
        message_text: str,
        username: str,
        user_uid: Optional[str] = None
    ) -> List[str]:
        return [chat_mode.value, message_text, username, user_uid or ""]

    def build_argv(self, reaction: Reaction, args: List[str]) -> List[str]:
        """Command line for a command or shell reaction."""
        if reaction.kind is ReactionKind.COMMAND:
            return shlex.split(reaction.value) + args
        if reaction.kind is ReactionKind.SHELL:
            return [self.shell, "-c", reaction.value, SHELL_ARGV0] + args
        raise ValueError(f"{reaction.kind.value} reactions do not run a process")

    def execute(
        self,
        reaction: Reaction,
        chat_mode: ChatMode,
        message_text: str,
        username: str,
        user_uid: Optional[str] = None
    ) -> ExecResult:
        """
        Execute a response, command or shell reaction.

        Never raises for process failures; those come back as ERROR
        results carrying a ProcessSpawnError.
        """
        if reaction.kind is ReactionKind.RESPONSE:
            if not reaction.value:
                return ExecResult.silent()
            return ExecResult.respond(reaction.value)

        args = self.positional_args(chat_mode, message_text, username, user_uid)
        return self._run(self.build_argv(reaction, args))

    def _run(self, argv: List[str]) -> ExecResult:
        logger.debug("Running process", extra={"argv": argv})

        try:
            completed = subprocess.run(
                argv,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                timeout=self.timeout
            )
        except subprocess.TimeoutExpired:
            return ExecResult.failed(ProcessSpawnError(
                f"Process timed out after {self.timeout}s and was killed",
                {"program": argv[0], "timeout": self.timeout}
            ))
        except OSError as e:
            return ExecResult.failed(ProcessSpawnError(
                f"Failed to start {argv[0]}: {e.strerror or e}",
                {"program": argv[0], "errno": e.errno}
            ))
        except (ValueError, TypeError) as e:
            # e.g. a NUL byte in the message text
            return ExecResult.failed(ProcessSpawnError(
                f"Cannot pass arguments to {argv[0]}: {e}",
                {"program": argv[0]}
            ))

        returncode = completed.returncode
        stderr = completed.stderr.decode("utf-8", errors="replace").strip()
        if stderr:
            logger.warning(
                f"{argv[0]} wrote to stderr",
                extra={"returncode": returncode, "stderr": stderr}
            )

        if is_veto(returncode):
            logger.debug("Process vetoed the action", extra={"returncode": returncode})
            return ExecResult.veto(returncode)

        output = completed.stdout.decode("utf-8", errors="replace").rstrip()
        if not output.strip():
            return ExecResult.silent(returncode)
        return ExecResult.respond(output, returncode)
