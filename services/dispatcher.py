"""
Dispatcher - Pick and run the action for a message
==================================================

Walks all actions in evaluation order (static, builtin, dynamic) and
runs the first one that matches. A veto from a command moves on to the
next action; any other result ends the walk. At most one reply is
produced per message, and only if the rate limiter has a token left.
"""

from dataclasses import dataclass
from typing import Optional

from core.logging import get_logger
from core.rate_limiter import RateLimiter
from rules.actions import Action, ChatMode
from rules.matcher import matches
from rules.store import ActionStore
from .executor import Executor, ExecResult, ResultKind
from .transport import ChatMessage

logger = get_logger("services.dispatcher")


@dataclass
class Reply:
    """A response to send, scoped to the originating chat mode."""
    chat_mode: ChatMode
    target: Optional[str]
    text: str


@dataclass
class DispatchOutcome:
    """
    What happened to a message.

    Attributes:
        action (Action): The action that handled the message, if any
        result (ExecResult): Its execution result
        reply (Reply): Reply to send, None if nothing is sent
        vetoed (int): Number of actions that matched but vetoed
        rate_limited (bool): A reply was produced but dropped
    """
    action: Optional[Action] = None
    result: Optional[ExecResult] = None
    reply: Optional[Reply] = None
    vetoed: int = 0
    rate_limited: bool = False

    @property
    def handled(self) -> bool:
        return self.action is not None


def reply_target(message: ChatMessage) -> Optional[str]:
    """Where to send a reply: the given target, else the sender for private modes."""
    if message.target is not None:
        return message.target
    if message.chat_mode in (ChatMode.CLIENT, ChatMode.POKE):
        return message.sender_uid
    return None


class Dispatcher:
    """
    Evaluates messages against an ActionStore.

    Example:
        dispatcher = Dispatcher(store, Executor(), RateLimiter(2))
        outcome = dispatcher.dispatch(message)
        if outcome.reply:
            transport.send(outcome.reply.chat_mode, outcome.reply.target, outcome.reply.text)
    """

    def __init__(self, store: ActionStore, executor: Executor, rate_limiter: RateLimiter):
        self.store = store
        self.executor = executor
        self.rate_limiter = rate_limiter

    def execute(self, action: Action, message: ChatMessage) -> ExecResult:
        """Run one matched action; builtins call straight into Python."""
        if action.is_builtin:
            match = action.trigger.pattern.search(message.text)
            text = action.reaction.handler(message, match)
            return ExecResult.respond(text) if text else ExecResult.silent()

        return self.executor.execute(
            action.reaction,
            message.chat_mode,
            message.text,
            message.sender_name,
            message.sender_uid,
        )

    def dispatch(self, message: ChatMessage) -> DispatchOutcome:
        """
        Find the first matching, non-vetoing action and act on it.

        Returns:
            DispatchOutcome describing the handling
        """
        outcome = DispatchOutcome()

        # Copy so a builtin changing the layers does not disturb the walk
        for action in list(self.store.actions()):
            if not matches(action, message.chat_mode, message.text):
                continue

            result = self.execute(action, message)

            if result.kind is ResultKind.VETO:
                outcome.vetoed += 1
                logger.debug(
                    "Action vetoed, trying next",
                    extra={"trigger": action.trigger_text, "returncode": result.returncode}
                )
                continue

            outcome.action = action
            outcome.result = result

            if result.kind is ResultKind.ERROR:
                logger.error(
                    f"Action failed: {result.error}",
                    extra={"trigger": action.trigger_text}
                )
            elif result.kind is ResultKind.RESPOND:
                if self.rate_limiter.try_consume():
                    outcome.reply = Reply(message.chat_mode, reply_target(message), result.text)
                else:
                    outcome.rate_limited = True
                    logger.warning(
                        "Dropped response because of rate limiting",
                        extra={"trigger": action.trigger_text, "sender": message.sender_name}
                    )
            return outcome

        logger.debug("No action matched", extra={"sender": message.sender_name})
        return outcome
