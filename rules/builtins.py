"""
Builtin Commands - Administrative actions
=========================================

Builtins form the middle action layer. Each one is a regex action
anchored at the start of the message with the configured prefix:

    .help
    .list [page]
    .add <response> on <trigger>
    .del <trigger>
    .reload
    .quit

Their reaction is a Python handler calling into the ActionStore or
the bot lifecycle instead of an external process.
"""

import re
from typing import Callable, List, Optional, Protocol

from core.exceptions import (
    BotError,
    DefinitionError,
    DuplicateTriggerError,
    NotFoundError,
    PersistError,
)
from core.logging import get_logger
from .actions import Action, Reaction, ReactionKind, Trigger
from .store import ActionStore

logger = get_logger("rules.builtins")

HELP_LINES = [
    "{p}help - show this help",
    "{p}list [page] - list added actions",
    "{p}add <response> on <trigger> - respond with <response> when <trigger> is said",
    "{p}del <trigger> - delete an added action",
    "{p}reload - reload the settings file",
    "{p}quit - disconnect the bot",
]


class Lifecycle(Protocol):
    def reload(self) -> None: ...

    def quit(self) -> None: ...


def escape_markup(text: str) -> str:
    """Escape BBCode tags so stored rules are shown literally."""
    return text.replace("[", "\\[")


def _builtin(name: str, pattern: str, handler: Callable) -> Action:
    return Action(
        trigger=Trigger.regex(pattern),
        reaction=Reaction(ReactionKind.BUILTIN, name, handler=handler),
    )


def create_builtins(prefix: str, store: ActionStore, lifecycle: Lifecycle) -> List[Action]:
    """
    Build the builtin layer.

    Args:
        prefix: Command prefix, e.g. "."
        store: Store whose dynamic layer .add/.del/.list work on
        lifecycle: Object providing reload() and quit()

    Returns:
        Builtin actions in evaluation order
    """
    p = re.escape(prefix)

    def help_(message, match) -> str:
        return "Builtin commands:\n" + "\n".join(line.format(p=prefix) for line in HELP_LINES)

    def list_(message, match) -> str:
        page = max(int(match.group("page") or 1), 1)
        pages = store.page_count()
        entries = store.list(page)
        if not store.dynamic:
            return "No actions added yet."
        if not entries:
            return f"Page {page} does not exist, there are {pages} page(s)."
        lines = [f"Added actions (page {page}/{pages}):"]
        for trigger_text, summary in entries:
            lines.append(f"{escape_markup(trigger_text)} -> {escape_markup(summary)}")
        return "\n".join(lines)

    def add(message, match) -> str:
        response = match.group("response").strip()
        trigger_text = match.group("trigger").strip()
        try:
            store.add(trigger_text, response)
        except (DuplicateTriggerError, DefinitionError) as e:
            return e.message
        except PersistError as e:
            return f"Added action for '{trigger_text}', but it could not be saved: {e.message}"
        logger.info(f"{message.sender_name} added an action", extra={"trigger": trigger_text})
        return f"Added action for '{trigger_text}'."

    def delete(message, match) -> str:
        trigger_text = match.group("trigger").strip()
        try:
            store.delete(trigger_text)
        except NotFoundError as e:
            return e.message
        except PersistError as e:
            return f"Deleted action for '{trigger_text}', but the change could not be saved: {e.message}"
        logger.info(f"{message.sender_name} deleted an action", extra={"trigger": trigger_text})
        return f"Deleted action for '{trigger_text}'."

    def reload(message, match) -> str:
        try:
            lifecycle.reload()
        except BotError as e:
            logger.error(f"Failed to reload: {e}")
            return f"Reload failed, keeping the previous settings: {e}"
        return "Reloaded successfully."

    def quit_(message, match) -> Optional[str]:
        logger.info("Leaving on request", extra={"sender": message.sender_name})
        lifecycle.quit()
        return None

    return [
        _builtin("help", rf"^{p}help\s*$", help_),
        _builtin("list", rf"^{p}list(?:\s+(?P<page>\d+))?\s*$", list_),
        _builtin("add", rf"(?s)^{p}add (?P<response>.+) on (?P<trigger>.+)$", add),
        _builtin("del", rf"(?s)^{p}del (?P<trigger>.+)$", delete),
        _builtin("reload", rf"^{p}reload\s*$", reload),
        _builtin("quit", rf"^{p}quit\s*$", quit_),
    ]
