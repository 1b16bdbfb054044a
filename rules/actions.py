"""
Actions - Rule types and definition parsing
===========================================

An action pairs a trigger (what the message text must contain) and an
optional chat-mode filter with a reaction (what the bot does). Actions
are built from plain definition mappings as found in the settings file,
included files, and the dynamic actions file:

    contains: question        # or regex: "...", or neither to match everything
    chat: [channel, client]   # optional
    response: "Ask away"      # or command: "...", or shell: "..."
"""

import re
import shlex
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Optional, Pattern

from core.exceptions import DefinitionError


class ChatMode(Enum):
    """Channel through which a message arrived."""
    SERVER = "server"
    CHANNEL = "channel"
    CLIENT = "client"
    POKE = "poke"

    @classmethod
    def parse(cls, name: str) -> "ChatMode":
        try:
            return cls(name)
        except ValueError:
            raise DefinitionError(
                f"Chat mode must be server, channel, client or poke. "
                f"'{name}' is not allowed."
            )


class TriggerKind(Enum):
    """How a trigger tests the message text."""
    CONTAINS = "contains"
    REGEX = "regex"
    MATCH_ALL = "match_all"


def whole_word_pattern(text: str) -> Pattern[str]:
    """Pattern finding `text` not directly next to a word character."""
    return re.compile(r"(?<!\w)" + re.escape(text) + r"(?!\w)")


@dataclass(frozen=True)
class Trigger:
    """
    Predicate over the message text.

    Attributes:
        kind (TriggerKind): contains, regex or match-all
        text (str): The trigger as written in the definition
        pattern (Pattern): Compiled form, None for match-all
    """
    kind: TriggerKind
    text: str = ""
    pattern: Optional[Pattern[str]] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        if self.kind is TriggerKind.MATCH_ALL:
            return
        if not self.text:
            raise DefinitionError(f"{self.kind.value} must not be empty")
        if self.kind is TriggerKind.CONTAINS:
            compiled = whole_word_pattern(self.text)
        else:
            try:
                compiled = re.compile(self.text)
            except re.error as e:
                raise DefinitionError(f"Invalid regex {self.text!r}: {e}")
        object.__setattr__(self, "pattern", compiled)

    @classmethod
    def contains(cls, text: str) -> "Trigger":
        return cls(TriggerKind.CONTAINS, text)

    @classmethod
    def regex(cls, text: str) -> "Trigger":
        return cls(TriggerKind.REGEX, text)

    @classmethod
    def match_all(cls) -> "Trigger":
        return cls(TriggerKind.MATCH_ALL)


class ReactionKind(Enum):
    """What the bot does when an action matches."""
    RESPONSE = "response"
    COMMAND = "command"
    SHELL = "shell"
    BUILTIN = "builtin"


@dataclass(frozen=True)
class Reaction:
    """
    Effect of a matched action.

    For RESPONSE, COMMAND and SHELL `value` is the configured string.
    BUILTIN reactions carry a Python `handler` instead; it receives the
    incoming message and returns the reply text or None.
    """
    kind: ReactionKind
    value: str = ""
    handler: Optional[Callable[..., Optional[str]]] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        if self.kind is ReactionKind.BUILTIN:
            if self.handler is None:
                raise DefinitionError("A builtin reaction needs a handler")
        elif self.kind is not ReactionKind.RESPONSE and not self.value.strip():
            raise DefinitionError(f"{self.kind.value} must not be empty")
        elif self.kind is ReactionKind.COMMAND:
            try:
                shlex.split(self.value)
            except ValueError as e:
                raise DefinitionError(f"Cannot split command {self.value!r}: {e}")

    def summary(self) -> str:
        """Short text for listings."""
        if self.kind is ReactionKind.RESPONSE:
            return self.value
        if self.kind is ReactionKind.BUILTIN:
            return "builtin"
        return f"{self.kind.value}: {self.value}"


MATCHER_KEYS = ("contains", "regex", "matches")
REACTION_KEYS = ("response", "command", "shell")
DEFINITION_KEYS = set(MATCHER_KEYS) | set(REACTION_KEYS) | {"chat"}


@dataclass(frozen=True)
class Action:
    """
    A single rule: trigger, chat filter and reaction.

    An empty `chat_filter` allows every chat mode.
    """
    trigger: Trigger
    reaction: Reaction
    chat_filter: FrozenSet[ChatMode] = frozenset()

    @property
    def trigger_text(self) -> str:
        """The text identifying this action for .del and .list."""
        return self.trigger.text

    @property
    def is_builtin(self) -> bool:
        return self.reaction.kind is ReactionKind.BUILTIN

    @classmethod
    def from_definition(cls, data: Any, index: Optional[int] = None) -> "Action":
        """
        Build an action from a definition mapping.

        Args:
            data: Mapping with matcher, chat and reaction keys
            index: Position in the containing file, for error messages

        Returns:
            The validated Action

        Raises:
            DefinitionError: If the definition is malformed
        """
        try:
            return cls._from_definition(data)
        except DefinitionError as e:
            if e.index is None and index is not None:
                e.index = index
            raise

    @classmethod
    def _from_definition(cls, data: Any) -> "Action":
        if not isinstance(data, dict):
            raise DefinitionError(f"An action must be a mapping, got {type(data).__name__}")

        unknown = sorted(set(data) - DEFINITION_KEYS)
        if unknown:
            raise DefinitionError(f"Unknown key(s): {', '.join(map(str, unknown))}")

        for key in MATCHER_KEYS + REACTION_KEYS:
            if key in data and not isinstance(data[key], str):
                raise DefinitionError(f"'{key}' must be a string")

        # Trigger
        contains = data.get("contains")
        if "regex" in data and "matches" in data:
            raise DefinitionError("Use either regex or matches, not both")
        regex = data.get("regex", data.get("matches"))

        if contains is not None and regex is not None:
            raise DefinitionError(
                f"An action can only have either contains or regex. "
                f"This one contains both ({contains} and {regex})"
            )
        if contains is not None:
            trigger = Trigger.contains(contains)
        elif regex is not None:
            trigger = Trigger.regex(regex)
        else:
            trigger = Trigger.match_all()

        # Chat filter
        chat = data.get("chat")
        if chat is None:
            modes = frozenset()
        elif isinstance(chat, str):
            modes = frozenset([ChatMode.parse(chat)])
        elif isinstance(chat, list) and chat and all(isinstance(c, str) for c in chat):
            modes = frozenset(ChatMode.parse(c) for c in chat)
        else:
            raise DefinitionError("'chat' must be a mode name or a list of mode names")

        # Reaction
        given = [key for key in REACTION_KEYS if key in data]
        if not given:
            raise DefinitionError("An action needs a reaction (response, command or shell)")
        if len(given) > 1:
            raise DefinitionError(
                f"Only one reaction (response, command or shell) is allowed, got {', '.join(given)}"
            )
        kind = ReactionKind(given[0])
        reaction = Reaction(kind, data[given[0]])

        return cls(trigger=trigger, reaction=reaction, chat_filter=modes)

    def to_definition(self) -> Dict[str, Any]:
        """
        Convert back to a definition mapping for the dynamic file.

        Raises:
            DefinitionError: For builtin actions, which cannot be stored
        """
        if self.is_builtin:
            raise DefinitionError("Builtin actions cannot be serialized")

        data: Dict[str, Any] = {}
        if self.trigger.kind is TriggerKind.CONTAINS:
            data["contains"] = self.trigger.text
        elif self.trigger.kind is TriggerKind.REGEX:
            data["regex"] = self.trigger.text
        if self.chat_filter:
            data["chat"] = sorted(mode.value for mode in self.chat_filter)
        data[self.reaction.kind.value] = self.reaction.value
        return data
