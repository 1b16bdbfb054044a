"""
Test Actions Module
===================

Unit tests for triggers, reactions and action definitions.
"""

import pytest
from pathlib import Path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from rules.actions import (
    Action, ChatMode, Reaction, ReactionKind, Trigger, TriggerKind
)
from core.exceptions import DefinitionError


class TestChatMode:
    """Tests for ChatMode."""

    def test_parse(self):
        """Mode names map to members."""
        assert ChatMode.parse("client") is ChatMode.CLIENT
        assert ChatMode.parse("poke") is ChatMode.POKE

    def test_parse_unknown(self):
        """Unknown mode names are definition errors."""
        with pytest.raises(DefinitionError, match="'whisper' is not allowed"):
            ChatMode.parse("whisper")


class TestTrigger:
    """Tests for Trigger."""

    def test_contains_compiles(self):
        """Contains triggers compile to a whole-word pattern."""
        trigger = Trigger.contains("a.b")
        assert trigger.kind is TriggerKind.CONTAINS
        assert trigger.pattern.search("x a.b y")
        assert not trigger.pattern.search("x aXb y")

    def test_empty_contains(self):
        """An empty contains trigger is rejected."""
        with pytest.raises(DefinitionError):
            Trigger.contains("")

    def test_invalid_regex(self):
        """Regexes that do not compile are rejected."""
        with pytest.raises(DefinitionError, match="Invalid regex"):
            Trigger.regex("(unclosed")

    def test_match_all(self):
        """Match-all triggers carry no pattern."""
        trigger = Trigger.match_all()
        assert trigger.pattern is None
        assert trigger.text == ""


class TestReaction:
    """Tests for Reaction."""

    def test_empty_response_allowed(self):
        """An empty response is valid and means silence."""
        reaction = Reaction(ReactionKind.RESPONSE, "")
        assert reaction.value == ""

    def test_empty_command(self):
        """Commands must name a program."""
        with pytest.raises(DefinitionError):
            Reaction(ReactionKind.COMMAND, "   ")

    def test_unsplittable_command(self):
        """Unbalanced quotes in a command are rejected."""
        with pytest.raises(DefinitionError, match="Cannot split"):
            Reaction(ReactionKind.COMMAND, "echo 'oops")

    def test_builtin_needs_handler(self):
        """Builtin reactions must carry a handler."""
        with pytest.raises(DefinitionError):
            Reaction(ReactionKind.BUILTIN, "help")

    def test_summary(self):
        """Summaries name the reaction kind for processes."""
        assert Reaction(ReactionKind.RESPONSE, "hi").summary() == "hi"
        assert Reaction(ReactionKind.SHELL, "date").summary() == "shell: date"
        assert Reaction(ReactionKind.COMMAND, "fortune").summary() == "command: fortune"


class TestActionDefinition:
    """Tests for Action.from_definition and to_definition."""

    def test_contains_response(self):
        """A contains trigger with a plain response."""
        action = Action.from_definition({"contains": "question", "response": "Ask away"})
        assert action.trigger.kind is TriggerKind.CONTAINS
        assert action.trigger_text == "question"
        assert action.reaction.kind is ReactionKind.RESPONSE
        assert action.chat_filter == frozenset()

    def test_matches_alias(self):
        """`matches` is accepted as another name for `regex`."""
        action = Action.from_definition({"matches": "^hi", "shell": "echo hi"})
        assert action.trigger.kind is TriggerKind.REGEX
        assert action.reaction.kind is ReactionKind.SHELL

    def test_no_trigger_matches_everything(self):
        """Without a trigger key the action matches all messages."""
        action = Action.from_definition({"command": "fortune"})
        assert action.trigger.kind is TriggerKind.MATCH_ALL

    def test_chat_filter_single_and_list(self):
        """Chat may be one mode or a list of modes."""
        one = Action.from_definition({"contains": "x", "chat": "client", "response": "y"})
        assert one.chat_filter == frozenset([ChatMode.CLIENT])

        many = Action.from_definition({
            "contains": "x", "chat": ["channel", "poke"], "response": "y"
        })
        assert many.chat_filter == frozenset([ChatMode.CHANNEL, ChatMode.POKE])

    def test_both_triggers(self):
        """Contains and regex together are rejected."""
        with pytest.raises(DefinitionError, match="either contains or regex"):
            Action.from_definition({"contains": "a", "regex": "b", "response": "c"})

    def test_no_reaction(self):
        """A definition needs a reaction."""
        with pytest.raises(DefinitionError, match="needs a reaction"):
            Action.from_definition({"contains": "a"})

    def test_multiple_reactions(self):
        """Only one reaction is allowed."""
        with pytest.raises(DefinitionError, match="Only one reaction"):
            Action.from_definition({"contains": "a", "response": "b", "shell": "c"})

    def test_unknown_key(self):
        """Typos in keys are reported."""
        with pytest.raises(DefinitionError, match="Unknown key"):
            Action.from_definition({"contain": "a", "response": "b"})

    def test_unknown_chat_mode(self):
        """Unknown chat modes are reported."""
        with pytest.raises(DefinitionError):
            Action.from_definition({"contains": "a", "chat": "dm", "response": "b"})

    def test_not_a_mapping(self):
        """Definitions must be mappings."""
        with pytest.raises(DefinitionError, match="must be a mapping"):
            Action.from_definition(["contains", "a"])

    def test_index_in_message(self):
        """The definition's position is part of the error text."""
        with pytest.raises(DefinitionError) as exc_info:
            Action.from_definition({"contains": "a"}, index=2)
        assert exc_info.value.index == 2
        assert str(exc_info.value).startswith("Action #3: ")

    def test_to_definition(self):
        """Definitions convert back to the same mapping."""
        data = {"contains": "ping", "chat": ["channel", "client"], "response": "pong"}
        action = Action.from_definition(data)
        assert action.to_definition() == data

    def test_builtin_to_definition(self):
        """Builtins cannot be written to a file."""
        action = Action(
            trigger=Trigger.regex("^.help$"),
            reaction=Reaction(ReactionKind.BUILTIN, "help", handler=lambda m, g: "help"),
        )
        with pytest.raises(DefinitionError):
            action.to_definition()
