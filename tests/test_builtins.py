"""
Test Builtin Commands Module
============================

Unit tests for the administrative commands driven through a dispatcher.
"""

import pytest
from pathlib import Path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.exceptions import ConfigError
from core.rate_limiter import RateLimiter
from rules.actions import ChatMode
from rules.builtins import create_builtins, escape_markup
from rules.store import ActionStore, PAGE_SIZE
from services.dispatcher import Dispatcher
from services.executor import Executor
from services.transport import ChatMessage


class FakeLifecycle:
    def __init__(self, fail=False):
        self.reloads = 0
        self.quits = 0
        self.fail = fail

    def reload(self):
        if self.fail:
            raise ConfigError("Unknown setting 'nmae'")
        self.reloads += 1

    def quit(self):
        self.quits += 1


@pytest.fixture
def lifecycle():
    return FakeLifecycle()


@pytest.fixture
def store(tmp_path):
    return ActionStore.load({}, tmp_path / "dynamic.yaml", tmp_path)


@pytest.fixture
def say(store, lifecycle):
    store.set_builtins(create_builtins(".", store, lifecycle))
    dispatcher = Dispatcher(store, Executor(), RateLimiter(1000))

    def send(text):
        outcome = dispatcher.dispatch(ChatMessage(ChatMode.CHANNEL, text, "alice", "uid-a"))
        return outcome.reply.text if outcome.reply else None
    return send


class TestHelp:
    def test_help_lists_commands(self, say):
        reply = say(".help")
        for name in ("help", "list", "add", "del", "reload", "quit"):
            assert f".{name}" in reply

    def test_custom_prefix(self, store, lifecycle):
        actions = create_builtins("!", store, lifecycle)
        help_action = actions[0]
        assert help_action.trigger.pattern.search("!help")
        assert not help_action.trigger.pattern.search(".help")


class TestAdd:
    def test_add(self, say, store):
        assert say(".add Ask away on question") == "Added action for 'question'."
        action = store.find_dynamic("question")
        assert action.reaction.value == "Ask away"

    def test_added_action_fires(self, say):
        say(".add Ask away on question")
        assert say("I have a question") == "Ask away"
        assert say("This is questionable.") is None

    def test_last_on_separates(self, say, store):
        say(".add come on in on door")
        assert store.find_dynamic("door").reaction.value == "come on in"

    def test_duplicate(self, say, store):
        say(".add one on thing")
        assert "already exists" in say(".add two on thing")
        assert store.find_dynamic("thing").reaction.value == "one"
        assert len(store.dynamic) == 1

    def test_malformed_add_is_not_a_command(self, say, store):
        assert say(".add nothing here") is None
        assert store.dynamic == ()


class TestDelete:
    def test_delete(self, say, store):
        say(".add pong on ping")
        assert say(".del ping") == "Deleted action for 'ping'."
        assert store.dynamic == ()
        assert say("ping") is None

    def test_delete_missing(self, say):
        assert say(".del ghost") == "No action found for 'ghost'"


class TestList:
    def test_empty(self, say):
        assert say(".list") == "No actions added yet."

    def test_first_page(self, say):
        say(".add pong on ping")
        assert say(".list") == "Added actions (page 1/1):\nping -> pong"

    def test_paging(self, say):
        for i in range(PAGE_SIZE + 1):
            say(f".add r{i} on t{i}")
        first = say(".list 1").splitlines()
        assert first[0] == "Added actions (page 1/2):"
        assert len(first) == PAGE_SIZE + 1
        assert say(".list 2") == f"Added actions (page 2/2):\nt{PAGE_SIZE} -> r{PAGE_SIZE}"

    def test_page_past_end(self, say):
        say(".add pong on ping")
        assert say(".list 5") == "Page 5 does not exist, there are 1 page(s)."

    def test_page_zero_is_first(self, say):
        say(".add pong on ping")
        assert say(".list 0").startswith("Added actions (page 1/1)")

    def test_markup_escaped(self, say):
        say(".add [b]bold[/b] on tag")
        assert say(".list").endswith("tag -> \\[b]bold\\[/b]")

    def test_escape_markup(self):
        assert escape_markup("[url]x[/url]") == "\\[url]x\\[/url]"


class TestLifecycle:
    def test_reload(self, say, lifecycle):
        assert say(".reload") == "Reloaded successfully."
        assert lifecycle.reloads == 1

    def test_reload_failure(self, store):
        lifecycle = FakeLifecycle(fail=True)
        store.set_builtins(create_builtins(".", store, lifecycle))
        dispatcher = Dispatcher(store, Executor(), RateLimiter(10))
        outcome = dispatcher.dispatch(ChatMessage(ChatMode.CHANNEL, ".reload", "alice"))
        assert outcome.reply.text.startswith("Reload failed, keeping the previous settings:")
        assert "nmae" in outcome.reply.text

    def test_quit(self, say, lifecycle):
        assert say(".quit") is None
        assert lifecycle.quits == 1

    def test_commands_are_anchored(self, say, lifecycle):
        say("please .quit")
        assert lifecycle.quits == 0
