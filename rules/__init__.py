"""
Rules Module - Actions and how they are matched
===============================================

This module provides the rule side of the bot:
- Action, Trigger and Reaction types and definition parsing
- Whole-word, regex and match-all triggers with chat-mode filters
- The layered action store with the persisted dynamic layer
- Builtin administrative commands
"""

from .actions import Action, ChatMode, Reaction, ReactionKind, Trigger, TriggerKind
from .matcher import matches
from .store import ActionStore, PAGE_SIZE
from .builtins import create_builtins

__all__ = [
    "Action",
    "ChatMode",
    "Reaction",
    "ReactionKind",
    "Trigger",
    "TriggerKind",
    "matches",
    "ActionStore",
    "PAGE_SIZE",
    "create_builtins",
]
