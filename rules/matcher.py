"""
Matcher - Decide whether an action applies to a message
=======================================================

Pure functions: no state, no I/O.
"""

from .actions import Action, ChatMode, TriggerKind


def mode_allowed(action: Action, chat_mode: ChatMode) -> bool:
    """An empty chat filter allows every mode."""
    return not action.chat_filter or chat_mode in action.chat_filter


def trigger_matches(action: Action, message_text: str) -> bool:
    """
    Test the trigger against the message text.

    Contains triggers match whole words only and regexes may match
    anywhere in the text. Both are case-sensitive.
    """
    trigger = action.trigger
    if trigger.kind is TriggerKind.MATCH_ALL:
        return True
    return trigger.pattern.search(message_text) is not None


def matches(action: Action, chat_mode: ChatMode, message_text: str) -> bool:
    """Check the chat filter and then the trigger."""
    return mode_allowed(action, chat_mode) and trigger_matches(action, message_text)
