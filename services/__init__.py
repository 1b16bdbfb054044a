"""
Services Module - Message handling services for Simple Bot
==========================================================

This module provides the main services:
- Executor: runs responses, commands and shell actions
- Dispatcher: picks the action for a message
- Transports: console and HTTP bridge
- SimpleBot: the message loop and lifecycle
"""

from .executor import Executor, ExecResult, ResultKind
from .dispatcher import Dispatcher, DispatchOutcome, Reply
from .transport import ChatMessage, ChatTransport, ConsoleTransport, HttpBridgeTransport
from .bot import SimpleBot

__all__ = [
    "Executor",
    "ExecResult",
    "ResultKind",
    "Dispatcher",
    "DispatchOutcome",
    "Reply",
    "ChatMessage",
    "ChatTransport",
    "ConsoleTransport",
    "HttpBridgeTransport",
    "SimpleBot",
]
