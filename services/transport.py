"""
Chat Transports - Message delivery and reply sending
====================================================

The bot talks to the chat network through a transport. A transport
delivers incoming messages and sends replies; connection handling and
the network's own protocol stay on the transport's side.

Two transports ship with the bot:
- ConsoleTransport: stdin lines in, stdout replies out
- HttpBridgeTransport: replies POSTed to a bridge URL with httpx,
  incoming messages pushed through the web bridge (ui.web)
"""

import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, TextIO

import httpx

from core.exceptions import TransportError
from core.logging import get_logger
from rules.actions import ChatMode

logger = get_logger("services.transport")


@dataclass
class ChatMessage:
    """
    An incoming chat message.

    Attributes:
        chat_mode (ChatMode): Where the message was sent
        text (str): Message content
        sender_name (str): Display name of the sender
        sender_uid (str): Unique id of the sender, if known
        target (str): Where replies go (channel or client id), if known
    """
    chat_mode: ChatMode
    text: str
    sender_name: str
    sender_uid: Optional[str] = None
    target: Optional[str] = None

    def __str__(self) -> str:
        return f"[{self.chat_mode.value}] {self.sender_name}: {self.text[:50]}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatMessage":
        return cls(
            chat_mode=ChatMode(data.get("chat_mode", "channel")),
            text=data["text"],
            sender_name=data["sender_name"],
            sender_uid=data.get("sender_uid"),
            target=data.get("target"),
        )


class ChatTransport(ABC):
    """
    Abstract chat transport.

    Pull transports yield messages from `messages()`; push transports
    hand messages to the bot directly and keep the default, which
    yields nothing.
    """

    own_uid: Optional[str] = None

    def __init__(self):
        self.closed = False

    def messages(self) -> Iterator[ChatMessage]:
        """Incoming messages, in arrival order."""
        return iter(())

    @abstractmethod
    def send(self, chat_mode: ChatMode, target: Optional[str], text: str) -> None:
        """
        Send a reply.

        Raises:
            TransportError: If the reply could not be delivered
        """

    def disconnect(self, message: str) -> None:
        """Leave the chat with a disconnect message."""
        logger.info(f"Disconnecting: {message}")
        self.closed = True


class ConsoleTransport(ChatTransport):
    """
    Reads messages from a text stream, one per line.

    A line may start with a chat mode followed by a colon
    (`client: hello`); without one the message is a channel message.

    Example:
        transport = ConsoleTransport()
        bot = SimpleBot(settings_path, transport)
        bot.run()
    """

    own_uid = "bot"

    def __init__(
        self,
        input_stream: Optional[TextIO] = None,
        output_stream: Optional[TextIO] = None,
        username: str = "console",
        uid: str = "console"
    ):
        super().__init__()
        self.input_stream = input_stream or sys.stdin
        self.output_stream = output_stream or sys.stdout
        self.username = username
        self.uid = uid

    def parse_line(self, line: str) -> Optional[ChatMessage]:
        line = line.rstrip("\r\n")
        if not line.strip():
            return None

        mode = ChatMode.CHANNEL
        head, sep, rest = line.partition(":")
        if sep and head.strip() in {m.value for m in ChatMode}:
            mode = ChatMode(head.strip())
            line = rest.lstrip()

        return ChatMessage(
            chat_mode=mode,
            text=line,
            sender_name=self.username,
            sender_uid=self.uid,
            target=self.uid if mode is ChatMode.CLIENT else None,
        )

    def messages(self) -> Iterator[ChatMessage]:
        for line in self.input_stream:
            if self.closed:
                break
            message = self.parse_line(line)
            if message is not None:
                yield message

    def send(self, chat_mode: ChatMode, target: Optional[str], text: str) -> None:
        try:
            self.output_stream.write(f"{text}\n")
            self.output_stream.flush()
        except OSError as e:
            raise TransportError(f"Failed to write reply: {e}")

    def disconnect(self, message: str) -> None:
        super().disconnect(message)
        try:
            self.output_stream.write(f"*** {message}\n")
            self.output_stream.flush()
        except OSError:
            logger.debug("Output closed before disconnect message")


class HttpBridgeTransport(ChatTransport):
    """
    Sends replies to a chat bridge over HTTP.

    Each reply is POSTed as JSON `{chat_mode, target, text}` to
    `send_url`. Without a URL replies are only returned to the HTTP
    caller that delivered the message.
    """

    def __init__(
        self,
        send_url: str = "",
        timeout: float = 10.0,
        headers: Optional[Dict[str, str]] = None,
        own_uid: Optional[str] = None,
        client: Optional[httpx.Client] = None
    ):
        super().__init__()
        self.send_url = send_url
        self.own_uid = own_uid
        self.client = client or httpx.Client(timeout=timeout, headers=headers or {})

    def send(self, chat_mode: ChatMode, target: Optional[str], text: str) -> None:
        if not self.send_url:
            logger.debug("No send_url configured, reply only returned to caller")
            return

        payload = {"chat_mode": chat_mode.value, "target": target, "text": text}
        try:
            response = self.client.post(self.send_url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise TransportError(
                f"Failed to deliver reply: {e}",
                {"url": self.send_url}
            )

    def disconnect(self, message: str) -> None:
        super().disconnect(message)
        self.client.close()
