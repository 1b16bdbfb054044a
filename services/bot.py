"""
Bot - Ties settings, actions, dispatcher and transport together
===============================================================

The bot is the single consumer of incoming messages: it handles one
message at a time, in arrival order, so the dynamic actions and the
rate limiter are never used concurrently. It also implements the
lifecycle operations behind the .reload and .quit builtins.
"""

import threading
import time
from pathlib import Path
from typing import Callable, Optional

from core.config import Settings, load_settings, resolve_path
from core.exceptions import TransportError
from core.logging import get_logger
from core.rate_limiter import RateLimiter
from rules.builtins import create_builtins
from rules.store import ActionStore
from .dispatcher import Dispatcher, DispatchOutcome
from .executor import Executor
from .transport import ChatMessage, ChatTransport

logger = get_logger("services.bot")


class SimpleBot:
    """
    Rule-driven chat bot.

    Example:
        bot = SimpleBot(Path("settings.yaml"), ConsoleTransport())
        bot.load()
        bot.run()
    """

    def __init__(
        self,
        settings_path: Path,
        transport: Optional[ChatTransport] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            settings_path: Settings file; relative paths in it are resolved
                against its directory
            transport: Where messages come from and replies go
            clock: Time source for the rate limiter
        """
        self.settings_path = Path(settings_path)
        self.base_dir = self.settings_path.parent
        self.transport = transport
        self.clock = clock

        self.settings: Optional[Settings] = None
        self.store: Optional[ActionStore] = None
        self.dispatcher: Optional[Dispatcher] = None
        self.running = False
        self._lock = threading.Lock()

    def load(self) -> None:
        """
        Load settings and all action layers.

        Raises:
            ConfigError: If the settings are invalid
            DefinitionError: If an action definition is invalid
        """
        settings = load_settings(self.settings_path)
        dynamic_path = resolve_path(self.base_dir, settings.dynamic_actions)

        store = ActionStore.load(settings.actions, dynamic_path, self.base_dir)
        # Builtins go after the static actions, otherwise .del could be shadowed
        store.set_builtins(create_builtins(settings.prefix, store, self))

        self.settings = settings
        self.store = store
        self.dispatcher = Dispatcher(
            store,
            Executor(shell=settings.shell, timeout=settings.command_timeout),
            RateLimiter(settings.rate_limit, clock=self.clock),
        )
        logger.info(f"{settings.name} loaded", extra={"actions": len(store)})

    def reload(self) -> None:
        """
        Re-read the settings file and replace the static actions.

        Nothing changes unless the new settings and all static actions
        are valid. The dynamic actions and the builtins are kept.

        Raises:
            ConfigError: If the settings are invalid
            DefinitionError: If a static action is invalid
        """
        settings = load_settings(self.settings_path)
        self.store.reload(settings.actions, self.base_dir)

        # The static layer is swapped, the rest cannot fail
        if settings.prefix != self.settings.prefix:
            logger.warning("Changing the builtin prefix requires a restart")
        if settings.dynamic_actions != self.settings.dynamic_actions:
            logger.warning("Changing the dynamic actions file requires a restart")

        self.dispatcher.rate_limiter.reconfigure(settings.rate_limit)
        self.dispatcher.executor.shell = settings.shell
        self.dispatcher.executor.timeout = settings.command_timeout
        self.settings = settings
        logger.info("Reloaded successfully")

    def quit(self) -> None:
        """Stop handling messages and disconnect."""
        self.running = False
        if self.transport is not None:
            self.transport.disconnect(self.settings.disconnect_message)

    def is_own_message(self, message: ChatMessage) -> bool:
        own_uid = self.transport.own_uid if self.transport is not None else None
        if own_uid is not None and message.sender_uid is not None:
            return message.sender_uid == own_uid
        return message.sender_name == self.settings.name

    def handle_message(self, message: ChatMessage) -> Optional[DispatchOutcome]:
        """
        Dispatch one message and send the reply, if any.

        Returns:
            The outcome, or None for the bot's own messages
        """
        with self._lock:
            if self.is_own_message(message):
                return None

            logger.debug(
                "Got message",
                extra={"mode": message.chat_mode.value, "sender": message.sender_name, "text": message.text}
            )
            outcome = self.dispatcher.dispatch(message)

            reply = outcome.reply
            if reply is not None and self.transport is not None:
                try:
                    self.transport.send(reply.chat_mode, reply.target, reply.text)
                except TransportError as e:
                    logger.error(f"Failed to send response: {e}")
            return outcome

    def run(self) -> None:
        """Handle messages from the transport until it ends or .quit is used."""
        self.running = True
        logger.info(f"{self.settings.name} is running")
        try:
            for message in self.transport.messages():
                self.handle_message(message)
                if not self.running:
                    break
        finally:
            if self.running:
                self.running = False
                self.transport.disconnect(self.settings.disconnect_message)
