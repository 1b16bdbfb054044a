#!/usr/bin/env python3
"""
Simple Bot - Main Entry Point
=============================

This is the main entry point for Simple Bot. It provides a
command-line interface for running the bot with one of its
transports.

Usage:
    python main.py                       # Read messages from stdin
    python main.py --web                 # Start the HTTP bridge
    python main.py --test "hello"        # Run one message and print the outcome
    python main.py --setup               # Write a default settings file
    python main.py --settings PATH       # Use another settings file
"""

import sys
import argparse
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from core.config import create_default_settings, resolve_path, resolve_settings_path
from core.logging import setup_logging, get_logger, verbosity_to_level
from core.exceptions import BotError

logger = get_logger("main")


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Simple Bot - rule-driven chat message reactions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --settings bot/settings.yaml      Chat on stdin/stdout
  python main.py --web --port 9000                 Start the HTTP bridge
  python main.py --test "I have a question"        Test one message
  python main.py --test "hi there" client          Test a private message
        """
    )

    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument(
        "--console",
        action="store_true",
        help="Read messages from stdin, one per line (default)"
    )
    mode_group.add_argument(
        "--web",
        action="store_true",
        help="Start the HTTP bridge server"
    )
    mode_group.add_argument(
        "--test",
        nargs="+",
        metavar=("MESSAGE", "MODE"),
        help="Dispatch one message and print the outcome (MODE defaults to channel)"
    )
    mode_group.add_argument(
        "--setup",
        action="store_true",
        help="Write a default settings file"
    )

    parser.add_argument(
        "-s", "--settings",
        type=str,
        metavar="PATH",
        help="Path of the settings file"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="More log output, repeat for more"
    )
    parser.add_argument(
        "--host",
        type=str,
        help="Host for the HTTP bridge (default: from settings)"
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Port for the HTTP bridge (default: from settings)"
    )

    return parser.parse_args(argv)


def run_setup(settings_path: Path) -> int:
    """Write default settings unless a file already exists."""
    if settings_path.exists():
        print(f"Settings file already exists: {settings_path}")
        return 1

    create_default_settings(settings_path)
    print(f"✓ Created {settings_path}")
    print("\nTo start the bot:")
    print(f"  python main.py --settings {settings_path}")
    return 0


def apply_logging_settings(bot, verbose: int) -> None:
    """Log level from the settings unless -v was given, plus the JSON log file."""
    level = verbosity_to_level(verbose) if verbose else bot.settings.logging.level
    json_file = bot.settings.logging.json_file
    if json_file:
        json_file = str(resolve_path(bot.base_dir, json_file))
    setup_logging(log_level=level, json_file=json_file or None)


def run_console(settings_path: Path, verbose: int) -> None:
    """Chat with the bot on stdin/stdout."""
    from services.bot import SimpleBot
    from services.transport import ConsoleTransport

    bot = SimpleBot(settings_path, ConsoleTransport())
    bot.load()
    apply_logging_settings(bot, verbose)
    bot.run()


def run_web(settings_path: Path, host: str, port: int, verbose: int) -> None:
    """Run the HTTP bridge."""
    from services.bot import SimpleBot
    from services.transport import HttpBridgeTransport
    from ui.web.app import run_app

    bot = SimpleBot(settings_path)
    bot.load()
    apply_logging_settings(bot, verbose)
    bridge = bot.settings.bridge
    bot.transport = HttpBridgeTransport(send_url=bridge.send_url, timeout=bridge.timeout)

    host = host or bridge.host
    port = port or bridge.port
    print(f"\nStarting HTTP bridge on http://{host}:{port}")
    print("Press Ctrl+C to stop\n")

    run_app(bot, host=host, port=port, debug=verbose > 0)


def run_test_message(settings_path: Path, message: str, mode: str = "channel") -> None:
    """Dispatch one message without a transport and show what happened."""
    from services.bot import SimpleBot
    from services.transport import ChatMessage
    from rules.actions import ChatMode

    bot = SimpleBot(settings_path)
    bot.load()

    outcome = bot.handle_message(ChatMessage(
        chat_mode=ChatMode.parse(mode),
        text=message,
        sender_name="tester",
        sender_uid="tester",
    ))

    print(f"\nTest Message: {message}")
    print(f"Mode: {mode}")
    print("-" * 50)

    if outcome is None or not outcome.handled:
        print("No action matched")
        return

    print(f"  Trigger: {outcome.action.trigger_text or '(any message)'}")
    print(f"  Reaction: {outcome.action.reaction.summary()}")
    print(f"  Result: {outcome.result.kind.value}")
    if outcome.vetoed:
        print(f"  Vetoed before: {outcome.vetoed}")
    if outcome.result.error:
        print(f"  Error: {outcome.result.error}")
    if outcome.reply:
        print(f"\nResponse:\n{outcome.reply.text}")


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(log_level=verbosity_to_level(args.verbose))

    settings_path = resolve_settings_path(args.settings)

    try:
        if args.setup:
            return run_setup(settings_path)
        if args.web:
            run_web(settings_path, args.host, args.port, args.verbose)
        elif args.test:
            mode = args.test[1] if len(args.test) > 1 else "channel"
            run_test_message(settings_path, args.test[0], mode)
        else:
            run_console(settings_path, args.verbose)
        return 0

    except BotError as e:
        logger.error(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 0


if __name__ == "__main__":
    sys.exit(main())
