"""Application entry point for the chatrules bot."""

from __future__ import annotations

import argparse
import asyncio
import itertools
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional, Union

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.memory_transport import QueueTransport
from adapters.telegram_transport import TelegramTransport
from client import bot_token, build_client
from core.config import DispatcherConfig, PromptConfig
from core.conversations import Conversations
from core.dispatcher import Dispatcher
from core.enricher import ContextEnricher
from core.models import MESSAGE, Activity, Address
from core.ports import TransportPort
from recipe import build_conversations, build_rules

NAME = "CHATRULES"
FONT = "tarty-1"
CONSOLE_CONVERSATION = "console"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/chatrules.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def build_conversations_from_settings(transport: TransportPort) -> Conversations:
    prompt_config = PromptConfig(bot_id=settings.BOT_ID, choice_lists=settings.CHOICE_LISTS)
    return build_conversations(transport, prompt_config.choice_lists, bot_id=prompt_config.bot_id)


def build_dispatcher(transport: TransportPort, conversations: Conversations) -> Dispatcher:
    """Wire the demo rules and the dispatcher; each conversation has its own prompt."""

    return Dispatcher(
        ContextEnricher(transport, conversations=conversations),
        build_rules(conversations),
        config=DispatcherConfig(halt_on_error=settings.HALT_ON_ERROR),
        conversations=conversations,
    )


def _run() -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting chatrules")
    logger.info("%s choice lists are loaded", len(settings.CHOICE_LISTS))

    client = build_client()
    client.start(bot_token=bot_token())

    transport = TelegramTransport(client, bot_id=settings.BOT_ID)
    transport.register()
    dispatcher = build_dispatcher(transport, build_conversations_from_settings(transport))

    client.loop.create_task(dispatcher.run(transport.activities()))
    logger.info("Client connected. Listening for incoming activities...")
    client.run_until_disconnected()


def _print_outbound(address: Optional[Address], content: Union[Activity, str]) -> None:
    if isinstance(content, str):
        print(f"bot> {content}")
        return
    print(f"bot> {content.text or ''}")
    if content.suggested_actions:
        titles = [action.title for action in content.suggested_actions.actions]
        print(f"     [{' | '.join(titles)}]")


async def _console() -> None:
    transport = QueueTransport(on_send=_print_outbound)
    dispatcher = build_dispatcher(transport, build_conversations_from_settings(transport))
    loop_task = dispatcher.start(transport.activities())

    ids = itertools.count(1)
    while True:
        try:
            line = await asyncio.to_thread(input, "you> ")
        except EOFError:
            break
        transport.push(
            Activity(
                type=MESSAGE,
                id=str(next(ids)),
                channel_id="console",
                conversation_id=CONSOLE_CONVERSATION,
                from_id="user",
                recipient_id=settings.BOT_ID,
                text=line,
            )
        )
        # Let the dispatcher answer before prompting for the next line.
        await asyncio.sleep(0.05)

    transport.close()
    await loop_task


def _run_console() -> None:
    _configure_logging()
    asyncio.run(_console())


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="chatrules")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the Telegram bot")
    subparsers.add_parser("console", help="Chat with the demo bot on stdin/stdout")

    args = parser.parse_args(argv)
    if args.command == "console":
        _run_console()
        return
    _run()


if __name__ == "__main__":
    main()
