"""Core activity dispatch loop.

This module is transport-agnostic. It pulls activities from any async
iterable, one at a time, and runs each through a rule tree built once at
construction. The next activity is not pulled until the current one has
been fully handled, including any awaited replies, so handlers never
interleave and the prompt slot needs no locking.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import AsyncIterable, Optional

from core.config import DispatcherConfig
from core.conversations import ConversationPromptRule, Conversations
from core.enricher import ContextEnricher
from core.filters import events, messages, typing
from core.matches import ActivityMatch, ChatMatch, EventMatch, MessageMatch, TypingMatch
from core.models import Activity
from core.observer import DispatchObserver, LoggingObserver
from core.prompt import Prompt, PromptRule
from core.rules_engine import Rule, first, prepend

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatRules:
    """Application rules per activity variant, all optional."""

    messages: Optional[Rule[MessageMatch]] = None
    events: Optional[Rule[EventMatch]] = None
    typing: Optional[Rule[TypingMatch]] = None
    other: Optional[Rule[ChatMatch]] = None


def build_rule(
    enricher: ContextEnricher,
    rules: ChatRules,
    prompt: Optional[Prompt] = None,
    conversations: Optional[Conversations] = None,
) -> Rule[ActivityMatch]:
    """Compose the top-level tree: messages, events, typing, then other.

    With a prompt, every message is offered to it before the application's
    message rules, so an outstanding prompt consumes the message. With
    `conversations`, each message goes to the prompt of its own conversation.
    """

    message_rule: Optional[Rule[MessageMatch]] = rules.messages
    if conversations is not None:
        message_rule = first(ConversationPromptRule(conversations), rules.messages)
    elif prompt is not None:
        message_rule = first(PromptRule(prompt), rules.messages)

    return prepend(
        enricher,
        first(
            prepend(messages, message_rule) if message_rule else None,
            prepend(events, rules.events) if rules.events else None,
            prepend(typing, rules.typing) if rules.typing else None,
            rules.other,
        ),
    )


class Dispatcher:
    """Serializes activity handling over a composed rule tree."""

    def __init__(
        self,
        enricher: ContextEnricher,
        rules: ChatRules,
        prompt: Optional[Prompt] = None,
        observer: Optional[DispatchObserver] = None,
        config: Optional[DispatcherConfig] = None,
        conversations: Optional[Conversations] = None,
    ) -> None:
        self._rule = build_rule(enricher, rules, prompt, conversations)
        self._observer = observer or LoggingObserver()
        self._config = config or DispatcherConfig()
        self._task: Optional[asyncio.Task] = None
        self._busy = False
        self._stopping = False

    async def handle(self, activity: Activity) -> bool:
        """Process one activity; return whether any rule matched."""

        self._observer.on_received(activity)
        try:
            matched = await self._rule.call_handler_if_match(ActivityMatch(activity))
        except Exception as exc:
            self._observer.on_error(activity, exc)
            if self._config.halt_on_error:
                raise
            return False

        if matched:
            self._observer.on_matched(activity)
        else:
            self._observer.on_unmatched(activity)
        return matched

    async def run(self, source: AsyncIterable[Activity]) -> None:
        """Consume `source` until it completes or `stop()` is called."""

        async for activity in source:
            self._busy = True
            try:
                await self.handle(activity)
            finally:
                self._busy = False
            if self._stopping:
                LOGGER.info("Dispatcher stopped")
                return
        self._observer.on_completed()

    def start(self, source: AsyncIterable[Activity]) -> asyncio.Task:
        """Run the loop as a background task on the current event loop."""

        if self._task is not None and not self._task.done():
            raise RuntimeError("Dispatcher is already running")
        self._stopping = False
        self._task = asyncio.get_running_loop().create_task(self.run(source))
        return self._task

    def stop(self) -> None:
        """Stop pulling activities.

        An activity that is mid-handler runs to completion; a loop that is
        idle waiting on the source is cancelled right away.
        """

        self._stopping = True
        if self._task is not None and not self._task.done() and not self._busy:
            self._task.cancel()
