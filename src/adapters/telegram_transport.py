"""Telegram transport adapter.

Feeds Telethon updates into a single ordered queue and sends replies via
the same client. Suggested actions are rendered as a single-use reply
keyboard so the user's tap comes back as plain message text.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Optional, Set, Union

from telethon import Button, events

from adapters.telegram_mapper import (
    activity_from_callback,
    activity_from_message,
    activity_from_user_update,
)
from core.models import Activity, Address

LOGGER = logging.getLogger(__name__)


class TelegramTransport:
    """Transport adapter over a connected Telethon client."""

    def __init__(self, client, bot_id: Optional[str] = None) -> None:
        self._client = client
        self._bot_id = bot_id
        self._queue: asyncio.Queue = asyncio.Queue()
        self._pending: Set[asyncio.Task] = set()

    def register(self) -> None:
        """Attach the update handlers that feed the activity queue."""

        self._client.add_event_handler(self._on_message, events.NewMessage(incoming=True))
        self._client.add_event_handler(self._on_callback, events.CallbackQuery())
        self._client.add_event_handler(self._on_user_update, events.UserUpdate())

    async def _on_message(self, event) -> None:
        self._queue.put_nowait(activity_from_message(event.message, self._bot_id))

    async def _on_callback(self, event) -> None:
        await event.answer()
        self._queue.put_nowait(activity_from_callback(event, self._bot_id))

    async def _on_user_update(self, event) -> None:
        activity = activity_from_user_update(event, self._bot_id)
        if activity is not None:
            self._queue.put_nowait(activity)

    async def activities(self) -> AsyncIterator[Activity]:
        while True:
            yield await self._queue.get()

    def _schedule(self, coro) -> None:
        # Fire-and-forget sends still get their failures logged.
        task = asyncio.get_running_loop().create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._on_send_done)

    def _on_send_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            LOGGER.error("Telegram send failed", exc_info=(type(error), error, error.__traceback__))

    def send(self, address: Address, content: Union[Activity, str]) -> None:
        self._schedule(self.send_async(address, content))

    async def send_async(self, address: Address, content: Union[Activity, str]) -> None:
        if isinstance(content, Activity):
            await self._send_activity(content, address)
            return
        await self._client.send_message(_peer(address.conversation_id if address else None), content)

    def post_activity(self, activity: Activity) -> None:
        self._schedule(self._send_activity(activity))

    async def _send_activity(self, activity: Activity, address: Optional[Address] = None) -> None:
        conversation_id = activity.conversation_id
        if conversation_id is None and address is not None:
            conversation_id = address.conversation_id

        buttons = None
        if activity.suggested_actions and activity.suggested_actions.actions:
            buttons = [
                [Button.text(action.title, resize=True, single_use=True)]
                for action in activity.suggested_actions.actions
            ]
        await self._client.send_message(_peer(conversation_id), activity.text or "", buttons=buttons)


def _peer(conversation_id: Optional[str]) -> int:
    if conversation_id is None:
        raise ValueError("Cannot send to an address without a conversation id")
    return int(conversation_id)
