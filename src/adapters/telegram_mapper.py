"""Telegram-to-core activity mapping adapter.

This keeps Telethon-specific details out of the core pipeline.
"""

from __future__ import annotations

from typing import Optional

from telethon.tl.custom import Message

from core.models import EVENT, MESSAGE, TYPING, Activity

CHANNEL_ID = "telegram"


def _as_id(value) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def activity_from_message(message: Message, bot_id: Optional[str] = None) -> Activity:
    """Build a message activity from a Telethon Message."""

    return Activity(
        type=MESSAGE,
        id=_as_id(message.id),
        channel_id=CHANNEL_ID,
        conversation_id=_as_id(message.chat_id),
        from_id=_as_id(getattr(message, "sender_id", None)),
        recipient_id=bot_id,
        # Media-only messages arrive with no text; keep them as empty messages.
        text=message.raw_text or "",
    )


def activity_from_callback(event, bot_id: Optional[str] = None) -> Activity:
    """Build an event activity from an inline keyboard callback query."""

    data = getattr(event, "data", None) or b""
    if isinstance(data, bytes):
        data = data.decode("utf-8", errors="replace")
    return Activity(
        type=EVENT,
        id=_as_id(getattr(event, "id", None)),
        channel_id=CHANNEL_ID,
        conversation_id=_as_id(getattr(event, "chat_id", None)),
        from_id=_as_id(getattr(event, "sender_id", None)),
        recipient_id=bot_id,
        name="callback",
        value=data,
    )


def activity_from_user_update(event, bot_id: Optional[str] = None) -> Optional[Activity]:
    """Build a typing activity from a user update; other updates are ignored."""

    if not getattr(event, "typing", False):
        return None
    return Activity(
        type=TYPING,
        channel_id=CHANNEL_ID,
        conversation_id=_as_id(getattr(event, "chat_id", None)),
        from_id=_as_id(getattr(event, "user_id", None)),
        recipient_id=bot_id,
    )
