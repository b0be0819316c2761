"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any platform-specific activity types.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Tuple

MESSAGE = "message"
EVENT = "event"
TYPING = "typing"


@dataclass(frozen=True)
class CardAction:
    """A selectable reply affordance attached to an outbound message."""

    title: str
    value: str
    type: str = "postBack"


@dataclass(frozen=True)
class SuggestedActions:
    """Ordered set of card actions offered with a message."""

    actions: Tuple[CardAction, ...] = ()


@dataclass(frozen=True)
class Activity:
    """One unit of conversational traffic, immutable once received.

    `type` is the discriminant. Messages carry `text`, events carry `name`
    and `value`. Anything that is not a message, event, or typing notice is
    treated as "other" by the routing layer.
    """

    type: str
    id: Optional[str] = None
    channel_id: Optional[str] = None
    conversation_id: Optional[str] = None
    from_id: Optional[str] = None
    recipient_id: Optional[str] = None
    text: Optional[str] = None
    name: Optional[str] = None
    value: Any = None
    suggested_actions: Optional[SuggestedActions] = None


@dataclass(frozen=True)
class Address:
    """Identifies the conversation and participants a reply should target."""

    channel_id: Optional[str]
    conversation_id: Optional[str]
    user_id: Optional[str]
    bot_id: Optional[str]


def get_address(activity: Activity) -> Address:
    """Derive the reply address of an inbound activity.

    Derivation is total: fields the activity does not carry stay None.
    """

    return Address(
        channel_id=activity.channel_id,
        conversation_id=activity.conversation_id,
        user_id=activity.from_id,
        bot_id=activity.recipient_id,
    )
