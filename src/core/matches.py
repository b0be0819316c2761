"""Match records threaded through the rule pipeline.

Each stage produces a new record holding every field of the previous one
plus its own additions. Records are frozen, so a value set by one stage is
the value every later stage sees for that activity.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Awaitable, Callable, Type, TypeVar, Union

from core.models import Activity, Address
from core.ports import StorePort

Content = Union[Activity, str]

M = TypeVar("M", bound="ActivityMatch")


@dataclass(frozen=True)
class ActivityMatch:
    """The bare record every activity starts as."""

    activity: Activity


@dataclass(frozen=True)
class ChatMatch(ActivityMatch):
    """An activity enriched with its address, reply functions, and state."""

    address: Address
    reply: Callable[[Content], None]
    reply_async: Callable[[Content], Awaitable[None]]
    data: Any
    state: Any
    store: StorePort
    get_bot_data: Callable[[Any], Any]


@dataclass(frozen=True)
class MessageMatch(ChatMatch):
    text: str
    message: Activity


@dataclass(frozen=True)
class EventMatch(ChatMatch):
    event: Activity


@dataclass(frozen=True)
class TypingMatch(ChatMatch):
    typing: Activity


def extend(match: ActivityMatch, cls: Type[M], **additions: Any) -> M:
    """Build a `cls` record from `match` plus `additions`.

    Fields already present on `match` are copied as-is; an addition may not
    replace one of them.
    """

    current = {f.name: getattr(match, f.name) for f in fields(match)}
    overlap = sorted(set(current) & set(additions))
    if overlap:
        raise ValueError(f"Cannot override match fields: {', '.join(overlap)}")
    return cls(**current, **additions)
