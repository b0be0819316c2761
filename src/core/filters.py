"""Shape filters narrowing a `ChatMatch` to one activity variant.

Each filter is a generator: it yields exactly one narrowed record when the
discriminant matches and nothing otherwise. A mismatch is never an error.
"""

from __future__ import annotations

from typing import Iterator

from core.matches import ChatMatch, EventMatch, MessageMatch, TypingMatch, extend
from core.models import EVENT, MESSAGE, TYPING


def messages(match: ChatMatch) -> Iterator[MessageMatch]:
    activity = match.activity
    if activity.type == MESSAGE:
        yield extend(match, MessageMatch, text=activity.text or "", message=activity)


def events(match: ChatMatch) -> Iterator[EventMatch]:
    if match.activity.type == EVENT:
        yield extend(match, EventMatch, event=match.activity)


def typing(match: ChatMatch) -> Iterator[TypingMatch]:
    if match.activity.type == TYPING:
        yield extend(match, TypingMatch, typing=match.activity)
