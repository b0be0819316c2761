"""In-process state container.

Holds one immutable snapshot at a time. `dispatch` runs the reducer to
produce the next snapshot and notifies subscribers; nothing is mutated in
place.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List

from core.ports import Action

LOGGER = logging.getLogger(__name__)

Reducer = Callable[[Any, Action], Any]


class MemoryStore:
    """Reducer-driven store implementing `StorePort`."""

    def __init__(self, reducer: Reducer, initial_state: Any) -> None:
        self._reducer = reducer
        self._state = initial_state
        self._listeners: List[Callable[[], None]] = []

    def get_state(self) -> Any:
        return self._state

    def dispatch(self, action: Action) -> None:
        if "type" not in action:
            raise ValueError("Actions must have a 'type'")
        next_state = self._reducer(self._state, action)
        if next_state is self._state:
            return
        self._state = next_state
        LOGGER.debug("State changed by %s", action["type"])
        for listener in list(self._listeners):
            listener()

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
