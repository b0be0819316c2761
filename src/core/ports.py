"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for the transport connector and the
shared state container so that the core can be reused with different
backends.
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Callable, Mapping, Protocol, Union

from core.models import Activity, Address

Action = Mapping[str, Any]


class TransportPort(Protocol):
    """Outbound sends and the inbound activity source."""

    def send(self, address: Address, content: Union[Activity, str]) -> None:
        """Fire-and-forget send to a conversation."""
        ...

    async def send_async(self, address: Address, content: Union[Activity, str]) -> None:
        ...

    def post_activity(self, activity: Activity) -> None:
        """Send a fully formed outbound activity, suggested actions included."""
        ...

    def activities(self) -> AsyncIterator[Activity]:
        """Lazy, unbounded, non-restartable inbound stream."""
        ...


class StorePort(Protocol):
    """Shared state container with immutable snapshots."""

    def get_state(self) -> Any:
        ...

    def dispatch(self, action: Action) -> None:
        ...

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        ...
