"""Context enrichment for inbound activities."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Union

from core.conversations import Conversations
from core.matches import ActivityMatch, ChatMatch, extend
from core.models import Activity, get_address
from core.ports import StorePort, TransportPort
from core.state import select_bot_data

LOGGER = logging.getLogger(__name__)


class ContextEnricher:
    """Matcher that turns an `ActivityMatch` into a `ChatMatch`.

    The state snapshot is read exactly once here; every downstream stage sees
    that same snapshot even if the container changes mid-pipeline. With
    `conversations`, the snapshot comes from the store of the activity's own
    conversation.
    """

    def __init__(
        self,
        transport: TransportPort,
        store: Optional[StorePort] = None,
        get_bot_data: Callable[[Any], Any] = select_bot_data,
        conversations: Optional[Conversations] = None,
    ) -> None:
        if store is None and conversations is None:
            raise ValueError("ContextEnricher needs a store or conversations")
        self._transport = transport
        self._store = store
        self._conversations = conversations
        self._get_bot_data = get_bot_data

    def __call__(self, match: ActivityMatch) -> ChatMatch:
        if isinstance(match, ChatMatch):
            return match

        address = get_address(match.activity)
        store = self._conversations.store_for(address) if self._conversations is not None else self._store
        state = store.get_state()
        transport = self._transport

        def reply(content: Union[Activity, str]) -> None:
            transport.send(address, content)

        async def reply_async(content: Union[Activity, str]) -> None:
            await transport.send_async(address, content)

        LOGGER.debug("Enriched %s activity for %s", match.activity.type, address.conversation_id)
        return extend(
            match,
            ChatMatch,
            address=address,
            reply=reply,
            reply_async=reply_async,
            data=self._get_bot_data(state),
            state=state,
            store=store,
            get_bot_data=self._get_bot_data,
        )
