"""Per-conversation state containers and prompts.

Every conversation gets its own store and its own `Prompt`, so a question
asked in one chat only captures replies from that chat. Conversations are
opened lazily the first time an activity arrives for them.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, Dict, Optional, Tuple

from core.matches import MessageMatch
from core.models import Address
from core.ports import StorePort
from core.prompt import Prompt
from core.rules_engine import Rule

LOGGER = logging.getLogger(__name__)

ConversationKey = Tuple[Optional[str], Optional[str]]


@dataclass(frozen=True)
class Conversation:
    store: StorePort
    prompt: Optional[Prompt] = None


def conversation_key(address: Address) -> ConversationKey:
    return address.channel_id, address.conversation_id


class Conversations:
    """Registry of conversations keyed by channel and conversation id."""

    def __init__(self, factory: Callable[[Address], Conversation]) -> None:
        self._factory = factory
        self._conversations: Dict[ConversationKey, Conversation] = {}

    def for_address(self, address: Address) -> Conversation:
        key = conversation_key(address)
        conversation = self._conversations.get(key)
        if conversation is None:
            conversation = self._factory(address)
            self._conversations[key] = conversation
            LOGGER.info("Opened conversation %s/%s", *key)
        return conversation

    def store_for(self, address: Address) -> StorePort:
        return self.for_address(address).store

    def prompt_for(self, address: Address) -> Optional[Prompt]:
        return self.for_address(address).prompt

    def __len__(self) -> int:
        return len(self._conversations)


class ConversationPromptRule(Rule[MessageMatch]):
    """Offers each message to the prompt of the conversation it came from."""

    def __init__(self, conversations: Conversations) -> None:
        self._conversations = conversations

    async def call_handler_if_match(self, match: MessageMatch) -> bool:
        prompt = self._conversations.prompt_for(match.address)
        if prompt is None:
            return False
        return prompt.respond(match.message)
