"""Demo conversation wired by the app entry point.

Asks for the user's name on first contact, offers a colour choice when the
user mentions colours, and echoes everything else.
"""

from __future__ import annotations

from typing import Mapping, Optional, Sequence

from adapters.memory_store import MemoryStore
from core.conversations import Conversation, Conversations
from core.dispatcher import ChatRules
from core.matches import EventMatch, MessageMatch
from core.models import Address
from core.ports import StorePort, TransportPort
from core.prompt import Prompt, RespondersFactory
from core.rules_engine import RuleHelpers
from core.state import ChatState, chat_reducer, set_app_value

NAME_PROMPT = "awaitingName"
COLOR_PROMPT = "awaitingColor"
COLORS = "colors"


def build_responders(store: StorePort) -> RespondersFactory:
    def factory(prompt: Prompt):
        def on_name(text: str) -> bool:
            if not text.strip():
                return False
            store.dispatch(set_app_value("name", text.strip()))
            return True

        def on_color(choice: Optional[str]) -> bool:
            if choice is None:
                return False
            store.dispatch(set_app_value("color", choice))
            return True

        return {
            NAME_PROMPT: on_name,
            COLOR_PROMPT: prompt.choice_responder(COLORS, on_color),
        }

    return factory


def build_conversations(
    transport: TransportPort,
    choice_lists: Mapping[str, Sequence[str]],
    bot_id: str = "RecipeBot",
) -> Conversations:
    """Give every conversation its own store and prompt."""

    def open_conversation(address: Address) -> Conversation:
        store = MemoryStore(chat_reducer, ChatState())
        prompt = Prompt(transport, store, choice_lists, build_responders(store), address=address, bot_id=bot_id)
        return Conversation(store=store, prompt=prompt)

    return Conversations(open_conversation)


def build_rules(conversations: Conversations) -> ChatRules:
    m = RuleHelpers[MessageMatch]()
    e = RuleHelpers[EventMatch]()

    async def greet(match: MessageMatch) -> None:
        name = match.state.app.get("name")
        color = match.state.app.get("color")
        reply = f"{name}, you said: {match.text}"
        if color:
            reply += f" (favourite colour: {color})"
        await match.reply_async(reply)

    return ChatRules(
        messages=m.first(
            m.filter(
                lambda match: "colo" in match.text.lower(),
                m.run(lambda match: conversations.prompt_for(match.address).choice(COLOR_PROMPT, COLORS, "Pick a colour")),
            ),
            m.filter(
                lambda match: "name" not in match.state.app,
                m.run(lambda match: conversations.prompt_for(match.address).text(NAME_PROMPT, "What's your name?")),
            ),
            m.run(greet),
        ),
        events=e.run(lambda match: match.reply(f"Event {match.event.name}: {match.event.value}")),
    )
