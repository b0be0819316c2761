"""Single-slot prompt state machine.

A handler can ask a question with `Prompt.text` or `Prompt.choice`. That
records a prompt key in the shared state container, and every inbound
message is then offered to the responder registered for that key before
any ordinary message rule sees it.

Once a prompt is outstanding, all inbound text is consumed by it until a
responder accepts the input. Rejected input is swallowed without feedback
to the user; a responder that wants a retry message has to send it itself.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from core.matches import MessageMatch
from core.models import MESSAGE, Activity, Address, CardAction, SuggestedActions
from core.ports import StorePort, TransportPort
from core.rules_engine import Rule
from core.state import select_prompt_key, set_prompt_key

LOGGER = logging.getLogger(__name__)

Responder = Callable[[str], bool]
Responders = Dict[str, Responder]
RespondersFactory = Callable[["Prompt"], Mapping[str, Responder]]


class Prompt:
    """Owns the prompt slot of one state container."""

    def __init__(
        self,
        transport: TransportPort,
        store: StorePort,
        choice_lists: Mapping[str, Sequence[str]],
        responders_factory: RespondersFactory,
        address: Optional[Address] = None,
        bot_id: str = "RecipeBot",
        get_prompt_key: Callable[[Any], Optional[str]] = select_prompt_key,
    ) -> None:
        self._transport = transport
        self._store = store
        self._choice_lists = {name: tuple(choices) for name, choices in choice_lists.items()}
        self._address = address
        self._bot_id = bot_id
        self._get_prompt_key = get_prompt_key
        # Built last so responders can close over a fully initialized prompt.
        self._responders: Responders = dict(responders_factory(self))

    @property
    def prompt_key(self) -> Optional[str]:
        return self._get_prompt_key(self._store.get_state())

    def set(self, prompt_key: Optional[str]) -> None:
        self._store.dispatch(set_prompt_key(prompt_key))

    def clear(self) -> None:
        self.set(None)

    def respond(self, message: Activity) -> bool:
        """Offer an inbound message to the outstanding prompt.

        Returns False when no prompt is outstanding. Otherwise returns True,
        whether or not the responder accepted the text.
        """

        prompt_key = self.prompt_key
        if not prompt_key:
            return False

        responder = self._responders.get(prompt_key)
        if responder is None:
            LOGGER.warning("No responder registered for prompt %r", prompt_key)
            return True

        # Messages without text are answered as the empty string.
        if responder(message.text or ""):
            LOGGER.debug("Prompt %r answered", prompt_key)
            self.clear()
        else:
            LOGGER.debug("Prompt %r rejected input", prompt_key)
        return True

    # Prompt creators

    def _target(self, address: Optional[Address]) -> Address:
        target = address or self._address
        if target is None:
            raise ValueError("Prompt has no address to send to")
        return target

    def text(self, prompt_key: str, text: str, address: Optional[Address] = None) -> None:
        target = self._target(address)
        self.set(prompt_key)
        self._transport.send(target, text)

    def choice(
        self,
        prompt_key: str,
        choice_name: str,
        text: str,
        address: Optional[Address] = None,
    ) -> None:
        """Ask the user to pick from a named choice list.

        An unknown list is a configuration error: nothing is sent and the
        prompt slot is left alone.
        """

        choice_list = self._choice_lists.get(choice_name)
        if choice_list is None:
            LOGGER.warning("Unknown choice list %r for prompt %r", choice_name, prompt_key)
            return

        target = self._target(address)
        self.set(prompt_key)
        self._transport.post_activity(
            Activity(
                type=MESSAGE,
                channel_id=target.channel_id,
                conversation_id=target.conversation_id,
                from_id=self._bot_id,
                recipient_id=target.user_id,
                text=text,
                suggested_actions=SuggestedActions(
                    actions=tuple(CardAction(title=choice, value=choice) for choice in choice_list)
                ),
            )
        )

    # Prompt responders

    def find_choice(self, choice_name: str, text: Optional[str]) -> Optional[str]:
        """Case-insensitive exact lookup; the first matching entry wins."""

        if text is None:
            return None
        wanted = text.lower()
        for choice in self._choice_lists.get(choice_name, ()):
            if choice.lower() == wanted:
                return choice
        return None

    def choice_responder(
        self, choice_name: str, responder: Callable[[Optional[str]], bool]
    ) -> Responder:
        """Wrap `responder` so it receives the matched choice, or None."""

        if choice_name not in self._choice_lists:
            LOGGER.warning("Responder bound to unknown choice list %r", choice_name)

        def respond_with_choice(text: str) -> bool:
            return responder(self.find_choice(choice_name, text))

        return respond_with_choice


class PromptRule(Rule[MessageMatch]):
    """Rule that matches whenever the prompt consumes the message."""

    def __init__(self, prompt: Prompt) -> None:
        self._prompt = prompt

    async def call_handler_if_match(self, match: MessageMatch) -> bool:
        return self._prompt.respond(match.message)
