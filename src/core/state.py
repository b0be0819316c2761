"""Default shape of the shared state container and its reducer."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping, Optional

from core.ports import Action

SET_PROMPT_KEY = "Set_PromptKey"
SET_APP_VALUE = "Set_AppValue"


@dataclass(frozen=True)
class BotState:
    """Conversational bookkeeping. `prompt_key` is the single prompt slot."""

    prompt_key: Optional[str] = None


@dataclass(frozen=True)
class ChatState:
    bot: BotState = field(default_factory=BotState)
    app: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))


def set_prompt_key(prompt_key: Optional[str]) -> dict:
    return {"type": SET_PROMPT_KEY, "promptKey": prompt_key}


def set_app_value(key: str, value: Any) -> dict:
    return {"type": SET_APP_VALUE, "key": key, "value": value}


def select_prompt_key(state: Any) -> Optional[str]:
    """Read the prompt slot from a state shaped like `ChatState`."""

    return state.bot.prompt_key


def select_bot_data(state: Any) -> Any:
    return state.bot


def chat_reducer(state: ChatState, action: Action) -> ChatState:
    """Return the next state; unknown actions leave the state untouched."""

    action_type = action.get("type")
    if action_type == SET_PROMPT_KEY:
        return replace(state, bot=replace(state.bot, prompt_key=action.get("promptKey")))
    if action_type == SET_APP_VALUE:
        app = dict(state.app)
        app[action["key"]] = action.get("value")
        return replace(state, app=MappingProxyType(app))
    return state
