"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Tuple


@dataclass(frozen=True)
class DispatcherConfig:
    """Dispatch loop settings.

    halt_on_error: stop the loop after reporting a handler error instead of
    moving on to the next activity.
    """

    halt_on_error: bool = False


@dataclass(frozen=True)
class PromptConfig:
    """Prompt settings: sender id for posted prompts and the choice lists."""

    bot_id: str = "RecipeBot"
    choice_lists: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
