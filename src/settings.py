"""Static configuration for chatrules.

All user-editable settings (choice lists, dispatcher policy, bot identity,
logging) live in a single JSON file for quick edits without touching Python.
"""

import json
import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Choice lists and surface settings are loaded from config.json so prompts
# can be reworded without editing code.
CONFIG_PATH = os.environ.get("CHATRULES_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _normalize_choice_lists(raw_lists: dict) -> dict[str, tuple[str, ...]]:
    """Keep only non-empty lists of strings, preserving order."""

    choice_lists: dict[str, tuple[str, ...]] = {}
    for name, choices in raw_lists.items():
        if not isinstance(choices, list):
            continue
        cleaned = tuple(str(choice) for choice in choices if str(choice).strip())
        if cleaned:
            choice_lists[name] = cleaned
    return choice_lists


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Named choice lists offered by choice prompts.
CHOICE_LISTS = _normalize_choice_lists(_CONFIG.get("choice_lists", {}))

# Dispatcher policy after a handler error: keep going (default) or halt.
_dispatcher = _CONFIG.get("dispatcher", {})
HALT_ON_ERROR = bool(_dispatcher.get("halt_on_error", False))

# Sender id stamped on posted prompt activities.
_bot = _CONFIG.get("bot", {})
BOT_ID = str(_bot.get("id", "RecipeBot"))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
