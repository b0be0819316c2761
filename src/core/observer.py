"""Dispatch checkpoints reported to an observer.

The dispatcher never logs control flow directly; it calls one of these hooks
at each checkpoint and the observer decides what to do with it.
"""

from __future__ import annotations

import logging
from typing import Protocol

from core.models import Activity

LOGGER = logging.getLogger(__name__)


class DispatchObserver(Protocol):
    def on_received(self, activity: Activity) -> None:
        ...

    def on_matched(self, activity: Activity) -> None:
        ...

    def on_unmatched(self, activity: Activity) -> None:
        ...

    def on_error(self, activity: Activity, error: BaseException) -> None:
        ...

    def on_completed(self) -> None:
        ...


class LoggingObserver:
    """Default observer writing every checkpoint to the module logger."""

    def on_received(self, activity: Activity) -> None:
        LOGGER.debug("Received %s activity %s", activity.type, activity.id)

    def on_matched(self, activity: Activity) -> None:
        LOGGER.debug("Handled %s activity %s", activity.type, activity.id)

    def on_unmatched(self, activity: Activity) -> None:
        LOGGER.debug("No rule matched %s activity %s", activity.type, activity.id)

    def on_error(self, activity: Activity, error: BaseException) -> None:
        LOGGER.error(
            "Error while handling %s activity %s",
            activity.type,
            activity.id,
            exc_info=(type(error), error, error.__traceback__),
        )

    def on_completed(self) -> None:
        LOGGER.info("Activity stream completed")
