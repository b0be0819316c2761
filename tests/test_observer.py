from __future__ import annotations

import logging

from core.models import Activity
from core.observer import LoggingObserver


def test_logging_observer_reports_errors_with_traceback(caplog) -> None:
    observer = LoggingObserver()
    activity = Activity(type="message", id="1")
    try:
        raise RuntimeError("boom")
    except RuntimeError as exc:
        error = exc

    with caplog.at_level(logging.DEBUG, logger="core.observer"):
        observer.on_received(activity)
        observer.on_error(activity, error)
        observer.on_completed()

    messages = [record.getMessage() for record in caplog.records]
    assert "Received message activity 1" in messages
    assert "Error while handling message activity 1" in messages
    assert "Activity stream completed" in messages
    error_record = next(record for record in caplog.records if record.levelno == logging.ERROR)
    assert error_record.exc_info[1] is error
