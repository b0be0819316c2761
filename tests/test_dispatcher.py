from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from adapters.memory_store import MemoryStore
from adapters.memory_transport import QueueTransport
from core.config import DispatcherConfig
from core.dispatcher import ChatRules, Dispatcher
from core.enricher import ContextEnricher
from core.models import Activity
from core.prompt import Prompt
from core.rules_engine import filter, first, run
from core.state import ChatState, chat_reducer


class RecordingObserver:
    def __init__(self) -> None:
        self.events: list[tuple[str, Optional[str]]] = []
        self.errors: list[BaseException] = []

    def on_received(self, activity: Activity) -> None:
        self.events.append(("received", activity.id))

    def on_matched(self, activity: Activity) -> None:
        self.events.append(("matched", activity.id))

    def on_unmatched(self, activity: Activity) -> None:
        self.events.append(("unmatched", activity.id))

    def on_error(self, activity: Activity, error: BaseException) -> None:
        self.events.append(("error", activity.id))
        self.errors.append(error)

    def on_completed(self) -> None:
        self.events.append(("completed", None))


def _activity(type_: str, activity_id: str, **kwargs) -> Activity:
    return Activity(type=type_, id=activity_id, channel_id="test", conversation_id="c1", from_id="u1", **kwargs)


def _dispatcher(
    rules: ChatRules,
    *,
    prompt_factory=None,
    choice_lists=None,
    config: Optional[DispatcherConfig] = None,
) -> tuple[Dispatcher, QueueTransport, MemoryStore, RecordingObserver, Optional[Prompt]]:
    transport = QueueTransport()
    store = MemoryStore(chat_reducer, ChatState())
    observer = RecordingObserver()
    prompt = None
    if prompt_factory is not None:
        prompt = Prompt(transport, store, choice_lists or {}, prompt_factory)
    dispatcher = Dispatcher(
        ContextEnricher(transport, store),
        rules,
        prompt=prompt,
        observer=observer,
        config=config,
    )
    return dispatcher, transport, store, observer, prompt


def _feed(dispatcher: Dispatcher, transport: QueueTransport, *activities: Activity) -> None:
    for activity in activities:
        transport.push(activity)
    transport.close()
    asyncio.run(dispatcher.run(transport.activities()))


def test_message_routes_to_message_handler_once() -> None:
    handled: list[str] = []
    dispatcher, transport, _, observer, _ = _dispatcher(ChatRules(messages=run(lambda m: handled.append(m.text))))

    _feed(dispatcher, transport, _activity("message", "1", text="hello"))

    assert handled == ["hello"]
    assert observer.events == [("received", "1"), ("matched", "1"), ("completed", None)]


def test_variants_route_in_priority_order() -> None:
    calls: list[tuple[str, str]] = []
    rules = ChatRules(
        messages=run(lambda m: calls.append(("messages", m.activity.id))),
        events=run(lambda m: calls.append(("events", m.event.name))),
        typing=run(lambda m: calls.append(("typing", m.activity.id))),
        other=run(lambda m: calls.append(("other", m.activity.type))),
    )
    dispatcher, transport, _, _, _ = _dispatcher(rules)

    _feed(
        dispatcher,
        transport,
        _activity("typing", "1"),
        _activity("event", "2", name="ping"),
        _activity("message", "3", text="hi"),
        _activity("conversationUpdate", "4"),
    )

    assert calls == [("typing", "1"), ("events", "ping"), ("messages", "3"), ("other", "conversationUpdate")]


def test_unmatched_variant_is_reported_without_side_effects() -> None:
    dispatcher, transport, _, observer, _ = _dispatcher(ChatRules(messages=run(lambda m: None)))

    _feed(dispatcher, transport, _activity("typing", "1"))

    assert observer.events == [("received", "1"), ("unmatched", "1"), ("completed", None)]


def test_other_sees_unclaimed_messages() -> None:
    calls: list[str] = []
    rules = ChatRules(
        messages=filter(lambda m: m.text == "claimed", run(lambda m: calls.append("messages"))),
        other=run(lambda m: calls.append("other")),
    )
    dispatcher, transport, _, _, _ = _dispatcher(rules)

    _feed(dispatcher, transport, _activity("message", "1", text="claimed"), _activity("message", "2", text="free"))

    assert calls == ["messages", "other"]


def test_first_match_commits_in_message_rules() -> None:
    calls: list[str] = []
    rules = ChatRules(messages=first(run(lambda m: calls.append("a")), run(lambda m: calls.append("b"))))
    dispatcher, transport, _, _, _ = _dispatcher(rules)

    _feed(dispatcher, transport, _activity("message", "1", text="x"))

    assert calls == ["a"]


def test_handler_error_is_reported_and_loop_continues() -> None:
    handled: list[str] = []

    def handler(match) -> None:
        if match.text == "boom":
            raise RuntimeError("handler failed")
        handled.append(match.text)

    dispatcher, transport, _, observer, _ = _dispatcher(ChatRules(messages=run(handler)))

    _feed(dispatcher, transport, _activity("message", "1", text="boom"), _activity("message", "2", text="ok"))

    assert handled == ["ok"]
    assert ("error", "1") in observer.events
    assert str(observer.errors[0]) == "handler failed"
    assert observer.events[-1] == ("completed", None)


def test_halt_on_error_stops_the_loop() -> None:
    handled: list[str] = []

    def handler(match) -> None:
        if match.text == "boom":
            raise RuntimeError("handler failed")
        handled.append(match.text)

    dispatcher, transport, _, observer, _ = _dispatcher(
        ChatRules(messages=run(handler)),
        config=DispatcherConfig(halt_on_error=True),
    )

    with pytest.raises(RuntimeError):
        _feed(dispatcher, transport, _activity("message", "1", text="boom"), _activity("message", "2", text="ok"))

    assert handled == []
    assert ("completed", None) not in observer.events


def test_activities_are_handled_one_at_a_time() -> None:
    log: list[str] = []

    async def slow_handler(match) -> None:
        log.append(f"start {match.text}")
        await asyncio.sleep(0.01)
        await match.reply_async(f"reply {match.text}")
        log.append(f"end {match.text}")

    dispatcher, transport, _, _, _ = _dispatcher(ChatRules(messages=run(slow_handler)))

    async def scenario() -> None:
        task = dispatcher.start(transport.activities())
        transport.push(_activity("message", "1", text="first"))
        transport.push(_activity("message", "2", text="second"))
        transport.close()
        await task

    asyncio.run(scenario())

    assert log == ["start first", "end first", "start second", "end second"]
    assert [content for _, content in transport.sent] == ["reply first", "reply second"]


def test_stop_lets_in_flight_activity_finish() -> None:
    log: list[str] = []

    async def scenario() -> None:
        release = asyncio.Event()

        async def handler(match) -> None:
            log.append(f"start {match.text}")
            await release.wait()
            log.append(f"end {match.text}")

        dispatcher, transport, _, _, _ = _dispatcher(ChatRules(messages=run(handler)))
        task = dispatcher.start(transport.activities())
        transport.push(_activity("message", "1", text="first"))
        transport.push(_activity("message", "2", text="second"))
        await asyncio.sleep(0.01)

        dispatcher.stop()
        release.set()
        await task

    asyncio.run(scenario())

    assert log == ["start first", "end first"]


def test_stop_cancels_idle_loop() -> None:
    async def scenario() -> bool:
        dispatcher, transport, _, observer, _ = _dispatcher(ChatRules(messages=run(lambda m: None)))
        task = dispatcher.start(transport.activities())
        await asyncio.sleep(0.01)

        dispatcher.stop()
        await asyncio.gather(task, return_exceptions=True)
        return task.cancelled() and ("completed", None) not in observer.events

    assert asyncio.run(scenario()) is True


def test_start_twice_is_rejected() -> None:
    async def scenario() -> None:
        dispatcher, transport, _, _, _ = _dispatcher(ChatRules())
        dispatcher.start(transport.activities())
        try:
            with pytest.raises(RuntimeError):
                dispatcher.start(transport.activities())
        finally:
            dispatcher.stop()

    asyncio.run(scenario())


def test_text_prompt_captures_next_message() -> None:
    handled: list[str] = []
    names: list[str] = []
    prompt_holder: list[Prompt] = []

    def factory(prompt: Prompt):
        prompt_holder.append(prompt)

        def on_name(text) -> bool:
            names.append(text)
            return True

        return {"awaitingName": on_name}

    def handler(match) -> None:
        handled.append(match.text)
        prompt_holder[0].text("awaitingName", "What's your name?", address=match.address)

    dispatcher, transport, store, _, _ = _dispatcher(ChatRules(messages=run(handler)), prompt_factory=factory)

    _feed(
        dispatcher,
        transport,
        _activity("message", "1", text="hi"),
        _activity("message", "2", text="Ada"),
        _activity("message", "3", text="hello again"),
    )

    assert handled == ["hi", "hello again"]
    assert names == ["Ada"]
    assert [content for _, content in transport.sent] == ["What's your name?", "What's your name?"]
    assert store.get_state().bot.prompt_key == "awaitingName"


def test_prompt_survives_unrelated_activities() -> None:
    handled: list[str] = []
    names: list[str] = []

    def factory(prompt: Prompt):
        return {"awaitingName": lambda text: names.append(text) or True}

    rules = ChatRules(
        messages=run(lambda m: handled.append(m.text)),
        events=run(lambda m: handled.append(f"event {m.event.name}")),
    )
    dispatcher, transport, store, _, prompt = _dispatcher(rules, prompt_factory=factory)
    prompt.set("awaitingName")

    _feed(
        dispatcher,
        transport,
        _activity("event", "1", name="ping"),
        _activity("typing", "2"),
        _activity("message", "3", text="Grace"),
        _activity("message", "4", text="after"),
    )

    assert names == ["Grace"]
    assert handled == ["event ping", "after"]
    assert store.get_state().bot.prompt_key is None


def test_choice_prompt_resolves_case_insensitively() -> None:
    colors: list[str] = []
    prompt_holder: list[Prompt] = []

    def factory(prompt: Prompt):
        prompt_holder.append(prompt)
        return {"awaitingColor": prompt.choice_responder("colors", lambda choice: colors.append(choice) or True)}

    rules = ChatRules(
        messages=run(lambda m: prompt_holder[0].choice("awaitingColor", "colors", "Pick a color", address=m.address))
    )
    dispatcher, transport, store, _, _ = _dispatcher(
        rules,
        prompt_factory=factory,
        choice_lists={"colors": ["Red", "Blue"]},
    )

    _feed(dispatcher, transport, _activity("message", "1", text="color?"), _activity("message", "2", text="RED"))

    (posted,) = transport.posted
    assert [action.title for action in posted.suggested_actions.actions] == ["Red", "Blue"]
    assert colors == ["Red"]
    assert store.get_state().bot.prompt_key is None


def test_rejected_prompt_input_does_not_fall_through() -> None:
    handled: list[str] = []

    dispatcher, transport, store, observer, prompt = _dispatcher(
        ChatRules(messages=run(lambda m: handled.append(m.text))),
        prompt_factory=lambda p: {"awaitingName": lambda text: False},
    )
    prompt.set("awaitingName")

    _feed(dispatcher, transport, _activity("message", "1", text="nope"))

    assert handled == []
    assert ("matched", "1") in observer.events
    assert store.get_state().bot.prompt_key == "awaitingName"
