"""Rule composition and matching logic (core domain).

Rules form a lazy decision tree over a single match record. Evaluation is
top-to-bottom, left-to-right, and the first rule that matches commits:
later siblings are never evaluated for that activity.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable as IterableABC, Mapping
from dataclasses import dataclass
import inspect
from typing import Any, Awaitable, Callable, Generic, Iterable, Optional, Tuple, TypeVar, Union

M = TypeVar("M")
N = TypeVar("N")

MatcherResult = Union[None, N, Iterable[N]]
Matcher = Callable[[M], Union[MatcherResult, Awaitable[MatcherResult]]]
Predicate = Callable[[M], Union[bool, Awaitable[bool]]]
Handler = Callable[[M], Any]


async def _settle(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


async def matcher_results(matcher: Matcher, match: Any) -> Iterable[Any]:
    """Normalize whatever a matcher returns into an iterable of match records.

    A matcher may return a record, None, an iterable of records (a generator
    is consumed lazily), or an awaitable of any of those. Strings, bytes and
    mappings count as single records, not as collections of them.
    """

    result = await _settle(matcher(match))
    if result is None:
        return []
    if isinstance(result, IterableABC) and not isinstance(result, (str, bytes, Mapping)):
        return (item for item in result if item is not None)
    return [result]


class Rule(ABC, Generic[M]):
    """A composed predicate/handler unit."""

    @abstractmethod
    async def call_handler_if_match(self, match: M) -> bool:
        """Run the handler if this rule matches; return whether it did."""


@dataclass(frozen=True)
class FirstRule(Rule[M]):
    rules: Tuple[Rule[M], ...]

    async def call_handler_if_match(self, match: M) -> bool:
        for rule in self.rules:
            if await rule.call_handler_if_match(match):
                return True
        return False


@dataclass(frozen=True)
class PrependRule(Rule[M]):
    matcher: Matcher
    rule: Rule

    async def call_handler_if_match(self, match: M) -> bool:
        for narrowed in await matcher_results(self.matcher, match):
            if await self.rule.call_handler_if_match(narrowed):
                return True
        return False


@dataclass(frozen=True)
class FilterRule(Rule[M]):
    predicate: Predicate
    rule: Rule[M]

    async def call_handler_if_match(self, match: M) -> bool:
        if not await _settle(self.predicate(match)):
            return False
        return await self.rule.call_handler_if_match(match)


@dataclass(frozen=True)
class RunRule(Rule[M]):
    handler: Handler

    async def call_handler_if_match(self, match: M) -> bool:
        await _settle(self.handler(match))
        return True


def first(*rules: Optional[Rule[M]]) -> Rule[M]:
    """Try each rule in order and commit to the first that matches.

    None entries are skipped so optional sub-trees can be passed inline.
    """

    return FirstRule(tuple(rule for rule in rules if rule is not None))


def prepend(matcher: Matcher, rule: Rule) -> Rule:
    """Narrow or re-enrich the match before handing it to `rule`."""

    return PrependRule(matcher, rule)


def filter(predicate: Predicate, rule: Rule[M]) -> Rule[M]:
    """Only delegate to `rule` when `predicate` holds."""

    return FilterRule(predicate, rule)


def run(handler: Handler) -> Rule[M]:
    """Terminal rule: always matches and invokes `handler`."""

    return RunRule(handler)


class RuleHelpers(Generic[M]):
    """The combinators bound to one match type, for readable rule trees.

    `RuleHelpers[MessageMatch]()` gives `first`, `prepend`, `filter` and
    `run` whose signatures are narrowed to message matches.
    """

    def first(self, *rules: Optional[Rule[M]]) -> Rule[M]:
        return first(*rules)

    def prepend(self, matcher: Callable[[M], Any], rule: Rule) -> Rule[M]:
        return prepend(matcher, rule)

    def filter(self, predicate: Predicate, rule: Rule[M]) -> Rule[M]:
        return filter(predicate, rule)

    def run(self, handler: Callable[[M], Any]) -> Rule[M]:
        return run(handler)
