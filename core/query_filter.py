"""
Symbol-prefix query filter for choosing which pools to monitor.

A query term is either a single prefix ("wavax"), matching a pool when either
token symbol starts with it, or a pair of prefixes ("wavax/usdc"), matching
when the two symbols match the two prefixes in either order. Matching is
case-insensitive. A pool is kept when any term matches; an empty filter keeps
everything.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from shared.types import Pair

_SEPARATORS = ("/", "-", ":")


@dataclass(frozen=True)
class QueryTerm:
    first: str
    second: str | None = None

    def matches(self, pair: Pair) -> bool:
        a = pair.symbol_a.lower()
        b = pair.symbol_b.lower()
        if self.second is None:
            return a.startswith(self.first) or b.startswith(self.first)
        return (a.startswith(self.first) and b.startswith(self.second)) or (
            a.startswith(self.second) and b.startswith(self.first)
        )


def parse_term(raw: str) -> QueryTerm:
    text = raw.strip().lower()
    for sep in _SEPARATORS:
        if sep in text:
            first, second = (part.strip() for part in text.split(sep, 1))
            return QueryTerm(first, second)
    return QueryTerm(text)


class QueryFilter:
    def __init__(self, terms: Iterable[QueryTerm] = ()) -> None:
        self._terms = tuple(terms)

    @classmethod
    def parse(cls, raw_terms: Iterable[str] | None) -> QueryFilter:
        return cls(parse_term(t) for t in (raw_terms or []) if t and t.strip())

    @property
    def terms(self) -> tuple[QueryTerm, ...]:
        return self._terms

    def is_empty(self) -> bool:
        return not self._terms

    def matches(self, pair: Pair) -> bool:
        if not self._terms:
            return True
        return any(term.matches(pair) for term in self._terms)
