from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from .errors import MissingFieldError
from .patterns import Matcher, PatternRegistry, split_pair

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterRule:
    """Include or exclude records whose 'field' value matches 'matcher'.

    Rules are written as "<field> <pattern>"; a leading '-' marks an
    exclude rule.
    """
    field: str
    matcher: Matcher
    exclude: bool = False

    def value_of(self, record: Mapping[str, str]) -> str:
        try:
            return record[self.field]
        except KeyError:
            raise MissingFieldError(self.field, "filter") from None

    def matches(self, record: Mapping[str, str]) -> bool:
        return self.matcher.matches(self.value_of(record))


def parse_filter_rule(text: str, registry: PatternRegistry) -> FilterRule:
    exclude = text.startswith("-")
    body = text[1:] if exclude else text
    name, pattern = split_pair(body, '"field_name pattern"')
    return FilterRule(field=name, matcher=registry.compile(pattern), exclude=exclude)


@dataclass
class FilterChain:
    """Ordered include/exclude rules folded into one keep/drop verdict.

    Every record starts as kept. A rule whose pattern matches sets the
    verdict according to its polarity; a rule that does not match leaves
    the verdict from the earlier rules untouched.
    """
    rules: tuple[FilterRule, ...] = field(default_factory=tuple)

    @classmethod
    def parse(cls, texts: Iterable[str], registry: PatternRegistry) -> FilterChain:
        return cls(rules=tuple(parse_filter_rule(t, registry) for t in texts))

    def keep(self, record: Mapping[str, str]) -> bool:
        to_keep = True
        for rule in self.rules:
            value = rule.value_of(record)
            if rule.matcher.matches(value):
                to_keep = not rule.exclude
            logger.debug(
                "filter: name: %s, pattern: %s, to_keep: %s, content: %r",
                rule.field,
                rule.matcher.expression,
                to_keep,
                value,
            )
        return to_keep

    def __len__(self) -> int:
        return len(self.rules)
