"""Grok pattern registry and compiled matchers.

The registry is an explicit value: callers build one, register their custom
definitions on it and hand it to every compile step. Nothing is shared
between registries, so each run (or test) starts from the built-in table.
"""

from __future__ import annotations

import logging
import re
from functools import cached_property
from typing import Iterable, Optional

import regex
from pygrok import Grok

from .errors import CompileError, ConfigError
from .types import Record

logger = logging.getLogger(__name__)

DEFAULT_EXPRESSION = "%{GREEDYDATA:all}"

_BARE_REFERENCE = re.compile(r"%\{(\w+)\}")
_REFERENCE = re.compile(r"%\{(\w+)(?::\w+)*\}")


def split_pair(text: str, usage: str) -> tuple[str, str]:
    """Split 'text' on its first run of whitespace into two stripped parts."""
    parts = text.strip().split(None, 1)
    if len(parts) != 2:
        raise ConfigError(f"invalid {text!r} (should be {usage})")
    return parts[0], parts[1]


def parse_definition(text: str) -> tuple[str, str]:
    """Parse a custom pattern definition of the form 'NAME body'."""
    name, body = split_pair(text, '"pattern_name pattern"')
    if re.search(r"%\{" + re.escape(name) + r"(:\w+)*\}", body):
        raise ConfigError(f"pattern {name!r} refers to itself")
    return name, body


class Matcher:
    """A compiled grok expression.

    Matching is an unanchored search. The produced record holds every named
    capture of the expression, in the order the captures are declared. A
    name captured more than once, such as a repeated bare %{WORD}, keeps
    the value of its last occurrence.
    """

    def __init__(self, expression: str, compiled: regex.Pattern) -> None:
        self.expression = expression
        self._regex = compiled
        self.capture_names: tuple[str, ...] = tuple(
            name for name, _ in sorted(compiled.groupindex.items(), key=lambda item: item[1])
        )

    def match(self, text: str) -> Optional[Record]:
        m = self._regex.search(text)
        if m is None:
            return None
        return {name: m.group(name) or "" for name in self.capture_names}

    def matches(self, text: str) -> bool:
        return self._regex.search(text) is not None

    def __repr__(self) -> str:
        return f"Matcher({self.expression!r})"


class PatternRegistry:
    """Built-in grok patterns plus user definitions, by name."""

    def __init__(self, definitions: Iterable[str] = ()) -> None:
        self._custom: dict[str, str] = {}
        for text in definitions:
            self.add(text)

    @cached_property
    def builtin(self) -> dict[str, str]:
        # pygrok loads its bundled pattern files on construction
        return {name: p.regex_str for name, p in Grok("").predefined_patterns.items()}

    @property
    def custom(self) -> dict[str, str]:
        return dict(self._custom)

    def add(self, text: str) -> None:
        name, body = parse_definition(text)
        self.define(name, body)

    def define(self, name: str, body: str) -> None:
        logger.debug("defining pattern %s as %r", name, body)
        self._custom[name] = body

    def names(self) -> list[str]:
        return sorted(set(self.builtin) | set(self._custom))

    def lookup(self, name: str) -> str:
        if name in self._custom:
            return self._custom[name]
        try:
            return self.builtin[name]
        except KeyError:
            raise ConfigError(f"unknown target pattern {name}") from None

    def describe(self, target: str | None = None) -> str:
        """List every pattern name, or show the body of 'target'."""
        if target:
            return self.lookup(target)
        return "\n".join(self.names())

    def compile(self, expression: str, named_only: bool = False) -> Matcher:
        """Compile a grok expression against this registry.

        Unless 'named_only' is set, a bare %{NAME} reference is captured
        under its pattern name.
        """
        cycle = self._find_cycle(expression)
        if cycle:
            raise CompileError(expression, "recursive pattern " + " -> ".join(cycle))
        source = expression if named_only else _BARE_REFERENCE.sub(r"%{\1:\1}", expression)
        try:
            grok = Grok(source, custom_patterns=dict(self._custom))
        except KeyError as e:
            raise CompileError(expression, f"unknown pattern {e.args[0]}") from e
        except regex.error as e:
            raise CompileError(expression, str(e)) from e
        logger.debug("compiled %r as %r", expression, grok.regex_obj.pattern)
        return Matcher(expression, grok.regex_obj)

    def _find_cycle(self, expression: str) -> list[str]:
        """Return the first chain of pattern references that loops back on itself."""
        done: set[str] = set()

        def visit(name: str, path: list[str]) -> list[str]:
            if name in path:
                return path[path.index(name):] + [name]
            if name in done:
                return []
            body = self._custom.get(name, self.builtin.get(name))
            if body is not None:
                for ref in _REFERENCE.findall(body):
                    cycle = visit(ref, path + [name])
                    if cycle:
                        return cycle
            done.add(name)
            return []

        for ref in _REFERENCE.findall(expression):
            cycle = visit(ref, [])
            if cycle:
                return cycle
        return []
