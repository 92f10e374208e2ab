"""Assembly of multiline records.

A merge scope opens on a line matching the start expression and closes on a
line matching the end expression. While a scope is open, the merge fields of
each absorbed record are appended, newline-separated, to the record that
opened it. With an exclusive end the closing line is not absorbed: it is
emitted on its own, or opens the next scope if it also matches the start
expression.
"""

from __future__ import annotations

import logging
from typing import Sequence

from .errors import MissingFieldError
from .patterns import Matcher
from .types import Record, ScopeState

logger = logging.getLogger(__name__)


class MergeEngine:
    def __init__(
        self,
        merge_fields: Sequence[str],
        start: Matcher,
        end: Matcher,
        exclusive: bool = False,
    ) -> None:
        self.merge_fields = tuple(merge_fields)
        self.start = start
        self.end = end
        self.exclusive = exclusive
        self.state = ScopeState.OUTSIDE
        self._buffer: Record = {}

    @property
    def buffer(self) -> Record:
        return dict(self._buffer)

    def push(self, line: str, record: Record) -> list[Record]:
        """Feed one matched line and return the records ready to emit."""
        starts = self.start.matches(line)

        if self.state is ScopeState.OUTSIDE:
            if starts:
                logger.debug("merge: entering merge scope: %s", line)
                self._open(record)
                return []
            logger.debug("merge: regular line: %s", line)
            return [record]

        if not self.end.matches(line):
            logger.debug("merge: in scope: %s", line)
            self._absorb(record)
            return []

        if not self.exclusive:
            logger.debug("merge: leaving merge scope (inclusive): %s", line)
            self._absorb(record)
            self.state = ScopeState.OUTSIDE
            return [self._flush()]

        logger.debug("merge: leaving merge scope (exclusive): %s", line)
        flushed = self._flush()
        if starts:
            # The closing line opens the next scope right away.
            logger.debug("merge: still in merge scope as ending line matches start pattern")
            self._open(record)
            return [flushed]
        self.state = ScopeState.OUTSIDE
        return [flushed, record]

    def finish(self) -> list[Record]:
        """Flush a scope left open when the input ends."""
        if self.state is ScopeState.OUTSIDE:
            return []
        logger.debug("merge: input ended inside merge scope, flushing buffer")
        self.state = ScopeState.OUTSIDE
        return [self._flush()]

    def _open(self, record: Record) -> None:
        self._buffer = dict(record)
        self.state = ScopeState.INSIDE

    def _absorb(self, record: Record) -> None:
        for name in self.merge_fields:
            try:
                value = record[name]
            except KeyError:
                raise MissingFieldError(name, "merge fields") from None
            previous = self._buffer.get(name)
            self._buffer[name] = value if previous is None else f"{previous}\n{value}"

    def _flush(self) -> Record:
        flushed, self._buffer = self._buffer, {}
        return flushed
