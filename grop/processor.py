from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, TextIO

from .errors import StreamError
from .merge import MergeEngine
from .patterns import Matcher
from .projection import Projector
from .rules import FilterChain
from .types import Record

logger = logging.getLogger(__name__)


@dataclass
class StreamProcessor:
    matcher: Matcher
    filters: FilterChain = field(default_factory=FilterChain)
    projector: Projector = field(default_factory=Projector)
    merge: Optional[MergeEngine] = None

    def process_stream(self, src: TextIO, dst: TextIO) -> int:
        """Match, merge, filter and render every line of 'src' into 'dst'.

        Lines that do not match the main expression are dropped. Returns the
        number of lines written.
        """
        read = written = 0
        try:
            for line_number, raw_line in enumerate(src, start=1):
                read = line_number
                line = raw_line.rstrip("\r\n")
                record = self.matcher.match(line)
                if record is None:
                    logger.debug("line %d does not match, dropped: %s", line_number, line)
                    continue
                pending = [record] if self.merge is None else self.merge.push(line, record)
                for ready in pending:
                    written += self._emit(ready, dst)
            if self.merge is not None:
                for ready in self.merge.finish():
                    written += self._emit(ready, dst)
        except (OSError, UnicodeError) as e:
            raise StreamError(f"stream failure after line {read}: {e}") from e
        logger.info("processed %d lines, emitted %d", read, written)
        return written

    def _emit(self, record: Record, dst: TextIO) -> int:
        if not self.filters.keep(record):
            return 0
        dst.write(self.projector.render(record) + "\n")
        return 1
