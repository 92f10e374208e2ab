from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import MissingFieldError


@dataclass(frozen=True)
class Projector:
    """Render a record as one space-joined output line.

    - fields: names to print, in order. When None every value is printed in
      the record's own order, which is the declared capture order of the
      main pattern.
    """
    fields: Optional[tuple[str, ...]] = None

    @classmethod
    def from_format(cls, fmt: str | None) -> Projector:
        """Build from a comma-separated field list such as 'prefix,payload'."""
        if fmt is None:
            return cls()
        return cls(fields=tuple(name.strip() for name in fmt.split(",")))

    def render(self, record: Mapping[str, str]) -> str:
        if self.fields is None:
            return " ".join(record.values())
        values: list[str] = []
        for name in self.fields:
            try:
                values.append(record[name])
            except KeyError:
                raise MissingFieldError(name, "output format") from None
        return " ".join(values)
