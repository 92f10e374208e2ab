from __future__ import annotations

import enum

# Capture name -> matched text, keyed in the pattern's declared capture order.
Record = dict[str, str]


class ScopeState(enum.Enum):
    """Whether the merge engine is currently accumulating a multiline record."""
    OUTSIDE = "outside"
    INSIDE = "inside"
