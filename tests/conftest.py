import io

import pytest

from grop.patterns import PatternRegistry
from grop.processor import StreamProcessor


@pytest.fixture
def registry():
    return PatternRegistry()


@pytest.fixture
def prefix_registry():
    return PatternRegistry(["PREFIX ="])


def run_processor(processor: StreamProcessor, text: str) -> str:
    """Feed 'text' through 'processor' and return everything it wrote."""
    out = io.StringIO()
    processor.process_stream(io.StringIO(text), out)
    return out.getvalue()
