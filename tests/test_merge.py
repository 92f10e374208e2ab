"""
Tests for the merge-scope state machine
"""
import pytest

from grop.errors import MissingFieldError
from grop.merge import MergeEngine
from grop.types import ScopeState

MAIN = "%{PREFIX:prefix} %{GREEDYDATA:payload}"


@pytest.fixture
def main_matcher(prefix_registry):
    return prefix_registry.compile(MAIN)


def make_engine(registry, start, end, exclusive=False, fields=("payload",)):
    return MergeEngine(
        merge_fields=fields,
        start=registry.compile(start),
        end=registry.compile(end),
        exclusive=exclusive,
    )


def feed(engine, matcher, line):
    return engine.push(line, matcher.match(line))


def test_regular_line_passes_through(prefix_registry, main_matcher):
    engine = make_engine(prefix_registry, "START", "END")
    assert feed(engine, main_matcher, "= 1") == [{"prefix": "=", "payload": "1"}]
    assert engine.state is ScopeState.OUTSIDE


def test_inclusive_scope(prefix_registry, main_matcher):
    engine = make_engine(prefix_registry, "START", "END")
    assert feed(engine, main_matcher, "= START 2") == []
    assert engine.state is ScopeState.INSIDE
    assert feed(engine, main_matcher, "= 3") == []
    assert engine.buffer == {"prefix": "=", "payload": "START 2\n3"}
    assert feed(engine, main_matcher, "= END 4") == [{"prefix": "=", "payload": "START 2\n3\nEND 4"}]
    assert engine.state is ScopeState.OUTSIDE
    assert engine.buffer == {}


def test_non_merge_fields_keep_opening_value(registry):
    main = registry.compile("%{WORD:level} %{GREEDYDATA:payload}")
    engine = make_engine(registry, "BEGIN", "DONE")
    for line in ["INFO BEGIN", "WARN middle"]:
        assert engine.push(line, main.match(line)) == []
    flushed = engine.push("ERROR DONE", main.match("ERROR DONE"))
    assert flushed == [{"level": "INFO", "payload": "BEGIN\nmiddle\nDONE"}]


def test_exclusive_end_is_emitted_standalone(prefix_registry, main_matcher):
    engine = make_engine(prefix_registry, "REQUEST", "RESPONSE", exclusive=True)
    feed(engine, main_matcher, "= REQUEST")
    feed(engine, main_matcher, "= 2")
    out = feed(engine, main_matcher, "= RESPONSE")
    assert out == [
        {"prefix": "=", "payload": "REQUEST\n2"},
        {"prefix": "=", "payload": "RESPONSE"},
    ]
    assert engine.state is ScopeState.OUTSIDE


def test_exclusive_end_matching_start_reopens(prefix_registry, main_matcher):
    engine = make_engine(prefix_registry, "REQUEST|RESPONSE", "DEBUG", exclusive=True)
    feed(engine, main_matcher, "= DEBUG REQUEST")
    feed(engine, main_matcher, "= 2")
    out = feed(engine, main_matcher, "= DEBUG RESPONSE")
    assert out == [{"prefix": "=", "payload": "DEBUG REQUEST\n2"}]
    assert engine.state is ScopeState.INSIDE
    assert engine.buffer == {"prefix": "=", "payload": "DEBUG RESPONSE"}


def test_start_inside_scope_is_absorbed(prefix_registry, main_matcher):
    engine = make_engine(prefix_registry, "START", "END")
    feed(engine, main_matcher, "= START a")
    assert feed(engine, main_matcher, "= START b") == []
    assert engine.buffer["payload"] == "START a\nSTART b"


def test_missing_merge_field(prefix_registry, main_matcher):
    engine = make_engine(prefix_registry, "START", "END", fields=("nope",))
    feed(engine, main_matcher, "= START")
    with pytest.raises(MissingFieldError) as excinfo:
        feed(engine, main_matcher, "= more")
    assert excinfo.value.name == "nope"


def test_missing_merge_field_not_checked_on_open(prefix_registry, main_matcher):
    engine = make_engine(prefix_registry, "START", "END", fields=("nope",))
    assert feed(engine, main_matcher, "= START") == []


def test_finish_flushes_open_scope(prefix_registry, main_matcher):
    engine = make_engine(prefix_registry, "START", "END")
    feed(engine, main_matcher, "= START 1")
    feed(engine, main_matcher, "= 2")
    assert engine.finish() == [{"prefix": "=", "payload": "START 1\n2"}]
    assert engine.state is ScopeState.OUTSIDE
    assert engine.finish() == []


def test_finish_outside_scope(prefix_registry, main_matcher):
    engine = make_engine(prefix_registry, "START", "END")
    feed(engine, main_matcher, "= 1")
    assert engine.finish() == []
