"""Tests for exception flattening."""

import sys

import pytest

from debugdump.introspect import (
    RECURSION_MARKER,
    ExceptionRecord,
    capture_backtrace,
    exception_code,
    flatten,
    type_name,
)


class QueryError(Exception):
    def __init__(self, message, query, related=None):
        super().__init__(message)
        self.query = query
        self.related = related

    def diagnostic_fields(self):
        return {"query": self.query, "related": self.related, "itself": self}


class CodedError(RuntimeError):
    code = 10


def raised(exc):
    try:
        raise exc
    except BaseException as e:
        return e


def test_flatten_none():
    assert flatten(None) is None


def test_flatten_fixed_fields():
    """Test class, message, code, file, line and trace are captured."""
    exc = raised(ValueError("boom"))

    record = flatten(exc)

    assert isinstance(record, ExceptionRecord)
    assert record.exception_class == "ValueError"
    assert record.message == "boom"
    assert record.code == 0
    assert record.file == __file__
    assert record.line == exc.__traceback__.tb_lineno
    assert record.previous is None
    assert record.trace[0]["function"] == "raised"
    assert record.trace[0]["locals"]["exc"] is exc
    assert record.trace[-1]["function"] == "raised"


def test_flatten_unraised_exception():
    record = flatten(KeyError("k"))

    assert record.file == ""
    assert record.line == 0
    assert record.trace == []


def test_flatten_without_locals():
    record = flatten(raised(ValueError("x")), capture_locals=False)

    assert "locals" not in record.trace[0]


def test_flatten_sanitizes_trace():
    record = flatten(raised(ValueError("x")), sanitize_trace=lambda trace: ["sanitized"])

    assert record.trace == ["sanitized"]


def test_exception_code():
    assert exception_code(CodedError("x")) == 10
    assert exception_code(OSError(2, "missing")) == 2
    assert exception_code(SystemExit(True)) == 0
    assert exception_code(ValueError()) == 0


def test_cause_chain():
    def inner():
        raise KeyError("inner")

    try:
        try:
            inner()
        except KeyError as e:
            raise RuntimeError("outer") from e
    except RuntimeError as e:
        exc = e

    record = flatten(exc)

    assert record.exception_class == "RuntimeError"
    assert record.previous.exception_class == "KeyError"
    assert record.previous.previous is None


def test_implicit_context_followed():
    try:
        try:
            raise KeyError("first")
        except KeyError:
            raise ValueError("second")
    except ValueError as e:
        exc = e

    assert flatten(exc).previous.exception_class == "KeyError"


def test_suppressed_context_ignored():
    try:
        try:
            raise KeyError("first")
        except KeyError:
            raise ValueError("second") from None
    except ValueError as e:
        exc = e

    assert flatten(exc).previous is None


def test_self_cycle_terminates():
    exc = ValueError("loop")
    exc.__cause__ = exc

    record = flatten(exc)

    assert record.previous == RECURSION_MARKER


def test_indirect_cycle_terminates():
    a, b = ValueError("a"), RuntimeError("b")
    a.__cause__ = b
    b.__cause__ = a

    record = flatten(a)

    assert record.previous.exception_class == "RuntimeError"
    assert record.previous.previous == RECURSION_MARKER


def test_diagnostic_fields():
    """Test extra fields, nested exceptions and self references."""
    related = ValueError("related")
    exc = QueryError("failed", "SELECT 1", related)

    record = flatten(exc)

    assert record.extra["query"] == "SELECT 1"
    assert record.extra["related"].exception_class == "ValueError"
    assert record.extra["itself"] == RECURSION_MARKER


def test_diagnostic_fields_share_visited_set():
    a = QueryError("a", "q1")
    b = QueryError("b", "q2", related=a)
    a.related = b

    record = flatten(a)

    assert record.extra["related"].extra["related"] == RECURSION_MARKER


def test_visited_set_is_per_call():
    exc = ValueError("x")

    assert isinstance(flatten(exc), ExceptionRecord)
    assert isinstance(flatten(exc), ExceptionRecord)


def test_to_dict_is_ordered_and_nested():
    exc = QueryError("failed", "q", ValueError("v"))
    exc.__cause__ = KeyError("k")

    data = flatten(exc).to_dict()

    assert list(data)[:7] == ["exception_class", "message", "code", "file", "line", "trace", "previous"]
    assert data["previous"]["exception_class"] == "KeyError"
    assert data["related"]["message"] == "v"


class ShadowingError(Exception):
    def diagnostic_fields(self):
        return {
            "message": "overwritten",
            "trace": "gone",
            "exception_class": "Fake",
            "diagnostic_message": "kept",
            "query": "q",
        }


def test_diagnostic_fields_cannot_shadow_record_fields():
    exc = raised(ShadowingError("real"))

    data = flatten(exc).to_dict()

    assert data["message"] == "real"
    assert data["exception_class"].endswith("ShadowingError")
    assert isinstance(data["trace"], list)
    assert data["diagnostic_message"] == "overwritten"
    assert data["diagnostic_trace"] == "gone"
    assert data["diagnostic_exception_class"] == "Fake"
    assert data["diagnostic_diagnostic_message"] == "kept"
    assert data["query"] == "q"


def test_to_dict_keeps_fixed_fields_over_extra():
    record = flatten(ValueError("real"))
    record.extra["message"] = "overwritten"

    assert record.to_dict()["message"] == "real"


@pytest.mark.skipif(not hasattr(BaseException, "add_note"), reason="needs exception notes")
def test_notes_captured():
    exc = ValueError("x")
    exc.add_note("while loading config")

    assert flatten(exc).extra["notes"] == ["while loading config"]


@pytest.mark.skipif(sys.version_info < (3, 11), reason="needs exception groups")
def test_exception_group_members():
    shared = ValueError("shared")
    group = ExceptionGroup("many", [shared, KeyError("k")])  # noqa: F821
    shared.__cause__ = group

    record = flatten(group)

    members = record.extra["exceptions"]
    assert [m.exception_class for m in members] == ["ValueError", "KeyError"]
    assert members[0].previous == RECURSION_MARKER


def test_type_name():
    assert type_name(ValueError()) == "ValueError"
    assert type_name(QueryError) == f"{QueryError.__module__}.QueryError"


def test_capture_backtrace_starts_at_caller():
    marker = "here"  # noqa: F841

    frames = capture_backtrace()

    assert frames[0]["function"] == "test_capture_backtrace_starts_at_caller"
    assert frames[0]["locals"]["marker"] == "here"
    assert frames[0]["file"] == __file__
