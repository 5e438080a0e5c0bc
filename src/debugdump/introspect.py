"""Flatten exceptions and stack frames into dumpable records."""

from __future__ import annotations

import linecache
import sys
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import FrameType, TracebackType
from typing import Any, Protocol, runtime_checkable

RECURSION_MARKER = "*** RECURSION ***"

# Keys owned by the record itself; diagnostic fields with these names get a
# "diagnostic_" prefix.
RESERVED_FIELDS = frozenset(
    ("exception_class", "message", "code", "file", "line", "trace", "previous", "notes", "exceptions")
)

try:  # Python 3.11+
    BaseExceptionGroup  # type: ignore[name-defined]  # noqa: B018
except NameError:  # pragma: no cover - Python 3.10 fallback
    BaseExceptionGroup = None  # type: ignore[assignment]


@runtime_checkable
class DiagnosticFields(Protocol):
    """Exceptions implementing this contribute extra fields to their dump."""

    def diagnostic_fields(self) -> Mapping[str, Any]: ...


@dataclass
class ExceptionRecord:
    """Flattened, cycle-safe form of an exception and its cause chain."""

    exception_class: str
    message: str
    code: int
    file: str
    line: int
    trace: Any = field(default_factory=list)
    previous: ExceptionRecord | str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Ordered mapping with nested records converted as well."""
        data: dict[str, Any] = {
            "exception_class": self.exception_class,
            "message": self.message,
            "code": self.code,
            "file": self.file,
            "line": self.line,
            "trace": self.trace,
            "previous": _plain(self.previous),
        }
        for name, value in self.extra.items():
            data.setdefault(name, _plain(value))
        return data


def _plain(value: Any) -> Any:
    if isinstance(value, ExceptionRecord):
        return value.to_dict()
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def type_name(obj: Any) -> str:
    """Qualified type name of ``obj``; builtins are left unqualified."""
    cls = obj if isinstance(obj, type) else type(obj)
    module = cls.__module__
    if module == "builtins":
        return cls.__qualname__
    return f"{module}.{cls.__qualname__}"


def _frame_record(frame: FrameType, lineno: int, capture_locals: bool) -> dict[str, Any]:
    filename = frame.f_code.co_filename
    code = linecache.getline(filename, lineno, frame.f_globals).strip()
    record: dict[str, Any] = {
        "file": filename,
        "line": lineno,
        "function": frame.f_code.co_name,
        "module": frame.f_globals.get("__name__"),
        "code": code or None,
    }
    if capture_locals:
        record["locals"] = dict(frame.f_locals)
    return record


def frames_from_traceback(tb: TracebackType | None, *, capture_locals: bool = True) -> list[dict[str, Any]]:
    """Frame records for a traceback, crash site first."""
    frames = []
    cur = tb
    while cur is not None:
        frames.append(_frame_record(cur.tb_frame, cur.tb_lineno, capture_locals))
        cur = cur.tb_next
    return list(reversed(frames))


def capture_backtrace(skip: int = 0, *, capture_locals: bool = True) -> list[dict[str, Any]]:
    """Frame records for the current call stack, caller first.

    ``skip`` drops that many additional frames above the caller.
    """
    frame: FrameType | None = sys._getframe(1 + skip)
    frames = []
    while frame is not None:
        frames.append(_frame_record(frame, frame.f_lineno, capture_locals))
        frame = frame.f_back
    return frames


def exception_code(exc: BaseException) -> int:
    """Integer ``code`` or ``errno`` attribute of ``exc``, else 0."""
    for attr in ("code", "errno"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return 0


def exception_origin(exc: BaseException) -> tuple[str, int]:
    """File and line where ``exc`` was raised; ``("", 0)`` if it never was."""
    tb = exc.__traceback__
    if tb is None:
        return "", 0
    while tb.tb_next is not None:
        tb = tb.tb_next
    return tb.tb_frame.f_code.co_filename, tb.tb_lineno


def previous_exception(exc: BaseException) -> BaseException | None:
    if exc.__cause__ is not None:
        return exc.__cause__
    if exc.__suppress_context__:
        return None
    return exc.__context__


def flatten(
    exc: BaseException | None,
    visited: set[int] | None = None,
    *,
    sanitize_trace: Callable[[Any], Any] | None = None,
    capture_locals: bool = True,
) -> ExceptionRecord | str | None:
    """Flatten ``exc`` into an :class:`ExceptionRecord`.

    Each exception is visited at most once per top-level call; a repeat visit
    yields :data:`RECURSION_MARKER`, so cyclic cause chains and exceptions
    referencing each other through diagnostic fields always terminate.
    """
    if exc is None:
        return None
    if visited is None:
        visited = set()
    if id(exc) in visited:
        return RECURSION_MARKER
    visited.add(id(exc))

    def recurse(value: BaseException | None) -> ExceptionRecord | str | None:
        return flatten(value, visited, sanitize_trace=sanitize_trace, capture_locals=capture_locals)

    trace: Any = frames_from_traceback(exc.__traceback__, capture_locals=capture_locals)
    if sanitize_trace is not None:
        trace = sanitize_trace(trace)

    file, line = exception_origin(exc)
    record = ExceptionRecord(
        exception_class=type_name(exc),
        message=str(exc),
        code=exception_code(exc),
        file=file,
        line=line,
        trace=trace,
        previous=recurse(previous_exception(exc)),
    )

    if BaseExceptionGroup is not None and isinstance(exc, BaseExceptionGroup):
        record.extra["exceptions"] = [recurse(e) for e in exc.exceptions]

    notes = getattr(exc, "__notes__", None)
    if notes:
        record.extra["notes"] = [str(n) for n in notes]

    if isinstance(exc, DiagnosticFields):
        for name, value in exc.diagnostic_fields().items():
            if isinstance(value, BaseException):
                value = recurse(value)
            while name in RESERVED_FIELDS or name in record.extra:
                name = f"diagnostic_{name}"
            record.extra[name] = value

    return record
