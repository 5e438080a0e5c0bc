"""Write-once, sanitized diagnostic dumps for server-side error reporting."""

from __future__ import annotations

import contextlib
import sys
from collections.abc import Callable, Iterator
from typing import Any

from .config import DumpConfig, RenderConfig
from .context import RequestContext
from .creator import DebugDataCreator, error_id_for
from .filters import RegexClassFilteringSanitizer, ServerAllowListSanitizer
from .introspect import RECURSION_MARKER, DiagnosticFields, ExceptionRecord, capture_backtrace, flatten
from .levels import LevelConverter
from .output import LogFileHandler
from .sanitize import NoopSanitizer, Sanitizer, SanitizerPipeline
from .serialize import DumpRenderer

__version__ = "0.1.0"
__all__ = [
    "DebugDataCreator",
    "DiagnosticFields",
    "DumpConfig",
    "DumpRenderer",
    "ExceptionRecord",
    "LevelConverter",
    "LogFileHandler",
    "NoopSanitizer",
    "RECURSION_MARKER",
    "RegexClassFilteringSanitizer",
    "RenderConfig",
    "RequestContext",
    "Sanitizer",
    "SanitizerPipeline",
    "ServerAllowListSanitizer",
    "capture_backtrace",
    "dump_on_exception",
    "dump_section",
    "error_id_for",
    "flatten",
]


def _dump(
    creator: DebugDataCreator,
    exc: BaseException,
    error_id: str | Callable[[BaseException], str] | None,
    context: RequestContext | None,
    debug: bool,
) -> None:
    try:
        if error_id is None:
            resolved = error_id_for(exc)
        elif callable(error_id):
            resolved = error_id(exc)
        else:
            resolved = error_id
        creator.handle_exception(exc, resolved, context)
    except Exception as dump_exc:
        if debug:
            sys.stderr.write(f"debugdump: dump failed for {type(exc).__name__}: {dump_exc!r}\n")


def dump_on_exception(
    creator: DebugDataCreator,
    *,
    error_id: str | Callable[[BaseException], str] | None = None,
    context: RequestContext | None = None,
    debug: bool = False,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator that dumps an escaping exception, then re-raises it.

    Usage:
        @dump_on_exception(DebugDataCreator.for_directory("/var/log/dumps"))
        def main():
            ...

    Args:
        creator: Creator that writes the dump
        error_id: Fixed id, or a callable deriving one from the exception
            (defaults to :func:`error_id_for`)
        context: Request context to include in the dump
        debug: Report dump failures on stderr instead of staying silent
    """

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return fn(*args, **kwargs)
            except Exception as e:
                _dump(creator, e, error_id, context, debug)
                raise

        wrapper.__name__ = fn.__name__
        wrapper.__doc__ = fn.__doc__
        return wrapper

    return decorator


@contextlib.contextmanager
def dump_section(
    creator: DebugDataCreator,
    *,
    error_id: str | Callable[[BaseException], str] | None = None,
    context: RequestContext | None = None,
    debug: bool = False,
) -> Iterator[None]:
    """Context manager that dumps an escaping exception, then re-raises it.

    Usage:
        with dump_section(creator, error_id="nightly-import"):
            ...
    """
    try:
        yield
    except Exception as e:
        _dump(creator, e, error_id, context, debug)
        raise
