"""Sanitizer contract and the ordered sanitizer pipeline."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from functools import reduce
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Sanitizer(Protocol):
    """Pure transformations applied to each class of dump data before it is written.

    Every method receives the output of the previous sanitizer in the pipeline
    and must return a value of the same shape.
    """

    def sanitize_error_message(self, error_message: str) -> str: ...

    def include_exception(self, exception: BaseException) -> bool: ...

    def sanitize_backtrace(self, backtrace: Any) -> Any: ...

    def sanitize_server(self, server: Mapping[str, Any]) -> Mapping[str, Any]: ...

    def sanitize_get(self, get: Mapping[str, Any]) -> Mapping[str, Any]: ...

    def sanitize_post(self, post: Mapping[str, Any]) -> Mapping[str, Any]: ...

    def sanitize_cookie(self, cookie: Mapping[str, Any]) -> Mapping[str, Any]: ...

    def sanitize_env(self, env: Mapping[str, Any]) -> Mapping[str, Any]: ...


class NoopSanitizer:
    """Sanitizer that changes nothing.

    Subclass it and override only the data classes you want to transform.
    """

    def sanitize_error_message(self, error_message: str) -> str:
        return error_message

    def include_exception(self, exception: BaseException) -> bool:
        return True

    def sanitize_backtrace(self, backtrace: Any) -> Any:
        return backtrace

    def sanitize_server(self, server: Mapping[str, Any]) -> Mapping[str, Any]:
        return server

    def sanitize_get(self, get: Mapping[str, Any]) -> Mapping[str, Any]:
        return get

    def sanitize_post(self, post: Mapping[str, Any]) -> Mapping[str, Any]:
        return post

    def sanitize_cookie(self, cookie: Mapping[str, Any]) -> Mapping[str, Any]:
        return cookie

    def sanitize_env(self, env: Mapping[str, Any]) -> Mapping[str, Any]:
        return env


class SanitizerPipeline:
    """Apply sanitizers left to right: ``sn(...s2(s1(value)))``."""

    def __init__(self, sanitizers: Sequence[Sanitizer] = ()) -> None:
        self._sanitizers = tuple(sanitizers)

    @property
    def sanitizers(self) -> tuple[Sanitizer, ...]:
        return self._sanitizers

    def _fold(self, method: str, value: Any) -> Any:
        return reduce(lambda carry, s: getattr(s, method)(carry), self._sanitizers, value)

    def sanitize_error_message(self, error_message: str) -> str:
        return self._fold("sanitize_error_message", error_message)

    def include_exception(self, exception: BaseException | None) -> bool:
        """AND of every sanitizer's predicate; ``None`` is never included."""
        if exception is None:
            return False
        return all(s.include_exception(exception) for s in self._sanitizers)

    def sanitize_backtrace(self, backtrace: Any) -> Any:
        return self._fold("sanitize_backtrace", backtrace)

    def sanitize_server(self, server: Mapping[str, Any]) -> Mapping[str, Any]:
        return self._fold("sanitize_server", server)

    def sanitize_get(self, get: Mapping[str, Any]) -> Mapping[str, Any]:
        return self._fold("sanitize_get", get)

    def sanitize_post(self, post: Mapping[str, Any]) -> Mapping[str, Any]:
        return self._fold("sanitize_post", post)

    def sanitize_cookie(self, cookie: Mapping[str, Any]) -> Mapping[str, Any]:
        return self._fold("sanitize_cookie", cookie)

    def sanitize_env(self, env: Mapping[str, Any]) -> Mapping[str, Any]:
        return self._fold("sanitize_env", env)
