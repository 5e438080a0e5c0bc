"""Concrete sanitizers: class denylist filtering and server key allow-listing."""

from __future__ import annotations

import enum
import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from .introspect import type_name
from .sanitize import NoopSanitizer

REMOVED_TEMPLATE = "*** Removed by blacklist. Class of {} ***"

_LEAF_TYPES = (type(None), bool, int, float, complex, str, bytes, bytearray)
# Exact types exempt from pattern matching; subclasses are always tested.
_PLAIN_TYPES = frozenset(_LEAF_TYPES + (dict, list, tuple))


class Shape(enum.Enum):
    LEAF = "leaf"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    OPAQUE = "opaque"


def classify(value: Any) -> Shape:
    """Tag ``value`` for the tree walk."""
    if isinstance(value, _LEAF_TYPES):
        return Shape.LEAF
    if isinstance(value, Mapping):
        return Shape.MAPPING
    if isinstance(value, Sequence):
        return Shape.SEQUENCE
    return Shape.OPAQUE


class RegexClassFilteringSanitizer(NoopSanitizer):
    """Replace objects whose type name matches a denylist pattern.

    Args:
        max_recursion_depth: How many container levels below the root to descend into.
            ``0`` checks only the root's direct values.
        *patterns: Regular expressions searched against the qualified type name,
            tried in order; the first match wins.
    """

    def __init__(self, max_recursion_depth: int, *patterns: str | re.Pattern[str]) -> None:
        if max_recursion_depth < 0:
            raise ValueError("max_recursion_depth must be >= 0")
        self.max_recursion_depth = max_recursion_depth
        self.patterns = [re.compile(p) if isinstance(p, str) else p for p in patterns]

    def sanitize_backtrace(self, backtrace: Any) -> Any:
        shape = classify(backtrace)
        if shape is Shape.MAPPING or shape is Shape.SEQUENCE:
            return self._walk(backtrace, shape, 0)
        return backtrace

    def _filter_value(self, value: Any) -> Any:
        if type(value) in _PLAIN_TYPES:
            return value
        name = type_name(value)
        for pattern in self.patterns:
            if pattern.search(name):
                return REMOVED_TEMPLATE.format(name)
        return value

    def _visit(self, value: Any, depth: int) -> Any:
        value = self._filter_value(value)
        if depth >= self.max_recursion_depth:
            return value
        shape = classify(value)
        if shape is Shape.MAPPING or shape is Shape.SEQUENCE:
            return self._walk(value, shape, depth + 1)
        return value

    def _walk(self, container: Any, shape: Shape, depth: int) -> Any:
        if shape is Shape.MAPPING:
            return {key: self._visit(value, depth) for key, value in container.items()}
        items = [self._visit(value, depth) for value in container]
        if isinstance(container, tuple):
            if hasattr(type(container), "_make"):
                return type(container)._make(items)
            return tuple(items)
        return items


def _normalize_header(header: str) -> str:
    """``"X-Api-Key"`` -> ``"HTTP_X_API_KEY"``."""
    name = re.sub(r"^HTTP_", "", header).upper()
    return "HTTP_" + re.sub(r"[^_A-Z0-9]+", "_", name)


_HTTP_KEY = re.compile(r"^HTTP_[-_A-Z0-9]+$")


class ServerAllowListSanitizer(NoopSanitizer):
    """Keep only allow-listed keys of the server map.

    Args:
        allow_http_headers: Keep every ``HTTP_*`` key present in the input.
        allow_sensitive_server_keys: Keep :attr:`SENSITIVE_SERVER_KEYS`.
        allow_args: Keep :attr:`ARG_SERVER_KEYS` (``argv``, ``argc``).
        allowed_keys: Extra keys to keep.
        banned_headers: Header names (``"X-Api-Key"`` form) that are always dropped.
    """

    DEFAULT_SERVER_KEYS = (
        "GATEWAY_INTERFACE",
        "SERVER_ADDR",
        "SERVER_NAME",
        "SERVER_SOFTWARE",
        "SERVER_PROTOCOL",
        "REQUEST_METHOD",
        "REQUEST_TIME",
        "REQUEST_TIME_FLOAT",
        "QUERY_STRING",
        "DOCUMENT_ROOT",
        "HTTP_PROXY",
        "HTTPS",
        "REMOTE_ADDR",
        "REMOTE_HOST",
        "REMOTE_PORT",
        "REMOTE_USER",
        "REDIRECT_REMOTE_USER",
        "SCRIPT_FILENAME",
        "SERVER_ADMIN",
        "SERVER_PORT",
        "SERVER_SIGNATURE",
        "PATH_TRANSLATED",
        "SCRIPT_NAME",
        "REQUEST_URI",
        "AUTH_USER",
        "AUTH_TYPE",
        "PATH_INFO",
        "ORIG_PATH_INFO",
        "CONTENT_TYPE",
        "CONTENT_LENGTH",
        "PYTHON_VERSION",
        "PLATFORM",
        "wsgi.url_scheme",
    )

    SENSITIVE_SERVER_KEYS = (
        "AUTH_DIGEST",
        "AUTH_PASSWORD",
    )

    ARG_SERVER_KEYS = (
        "argv",
        "argc",
    )

    def __init__(
        self,
        allow_http_headers: bool = False,
        allow_sensitive_server_keys: bool = False,
        allow_args: bool = False,
        allowed_keys: Iterable[str] = (),
        banned_headers: Iterable[str] = (),
    ) -> None:
        self.allow_http_headers = allow_http_headers
        self.allow_sensitive_server_keys = allow_sensitive_server_keys
        self.allow_args = allow_args
        self.allowed_keys = list(allowed_keys)
        self.banned_headers = list(banned_headers)

    def allowed_key_set(self, keys: Iterable[str]) -> set[str]:
        """Effective allowed keys for an input with the given ``keys``."""
        allowed = set(self.DEFAULT_SERVER_KEYS) | set(self.allowed_keys)
        if self.allow_args:
            allowed |= set(self.ARG_SERVER_KEYS)
        if self.allow_sensitive_server_keys:
            allowed |= set(self.SENSITIVE_SERVER_KEYS)
        if self.allow_http_headers:
            allowed |= {k for k in keys if isinstance(k, str) and _HTTP_KEY.match(k)}
        return allowed - {_normalize_header(h) for h in self.banned_headers}

    def sanitize_server(self, server: Mapping[str, Any]) -> Mapping[str, Any]:
        allowed = self.allowed_key_set(server.keys())
        return {key: value for key, value in server.items() if key in allowed}
