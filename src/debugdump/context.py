"""Explicit request-context snapshots handed to the dump creator."""

from __future__ import annotations

import os
import platform
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field
from http.cookies import CookieError, SimpleCookie
from types import MappingProxyType
from typing import Any
from urllib.parse import parse_qs


def _frozen(data: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(data or {}))


def _single_or_list(values: list[str]) -> str | list[str]:
    return values[0] if len(values) == 1 else values


@dataclass(frozen=True)
class RequestContext:
    """Read-only server/get/post/cookie/env maps captured by the caller."""

    server: Mapping[str, Any] = field(default_factory=dict)
    get: Mapping[str, Any] = field(default_factory=dict)
    post: Mapping[str, Any] = field(default_factory=dict)
    cookie: Mapping[str, Any] = field(default_factory=dict)
    env: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in ("server", "get", "post", "cookie", "env"):
            object.__setattr__(self, name, _frozen(getattr(self, name)))

    @classmethod
    def from_wsgi(
        cls,
        environ: Mapping[str, Any],
        *,
        post: Mapping[str, Any] | None = None,
        env: Mapping[str, Any] | None = None,
    ) -> RequestContext:
        """Build a context from a WSGI environ.

        The request body is not read; pass already-parsed form data as ``post``.
        """
        server = {
            k: v for k, v in environ.items()
            if not k.startswith("wsgi.") or k == "wsgi.url_scheme"
        }
        query = parse_qs(environ.get("QUERY_STRING", ""), keep_blank_values=True)
        get = {k: _single_or_list(v) for k, v in query.items()}

        cookie: dict[str, str] = {}
        raw_cookie = environ.get("HTTP_COOKIE")
        if raw_cookie:
            jar: SimpleCookie = SimpleCookie()
            try:
                jar.load(raw_cookie)
            except CookieError:
                cookie = {}
            else:
                cookie = {k: morsel.value for k, morsel in jar.items()}

        return cls(server=server, get=get, post=post or {}, cookie=cookie, env=env or {})

    @classmethod
    def for_process(cls, *, env: Mapping[str, Any] | None = None) -> RequestContext:
        """Context for a non-web process: argv in ``server``, ``os.environ`` in ``env``."""
        argv = list(sys.argv)
        server: dict[str, Any] = {
            "argv": argv,
            "argc": len(argv),
            "PYTHON_VERSION": sys.version.replace("\n", " "),
            "PLATFORM": platform.platform(),
        }
        if argv:
            server["SCRIPT_FILENAME"] = argv[0]
        return cls(server=server, env=dict(os.environ) if env is None else env)
