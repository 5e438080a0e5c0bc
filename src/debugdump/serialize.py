"""Deterministic text rendering of dump payloads."""

from __future__ import annotations

import inspect
import json
from collections.abc import Mapping
from typing import Any, TextIO

from .config import RenderConfig
from .introspect import ExceptionRecord, type_name

JsonLike = None | bool | int | float | str | dict[str, Any] | list[Any]

TRUNC = "...[TRUNC]"


def truncate_str(s: str, max_len: int) -> str:
    """Truncate string with marker."""
    if len(s) <= max_len:
        return s
    return s[: max_len - len(TRUNC)] + TRUNC


def safe_repr(x: Any, cfg: RenderConfig) -> str:
    """Get repr with fallback for unreprable objects."""
    try:
        r = repr(x)
    except Exception:
        r = f"<unreprable {type_name(x)}>"
    return truncate_str(r, cfg.max_str)


def is_array_like(x: Any) -> bool:
    """Check if object is an array type (numpy, jax, torch, etc)."""
    module = type(x).__module__
    return any(
        module.startswith(prefix)
        for prefix in ("numpy", "jax", "torch", "tensorflow", "cupy")
    ) and hasattr(x, "shape")


def summarize_array(arr: Any) -> dict[str, Any]:
    """Shape and dtype of an array instead of its contents."""
    summary: dict[str, Any] = {"__array__": type_name(arr)}
    try:
        summary["shape"] = list(arr.shape)
    except Exception:
        summary["shape"] = None
    if hasattr(arr, "dtype"):
        summary["dtype"] = str(arr.dtype)
    return summary


def _key(k: Any, out: Mapping[str, Any], cfg: RenderConfig) -> str:
    """Text key for ``k`` that does not collide with a key already in ``out``."""
    key = k if isinstance(k, str) else safe_repr(k, cfg)
    while key in out:
        key = f"{key} [{type_name(k)}]"
    return key


def to_jsonlike(x: Any, cfg: RenderConfig, depth: int = 0, expand_objects: bool = True) -> JsonLike:
    """Convert an arbitrary value to a JSON-serializable form.

    Attributes of plain objects are expanded one level only; objects found
    inside another object are rendered with their repr.
    """
    if x is None or isinstance(x, (bool, int, float)):
        return x
    if isinstance(x, str):
        return truncate_str(x, cfg.max_str)
    if isinstance(x, (bytes, bytearray)):
        return safe_repr(bytes(x), cfg)

    if depth >= cfg.max_depth:
        return safe_repr(x, cfg)

    if isinstance(x, ExceptionRecord):
        return to_jsonlike(x.to_dict(), cfg, depth, expand_objects)
    if is_array_like(x):
        return summarize_array(x)

    if isinstance(x, Mapping):
        out: dict[str, Any] = {}
        for i, (k, v) in enumerate(x.items()):
            if i >= cfg.max_items:
                out[TRUNC] = f"+{len(x) - cfg.max_items} more keys"
                break
            out[_key(k, out, cfg)] = to_jsonlike(v, cfg, depth + 1, expand_objects)
        return out

    if isinstance(x, (set, frozenset)):
        x = sorted(x, key=lambda item: safe_repr(item, cfg))
    if isinstance(x, (list, tuple)):
        result = [to_jsonlike(i, cfg, depth + 1, expand_objects) for i in x[: cfg.max_items]]
        if len(x) > cfg.max_items:
            result.append(TRUNC)
        return result

    if isinstance(x, BaseException):
        return f"<{type_name(x)}: {truncate_str(str(x), cfg.max_str)}>"

    if inspect.ismodule(x):
        return f"<module {x.__name__}>"

    # Objects with __dict__
    d = getattr(x, "__dict__", None)
    if expand_objects and isinstance(d, dict) and not callable(x):
        obj: dict[str, Any] = {"__type__": type_name(x)}
        for i, (k, v) in enumerate(d.items()):
            if i >= cfg.max_items:
                obj[TRUNC] = "more fields omitted"
                break
            obj[str(k)] = to_jsonlike(v, cfg, depth + 1, expand_objects=False)
        return obj

    return safe_repr(x, cfg)


class DumpRenderer:
    """Write values as indented JSON text."""

    def __init__(self, cfg: RenderConfig | None = None) -> None:
        self.cfg = cfg or RenderConfig()

    def dumps(self, value: Any) -> str:
        return json.dumps(
            to_jsonlike(value, self.cfg),
            indent=self.cfg.indent,
            ensure_ascii=False,
            default=str,
        )

    def render(self, handle: TextIO, value: Any) -> None:
        handle.write(self.dumps(value))
