"""Configuration dataclasses for dump creation and rendering."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace

from .sanitize import Sanitizer


@dataclass
class DumpConfig:
    """Section toggles and the ordered sanitizer list.

    Sanitizers run in insertion order. The config may be changed between
    dumps; each dump works on a :meth:`snapshot` taken when it starts.
    Assigning ``sanitizers`` is checked immediately. Items appended to the
    list in place are checked when the next snapshot is taken.
    """

    trace_enabled: bool = True
    exception_enabled: bool = True
    server_enabled: bool = False
    get_enabled: bool = True
    post_enabled: bool = False
    cookie_enabled: bool = False
    env_enabled: bool = False
    sanitizers: Sequence[Sanitizer] = field(default_factory=list)
    capture_locals: bool = True

    def __setattr__(self, name: str, value: object) -> None:
        if name == "sanitizers":
            _check_sanitizers(value)
        super().__setattr__(name, value)

    def snapshot(self) -> DumpConfig:
        """Copy with the sanitizer list frozen to a tuple."""
        return replace(self, sanitizers=tuple(self.sanitizers))


def _check_sanitizers(sanitizers: Iterable[object]) -> None:
    for sanitizer in sanitizers:
        if not isinstance(sanitizer, Sanitizer):
            raise TypeError(f"{type(sanitizer).__name__} does not implement the Sanitizer protocol")


@dataclass(frozen=True)
class RenderConfig:
    """Limits applied when rendering dump payloads."""

    max_str: int = 2000
    max_items: int = 100
    max_depth: int = 8
    indent: int = 2

    def __post_init__(self) -> None:
        for name in ("max_str", "max_items", "max_depth", "indent"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.max_str < 16:
            raise ValueError("max_str must be at least 16")
