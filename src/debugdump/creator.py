"""Write-once diagnostic dumps for errors, exceptions, and shutdowns."""

from __future__ import annotations

import hashlib
import os
from typing import Any, Protocol, TextIO

from .config import DumpConfig, RenderConfig
from .context import RequestContext
from .introspect import ExceptionRecord, exception_code, exception_origin, flatten, type_name
from .levels import EXCEPTION_LEVEL_DESCRIPTION, LevelConverter
from .output import LogFileHandler
from .sanitize import SanitizerPipeline
from .serialize import DumpRenderer


class FileHandler(Protocol):
    def exists(self, error_id: str) -> bool: ...

    def open_for_write(self, error_id: str) -> TextIO: ...


class Renderer(Protocol):
    def render(self, handle: TextIO, value: Any) -> None: ...


class LevelDescriber(Protocol):
    def describe(self, level: int) -> str: ...


def error_id_for(exc: BaseException) -> str:
    """Stable id for an exception, derived from its type and raise site."""
    file, line = exception_origin(exc)
    key = f"{type_name(exc)}:{file}:{line}"
    return hashlib.sha1(key.encode("utf-8")).hexdigest()[:16]


class DebugDataCreator:
    """Write one dump per error id; later calls with the same id do nothing.

    The existence check and the write are not atomic: two processes racing on
    the same id can both write, and the last writer wins.
    """

    def __init__(
        self,
        config: DumpConfig,
        file_handler: FileHandler,
        renderer: Renderer,
        level_converter: LevelDescriber,
    ) -> None:
        self.config = config
        self.file_handler = file_handler
        self.renderer = renderer
        self.level_converter = level_converter

    @classmethod
    def for_directory(
        cls,
        log_dir: str | os.PathLike[str],
        config: DumpConfig | None = None,
        *,
        render_config: RenderConfig | None = None,
    ) -> DebugDataCreator:
        """Creator writing ``<error_id>.log`` files into ``log_dir``."""
        return cls(
            config or DumpConfig(),
            LogFileHandler(log_dir),
            DumpRenderer(render_config),
            LevelConverter(),
        )

    def handle_error(
        self,
        level: int,
        message: str,
        file: str,
        line: int,
        error_id: str,
        is_fatal: bool = False,
        backtrace: list[Any] | None = None,
        context: RequestContext | None = None,
    ) -> None:
        """Dump an error reported by severity level.

        ``is_fatal`` marks errors that end the process; it does not change the dump.
        """
        if self.file_handler.exists(error_id):
            return

        description = self.level_converter.describe(level)
        header = f"[{description}({level})]: {message} on line {line} in {file}"
        self._write_dump(error_id, header, None, backtrace or [], context)

    def handle_exception(
        self,
        exception: BaseException,
        error_id: str,
        context: RequestContext | None = None,
    ) -> None:
        """Dump an unhandled exception, including its cause chain."""
        if self.file_handler.exists(error_id):
            return

        file, line = exception_origin(exception)
        header = (
            f"[{EXCEPTION_LEVEL_DESCRIPTION}]: Unhandled {type_name(exception)}: {exception}"
            f"({exception_code(exception)}) on line {line} in {file}"
        )
        self._write_dump(error_id, header, exception, None, context)

    def handle_shutdown(
        self,
        level: int,
        message: str,
        file: str,
        line: int,
        error_id: str,
        context: RequestContext | None = None,
    ) -> None:
        """Dump a fatal error detected at shutdown."""
        self.handle_error(level, message, file, line, error_id, True, [], context)

    def _write_section(self, handle: TextIO, name: str, payload: Any) -> None:
        handle.write(f"----- {name} -----\n\n")
        self.renderer.render(handle, payload)
        handle.write("\n\n")

    def _write_dump(
        self,
        error_id: str,
        header: str,
        exception: BaseException | None,
        backtrace: list[Any] | None,
        context: RequestContext | None,
    ) -> None:
        cfg = self.config.snapshot()
        pipeline = SanitizerPipeline(cfg.sanitizers)
        ctx = context or RequestContext()

        with self.file_handler.open_for_write(error_id) as handle:
            handle.write(f"{error_id} {pipeline.sanitize_error_message(header)}\n\n")

            if cfg.exception_enabled and pipeline.include_exception(exception):
                record = flatten(
                    exception,
                    sanitize_trace=pipeline.sanitize_backtrace,
                    capture_locals=cfg.capture_locals,
                )
                if isinstance(record, ExceptionRecord):
                    record = record.to_dict()
                self._write_section(handle, "Exception", pipeline.sanitize_backtrace(record))

            if backtrace is not None and cfg.trace_enabled:
                self._write_section(handle, "Debug backtrace", pipeline.sanitize_backtrace(backtrace))

            sections: tuple[tuple[bool, str, Any], ...] = (
                (cfg.server_enabled, "Server", lambda: pipeline.sanitize_server(ctx.server)),
                (cfg.get_enabled, "Get", lambda: pipeline.sanitize_get(ctx.get)),
                (cfg.post_enabled, "Post", lambda: pipeline.sanitize_post(ctx.post)),
                (cfg.cookie_enabled, "Cookie", lambda: pipeline.sanitize_cookie(ctx.cookie)),
                (cfg.env_enabled, "Env", lambda: pipeline.sanitize_env(ctx.env)),
            )
            for enabled, name, sanitize in sections:
                if enabled:
                    self._write_section(handle, name, sanitize())

