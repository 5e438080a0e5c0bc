"""Exception types raised by debugdump."""

from __future__ import annotations


class DebugDumpError(Exception):
    """Base class for debugdump errors."""


class LogDirError(DebugDumpError, OSError):
    """The dump directory cannot be used."""

    def __init__(self, message: str, log_dir: str) -> None:
        super().__init__(message)
        self.log_dir = log_dir


class LogDirCreationFailedError(LogDirError):
    def __init__(self, log_dir: str) -> None:
        super().__init__(f"Failed to create log directory: {log_dir}", log_dir)


class LogDirIsNotADirectoryError(LogDirError):
    def __init__(self, log_dir: str) -> None:
        super().__init__(f"{log_dir} is not a directory", log_dir)


class LogDirIsNotWritableError(LogDirError):
    def __init__(self, log_dir: str) -> None:
        super().__init__(f"The log directory {log_dir} is not writable", log_dir)
