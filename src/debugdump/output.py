"""Dump file management."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TextIO

from .errors import LogDirCreationFailedError, LogDirIsNotADirectoryError, LogDirIsNotWritableError


class LogFileHandler:
    """One ``<error_id><suffix>`` file per error id inside ``log_dir``.

    The directory is validated (or created with ``dir_mode``) on construction.
    """

    def __init__(self, log_dir: str | os.PathLike[str], dir_mode: int = 0o755, suffix: str = ".log") -> None:
        path = Path(log_dir)
        if path.exists():
            if not path.is_dir():
                raise LogDirIsNotADirectoryError(str(path))
            if not os.access(path, os.W_OK | os.X_OK):
                raise LogDirIsNotWritableError(str(path))
        else:
            try:
                path.mkdir(mode=dir_mode, parents=True)
                # mkdir applies the umask
                path.chmod(dir_mode)
            except OSError as e:
                raise LogDirCreationFailedError(str(path)) from e

        self.log_dir = path
        self.suffix = suffix

    def path_for(self, error_id: str) -> Path:
        return self.log_dir / f"{error_id}{self.suffix}"

    def exists(self, error_id: str) -> bool:
        """True if a non-empty dump exists for ``error_id``."""
        path = self.path_for(error_id)
        try:
            return path.is_file() and path.stat().st_size > 0
        except FileNotFoundError:
            return False

    def open_for_write(self, error_id: str) -> TextIO:
        """Open (truncating) the dump file for ``error_id``."""
        return self.path_for(error_id).open("w", encoding="utf-8")
