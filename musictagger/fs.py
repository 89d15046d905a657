from __future__ import annotations

import errno
import logging
import shutil
from pathlib import Path
from typing import Protocol

from .errors import DeleteFailed, MoveFailed

logger = logging.getLogger(__name__)


class FileSystem(Protocol):
    """Physical file operations the library index delegates to."""

    def move(self, src: str, dst: str) -> None:
        ...

    def delete(self, path: str) -> None:
        ...


class LocalFileSystem:
    """Moves and deletes files on the local disk.

    Failures are reported as MoveFailed / DeleteFailed; nothing is retried.
    """

    def move(self, src: str, dst: str) -> None:
        source = Path(src)
        target = Path(dst)
        if target.exists():
            raise MoveFailed(src, dst, "target already exists")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            try:
                source.rename(target)
            except OSError as exc:
                if exc.errno != errno.EXDEV:
                    raise
                # Cross-device rename; shutil.move copies then removes.
                shutil.move(str(source), str(target))
        except OSError as exc:
            logger.warning("Failed to move %s -> %s: %s", src, dst, exc)
            raise MoveFailed(src, dst, str(exc)) from exc
        logger.info("Moved %s -> %s", src, dst)

    def delete(self, path: str) -> None:
        try:
            Path(path).unlink()
        except OSError as exc:
            logger.warning("Failed to delete %s: %s", path, exc)
            raise DeleteFailed(path, str(exc)) from exc
        logger.info("Deleted %s", path)
