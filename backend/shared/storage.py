"""Storage abstraction for completed-game history.

History documents are written atomically (temp file, fsync, rename) with
owner-only permissions so a crash never leaves a truncated record behind.
"""

import contextlib
import os
import re
import tempfile
from pathlib import Path
from typing import Protocol

import structlog

logger = structlog.get_logger()

# Owner-only directory permissions for history storage.
_HISTORY_DIR_MODE = 0o700

# Owner-only file permissions for history documents.
_HISTORY_FILE_MODE = 0o600

_HISTORY_SUFFIX = ".json"
_SAFE_ID = re.compile(r"^[A-Za-z0-9_-]+$")


class GameHistoryStorage(Protocol):
    """Protocol for persisting completed-game documents."""

    def save_game(self, game_id: str, content: str) -> None: ...

    def delete_game(self, game_id: str) -> bool: ...

    def load_games(self) -> list[str]: ...


class LocalGameHistoryStorage:
    """Stores one JSON document per completed game under a directory."""

    def __init__(self, history_dir: str) -> None:
        self._history_dir = Path(history_dir).resolve()

    def _target(self, game_id: str) -> Path:
        if not _SAFE_ID.match(game_id):
            raise ValueError(f"Invalid game id for history storage: {game_id!r}")
        target = (self._history_dir / f"{game_id}{_HISTORY_SUFFIX}").resolve()
        if not target.is_relative_to(self._history_dir):
            raise ValueError(f"Path traversal rejected: '{game_id}' resolves outside history directory")
        return target

    def save_game(self, game_id: str, content: str) -> None:
        """Write a game document, replacing any previous version.

        Creates the directory lazily on first write.
        """
        target = self._target(game_id)

        os.makedirs(str(self._history_dir), mode=_HISTORY_DIR_MODE, exist_ok=True)  # noqa: PTH103
        self._history_dir.chmod(_HISTORY_DIR_MODE)

        fd, tmp_path = tempfile.mkstemp(dir=str(self._history_dir), suffix=".tmp", prefix=".game_")
        fd_owned = True
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                fd_owned = False  # os.fdopen took ownership; it will close fd
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, _HISTORY_FILE_MODE)  # noqa: PTH101
            Path(tmp_path).replace(target)
        except BaseException:
            if fd_owned:
                with contextlib.suppress(OSError):
                    os.close(fd)
            with contextlib.suppress(OSError):
                Path(tmp_path).unlink()
            raise
        logger.info("history file saved", game_id=game_id, path=str(target))

    def delete_game(self, game_id: str) -> bool:
        """Remove a game document. Returns False when there was nothing to remove."""
        target = self._target(game_id)
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        logger.info("history file deleted", game_id=game_id)
        return True

    def load_games(self) -> list[str]:
        """Read every stored document.

        Unreadable files are logged and skipped so one bad file does not
        block the rest.
        """
        if not self._history_dir.is_dir():
            return []

        documents: list[str] = []
        for entry in sorted(self._history_dir.iterdir()):
            if not entry.is_file() or entry.is_symlink() or entry.suffix != _HISTORY_SUFFIX:
                continue
            try:
                documents.append(entry.read_text(encoding="utf-8"))
            except OSError:
                logger.exception("failed to read history file", path=str(entry))
        return documents
