"""File helpers shared by the stores.

All writes are UTF-8 and newline-terminated. Snapshot writes go through a
sibling temp file that atomically replaces the target, so a failed write
never leaves a partial file behind.
"""

from __future__ import annotations

from pathlib import Path  # noqa: TC003 - used at runtime

from questledger.errors import StorageError
from questledger.observability.logging import get_logger

log = get_logger(__name__)


def write_text_atomic(path: Path, text: str) -> None:
    """Write text to path via a temp file and atomic replace.

    Args:
        path: Target file. Parent directories are created.
        text: Content; a trailing newline is added.

    Raises:
        StorageError: If the file can't be written.
    """
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(text + "\n", encoding="utf-8")
        tmp_path.replace(path)
    except (OSError, ValueError) as e:
        # UnicodeEncodeError (lone surrogates) is a ValueError
        _discard(tmp_path)
        raise StorageError(path, str(e)) from e


def _discard(tmp_path: Path) -> None:
    try:
        tmp_path.unlink(missing_ok=True)
    except OSError as e:
        log.warning("tmp_cleanup_failed", path=str(tmp_path), error=str(e))


def append_line(path: Path, line: str) -> None:
    """Append a single line to path, creating it if needed.

    Raises:
        StorageError: If the file can't be appended to.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")
    except (OSError, ValueError) as e:
        raise StorageError(path, str(e)) from e


def read_text(path: Path) -> str:
    """Read a UTF-8 file.

    Raises:
        StorageError: If the file can't be read or decoded.
    """
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise StorageError(path, str(e)) from e


def delete_file(path: Path) -> bool:
    """Delete path if it exists.

    Returns:
        True if a file was removed.

    Raises:
        StorageError: If the file exists but can't be removed.
    """
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        raise StorageError(path, str(e)) from e
    return True
