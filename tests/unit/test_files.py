"""Tests for storage file helpers."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from questledger.errors import StorageError
from questledger.storage.files import append_line, delete_file, read_text, write_text_atomic

if TYPE_CHECKING:
    from pathlib import Path


def test_write_text_atomic_creates_parents(tmp_path: Path) -> None:
    path = tmp_path / "a" / "b" / "out.json"

    write_text_atomic(path, "{}")

    assert path.read_text(encoding="utf-8") == "{}\n"
    assert not path.with_suffix(".json.tmp").exists()


def test_write_text_atomic_replaces_existing(tmp_path: Path) -> None:
    path = tmp_path / "out.json"
    path.write_text("old", encoding="utf-8")

    write_text_atomic(path, "new")

    assert path.read_text(encoding="utf-8") == "new\n"


def test_write_text_atomic_failure_keeps_old_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    path = tmp_path / "out.json"
    path.write_text("old", encoding="utf-8")

    def refuse(self: Path, target: Path) -> Path:
        raise PermissionError("denied")

    monkeypatch.setattr(type(path), "replace", refuse)

    with pytest.raises(StorageError, match="denied"):
        write_text_atomic(path, "new")

    monkeypatch.undo()
    assert path.read_text(encoding="utf-8") == "old"
    assert not path.with_suffix(".json.tmp").exists()


def test_write_text_atomic_unencodable_text_keeps_old_file(tmp_path: Path) -> None:
    path = tmp_path / "out.json"
    path.write_text("old", encoding="utf-8")

    with pytest.raises(StorageError):
        write_text_atomic(path, "\ud800")

    assert path.read_text(encoding="utf-8") == "old"
    assert not path.with_suffix(".json.tmp").exists()


def test_write_text_atomic_unwritable_parent(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")

    with pytest.raises(StorageError):
        write_text_atomic(blocker / "out.json", "{}")


def test_append_line(tmp_path: Path) -> None:
    path = tmp_path / "logs" / "audit.log"

    append_line(path, "one")
    append_line(path, "two")

    assert path.read_text(encoding="utf-8") == "one\ntwo\n"


def test_append_line_unencodable_text(tmp_path: Path) -> None:
    with pytest.raises(StorageError):
        append_line(tmp_path / "audit.log", "\ud800")


def test_read_text_missing(tmp_path: Path) -> None:
    with pytest.raises(StorageError) as exc_info:
        read_text(tmp_path / "absent.json")

    assert exc_info.value.path == tmp_path / "absent.json"


def test_read_text_invalid_utf8(tmp_path: Path) -> None:
    path = tmp_path / "bin.json"
    path.write_bytes(b"\xff\xfe\xfa")

    with pytest.raises(StorageError):
        read_text(path)


def test_delete_file(tmp_path: Path) -> None:
    path = tmp_path / "x.json"
    path.write_text("x", encoding="utf-8")

    assert delete_file(path) is True
    assert delete_file(path) is False
