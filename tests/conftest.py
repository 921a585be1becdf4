"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from questledger.config import ENV_DATA_DIR, ENV_QUESTS_DIR, ExportConfig

if TYPE_CHECKING:
    from collections.abc import Callable

FIXED_INSTANT = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)

INTRO_CHAPTER = """\
# Generated by FTB Quests
{
    id: "intro",
    title: "Getting Started",
    description: ["Welcome", "to the pack"],
    quests: [
        {
            id: "start",
            title: "First Steps",
            description: "Punch a tree",
            icon: {id: "minecraft:oak_log", Count: 1b},
            tasks: [{type: "item", item: "minecraft:oak_log", count: 16L}],
            rewards: [{type: "xp", xp: 10}],
            x: 0.0d,
            y: -1.5f
        },
        {
            id: "start",
            title: "Second Steps",
            tasks: [{type: "checkmark"}],
            tags: ["early", "tutorial"],
            dependencies: ["start"]
        }
    ]
}
"""

EMPTY_CHAPTER = """\
{
    id: "empty",
    title: "Nothing Here",
    quests: []
}
"""


@pytest.fixture(autouse=True)
def clear_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep QL_* variables from the developer's shell out of the tests."""
    monkeypatch.delenv(ENV_DATA_DIR, raising=False)
    monkeypatch.delenv(ENV_QUESTS_DIR, raising=False)


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    """Clock that always returns FIXED_INSTANT."""
    return lambda: FIXED_INSTANT


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def quests_dir(tmp_path: Path) -> Path:
    """Quest directory with one populated chapter and one empty chapter."""
    directory = tmp_path / "config" / "ftbquests" / "quests"
    chapters = directory / "chapters"
    chapters.mkdir(parents=True)
    (chapters / "intro.snbt").write_text(INTRO_CHAPTER, encoding="utf-8")
    (chapters / "zz_empty.snbt").write_text(EMPTY_CHAPTER, encoding="utf-8")
    return directory


@pytest.fixture
def export_config(data_dir: Path, quests_dir: Path) -> ExportConfig:
    return ExportConfig(data_dir=data_dir, quests_dir=quests_dir)
