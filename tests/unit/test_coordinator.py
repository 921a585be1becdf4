"""Tests for synchronization passes and completion recording."""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from questledger.codec import text
from questledger.export import ExportCoordinator, ExportSession
from questledger.models import AchievementRecord, Actor, EntryKind, MasterEntry, QuestDefinition
from questledger.storage.catalog import CatalogState

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from questledger.config import ExportConfig

COMPLETED = datetime(2024, 4, 30, 18, 0, 0, tzinfo=UTC)
STEVE = Actor(id="p1", name="Steve")


@pytest.fixture
def session(
    export_config: ExportConfig, fixed_clock: Callable[[], datetime]
) -> ExportSession:
    return ExportSession.open(export_config, fixed_clock)


@pytest.fixture
def coordinator(session: ExportSession) -> ExportCoordinator:
    return ExportCoordinator(session)


def _read(path: Path) -> dict:
    return text.parse(path.read_text(encoding="utf-8"))


class TestSynchronizeAchievements:
    """Tests for ExportCoordinator.synchronize_achievements()."""

    def test_upserts_and_flushes(self, coordinator: ExportCoordinator) -> None:
        records = [
            AchievementRecord(id="demo:first", title="First", criteria=["c2", "c1"]),
            None,
            AchievementRecord(title="missing id"),
        ]

        result = coordinator.synchronize_achievements(records)

        assert result.processed == 1
        assert result.skipped == 2
        assert result.errors == []
        assert result.flush is not None and result.flush.written
        document = _read(coordinator.config.achievements_path)
        assert document["entries"] == [
            {"id": "demo:first", "type": "ACHIEVEMENT", "name": "First", "criteria": ["c1", "c2"]}
        ]

    def test_second_pass_does_not_rewrite(self, coordinator: ExportCoordinator) -> None:
        records = [AchievementRecord(id="demo:first")]
        coordinator.synchronize_achievements(records)

        result = coordinator.synchronize_achievements(records)

        assert result.flush is not None
        assert result.flush.written is False
        assert coordinator.session.achievements.state is CatalogState.LOCKED


class TestRegenerateQuests:
    """Tests for ExportCoordinator.regenerate_quests()."""

    def test_extracts_and_writes_artifact(self, coordinator: ExportCoordinator) -> None:
        result = coordinator.regenerate_quests()

        assert result.quest_count == 2
        assert result.chapter_count == 2
        assert result.errors == []
        assert "No quests found in chapter file: zz_empty.snbt" in result.warnings
        definitions = _read(coordinator.config.definitions_path)
        assert definitions["source"] == "config/ftbquests/quests"
        assert definitions["questCount"] == 2
        catalog = coordinator.session.quests
        assert catalog.state is CatalogState.LOCKED
        assert "ftbquests:intro/start-2" in catalog
        assert catalog.get("ftbquests:intro/start").attributes["chapter"] == "Getting Started"

    def test_missing_directory(self, coordinator: ExportCoordinator, tmp_path: Path) -> None:
        result = coordinator.regenerate_quests(tmp_path / "nope")

        assert result.errors == ["FTB Quests directory not found"]
        assert coordinator.session.quests.state is CatalogState.NEEDS_INIT
        assert coordinator.session.quests.reason == "quest data missing"

    def test_directory_without_quests(self, coordinator: ExportCoordinator, quests_dir: Path) -> None:
        (quests_dir / "chapters" / "intro.snbt").unlink()

        result = coordinator.regenerate_quests()

        assert result.quest_count == 0
        assert result.errors[0].startswith("No quests found in ")
        assert coordinator.session.quests.reason == "no quests found"
        assert not coordinator.config.definitions_path.exists()

    def test_locates_directory_when_unconfigured(
        self, export_config: ExportConfig, fixed_clock: Callable[[], datetime]
    ) -> None:
        config = replace(export_config, quests_dir=None)
        coordinator = ExportCoordinator(ExportSession.open(config, fixed_clock))

        assert coordinator.regenerate_quests().quest_count == 2


class TestImportDefinitions:
    """Tests for ExportCoordinator.import_quest_definitions()."""

    def test_generates_missing_default_artifact(self, coordinator: ExportCoordinator) -> None:
        result = coordinator.import_quest_definitions()

        assert result.errors == []
        assert result.quest_count == 2
        assert coordinator.config.definitions_path.exists()
        assert len(coordinator.session.quests) == 2

    def test_imports_existing_artifact(self, coordinator: ExportCoordinator, tmp_path: Path) -> None:
        path = tmp_path / "edited.json"
        path.write_text(
            text.stringify({"quests": [{"id": "custom:q", "name": "Custom", "chapter": "Side"}]}),
            encoding="utf-8",
        )

        result = coordinator.import_quest_definitions(path)

        assert result.quest_count == 1
        entry = coordinator.session.quests.get("custom:q")
        assert entry is not None
        assert entry.attributes == {"chapter": "Side"}

    def test_explicit_missing_path(self, coordinator: ExportCoordinator, tmp_path: Path) -> None:
        result = coordinator.import_quest_definitions(tmp_path / "absent.json")

        assert result.errors
        assert coordinator.session.quests.reason == "quest definitions missing"

    def test_unreadable_artifact(self, coordinator: ExportCoordinator, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("{", encoding="utf-8")

        result = coordinator.import_quest_definitions(path)

        assert result.errors
        assert coordinator.session.quests.reason == "quest definitions unreadable"


class TestResynchronize:
    """Tests for ExportCoordinator.resynchronize()."""

    def test_reports_both_passes(self, coordinator: ExportCoordinator) -> None:
        report = coordinator.resynchronize([AchievementRecord(id="demo:first")])

        assert report.ok
        assert report.achievements == 1
        assert report.quests == 2
        assert report.chapters == 2
        assert report.warnings

    def test_keeps_stale_entries_without_rebuild(self, coordinator: ExportCoordinator) -> None:
        coordinator.session.quests.upsert(MasterEntry(id="old:quest", kind=EntryKind.QUEST))
        coordinator.session.quests.flush()

        coordinator.resynchronize([])

        assert "old:quest" in coordinator.session.quests

    def test_rebuild_discards_stale_entries(self, coordinator: ExportCoordinator) -> None:
        coordinator.session.quests.upsert(MasterEntry(id="old:quest", kind=EntryKind.QUEST))
        coordinator.session.quests.flush()

        report = coordinator.resynchronize([AchievementRecord(id="demo:first")], rebuild=True)

        assert report.ok
        assert "old:quest" not in coordinator.session.quests
        ids = [entry["id"] for entry in _read(coordinator.config.quests_path)["entries"]]
        assert "old:quest" not in ids

    def test_partial_failure_is_reported(
        self, coordinator: ExportCoordinator, tmp_path: Path
    ) -> None:
        report = coordinator.resynchronize([AchievementRecord(id="demo:first")], tmp_path / "nope")

        assert not report.ok
        assert report.achievements == 1
        assert coordinator.config.achievements_path.exists()

    def test_unencodable_quest_title_is_reported(
        self, coordinator: ExportCoordinator, tmp_path: Path
    ) -> None:
        directory = tmp_path / "odd_quests"
        directory.mkdir()
        directory.joinpath("intro.snbt").write_text(
            r'{id: "intro", quests: [{id: "start", title: "\uD800"}]}', encoding="utf-8"
        )

        report = coordinator.resynchronize([], directory)

        assert not report.ok
        assert report.quests == 1
        definitions = coordinator.config.definitions_path
        assert not definitions.exists()
        assert not definitions.with_suffix(".json.tmp").exists()
        assert coordinator.session.quests.reason == "write failed"


class TestCompletions:
    """Tests for recording completions."""

    def test_achievement_completion(self, coordinator: ExportCoordinator) -> None:
        record = AchievementRecord(id="demo:first", criteria=["b", "a"])

        assert coordinator.record_achievement_completion(STEVE, record, COMPLETED) is True
        assert coordinator.record_achievement_completion(STEVE, record, COMPLETED) is False

        ledger = _read(coordinator.session.progress.path_for("p1"))
        completion = ledger["completions"][0]
        assert completion["completedCriteria"] == ["a", "b"]
        assert completion["details"] == {"source": "achievement"}
        assert "demo:first" in coordinator.session.achievements

    def test_ignored_prefix(self, coordinator: ExportCoordinator) -> None:
        record = AchievementRecord(id="minecraft:recipes/misc/stick")

        assert coordinator.record_achievement_completion(STEVE, record, COMPLETED) is False
        assert "minecraft:recipes/misc/stick" not in coordinator.session.achievements

    def test_achievement_completion_defaults_to_clock(self, coordinator: ExportCoordinator) -> None:
        coordinator.record_achievement_completion(STEVE, AchievementRecord(id="demo:first"))

        ledger = _read(coordinator.session.progress.path_for("p1"))
        assert ledger["completions"][0]["completedAt"] == "2024-05-01T12:00:00Z"

    def test_quest_completion_details(self, coordinator: ExportCoordinator) -> None:
        definition = QuestDefinition(id="ftbquests:intro/start", name="First Steps")

        assert coordinator.record_quest_completion(STEVE, definition, COMPLETED) is True
        coordinator.record_quest_completion(
            Actor(id="p2"), definition, COMPLETED, ["task"], {"source": "command"}
        )

        first = _read(coordinator.session.progress.path_for("p1"))["completions"][0]
        second = _read(coordinator.session.progress.path_for("p2"))["completions"][0]
        assert first["type"] == "QUEST"
        assert first["details"] == {"source": "quest"}
        assert second["details"] == {"source": "command"}
        assert second["completedCriteria"] == ["task"]

    def test_none_inputs_are_ignored(self, coordinator: ExportCoordinator) -> None:
        assert coordinator.record_achievement_completion(STEVE, None) is False
        assert coordinator.record_quest_completion(STEVE, None, COMPLETED) is False
