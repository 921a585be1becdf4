"""Tests for catalog, ledger, quest and achievement models."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from questledger.models import (
    AchievementDisplay,
    AchievementRecord,
    ActorProgress,
    CompletionRecord,
    EntryKind,
    MasterEntry,
    QuestDefinition,
    record_from_adapter,
    records_from_document,
)
from questledger.models.entries import format_instant, parse_instant

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)


class TestEntryKind:
    """Tests for EntryKind.parse()."""

    def test_case_insensitive(self) -> None:
        assert EntryKind.parse("quest") is EntryKind.QUEST

    def test_missing_means_achievement(self) -> None:
        assert EntryKind.parse(None) is EntryKind.ACHIEVEMENT
        assert EntryKind.parse("  ") is EntryKind.ACHIEVEMENT

    def test_advancement_alias(self) -> None:
        assert EntryKind.parse("Advancement") is EntryKind.ACHIEVEMENT

    def test_unknown_kind_raises(self) -> None:
        with pytest.raises(ValueError):
            EntryKind.parse("RECIPE")


class TestInstants:
    """Tests for timestamp helpers."""

    def test_format_uses_z_suffix(self) -> None:
        assert format_instant(T0) == "2024-05-01T12:00:00Z"

    def test_format_converts_to_utc(self) -> None:
        local = datetime(2024, 5, 1, 14, 0, 0, tzinfo=timezone(timedelta(hours=2)))

        assert format_instant(local) == "2024-05-01T12:00:00Z"

    def test_parse_round_trip(self) -> None:
        assert parse_instant("2024-05-01T12:00:00Z") == T0

    def test_parse_invalid_is_none(self) -> None:
        assert parse_instant("yesterday") is None
        assert parse_instant(42) is None


class TestMasterEntry:
    """Tests for MasterEntry normalization and documents."""

    def test_normalizes_null_containers(self) -> None:
        entry = MasterEntry(id="a", kind=EntryKind.QUEST, attributes=None, criteria=None)

        assert entry.attributes == {}
        assert entry.criteria == []

    def test_criteria_deduplicated_in_order(self) -> None:
        entry = MasterEntry(id="a", kind=EntryKind.QUEST, criteria=["b", "a", "b", None])

        assert entry.criteria == ["b", "a"]

    def test_attributes_drop_blank_keys_and_none(self) -> None:
        entry = MasterEntry(
            id="a",
            kind=EntryKind.QUEST,
            attributes={"keep": 1, " ": 2, "none": None, "tags": ("x", "y")},
        )

        assert entry.attributes == {"keep": 1, "tags": ["x", "y"]}

    def test_document_omits_unset_fields(self) -> None:
        entry = MasterEntry(id="demo:first", kind=EntryKind.ACHIEVEMENT, name="First")

        assert entry.to_document() == {"id": "demo:first", "type": "ACHIEVEMENT", "name": "First"}

    def test_document_round_trip(self) -> None:
        entry = MasterEntry(
            id="q",
            kind=EntryKind.QUEST,
            name="Quest",
            description="Do it",
            parent_id="p",
            icon="minecraft:stone",
            attributes={"chapter": "Intro"},
            criteria=["c1"],
        )

        assert MasterEntry.from_document(entry.to_document()) == entry

    def test_from_document_without_id_is_none(self) -> None:
        assert MasterEntry.from_document({"type": "QUEST"}) is None
        assert MasterEntry.from_document("nope") is None

    def test_from_document_unknown_kind_raises(self) -> None:
        with pytest.raises(ValueError):
            MasterEntry.from_document({"id": "x", "type": "RECIPE"})


class TestActorProgress:
    """Tests for ledger bookkeeping."""

    def test_rejects_unsafe_actor_id(self) -> None:
        with pytest.raises(ValidationError):
            ActorProgress(actor_id="../escape")

    def test_blank_name_does_not_replace(self) -> None:
        progress = ActorProgress(actor_id="p1", last_known_name="Steve")

        assert progress.update_last_known_name("  ") is False
        assert progress.update_last_known_name("Alex") is True
        assert progress.last_known_name == "Alex"

    def test_repeat_completion_is_unchanged(self) -> None:
        progress = ActorProgress(actor_id="p1")
        entry = MasterEntry(id="q", kind=EntryKind.QUEST)

        assert progress.record_completion(entry, T0, ["b", "a"], {"source": "quest"}) is True
        assert progress.record_completion(entry, T0, ["a", "b"], {"source": "quest"}) is False

    def test_different_timestamp_is_a_change(self) -> None:
        progress = ActorProgress(actor_id="p1")
        entry = MasterEntry(id="q", kind=EntryKind.QUEST)
        progress.record_completion(entry, T0)

        assert progress.record_completion(entry, T0 + timedelta(seconds=1)) is True

    def test_document_round_trip(self) -> None:
        progress = ActorProgress(actor_id="p1", last_known_name="Steve")
        entry = MasterEntry(id="demo:first", kind=EntryKind.ACHIEVEMENT)
        progress.record_completion(entry, T0, ["c1"], {"source": "achievement"})

        doc = progress.to_document(T0)
        restored = ActorProgress.from_document("p1", doc)

        assert doc["exportedAt"] == "2024-05-01T12:00:00Z"
        assert doc["completions"][0]["entryId"] == "demo:first"
        assert restored.completions["demo:first"].matches(progress.completions["demo:first"])

    def test_from_document_skips_bad_completions(self) -> None:
        restored = ActorProgress.from_document(
            "p1",
            {
                "completions": [
                    {"entryId": "ok", "type": "QUEST", "completedAt": "2024-05-01T12:00:00Z"},
                    {"entryId": "no-time", "type": "QUEST"},
                    {"entryId": "bad-kind", "type": "RECIPE", "completedAt": "2024-05-01T12:00:00Z"},
                    "junk",
                ]
            },
        )

        assert list(restored.completions) == ["ok"]

    def test_completion_details_coerced_to_text(self) -> None:
        record = CompletionRecord(
            entry_id="q", kind=EntryKind.QUEST, completed_at=T0, details={"count": 3, "ok": True}
        )

        assert record.details == {"count": "3", "ok": "true"}


class TestQuestDefinition:
    """Tests for QuestDefinition projection."""

    def test_master_entry_attribute_order(self) -> None:
        definition = QuestDefinition(
            id="ftbquests:intro/start",
            name="First Steps",
            chapter="Getting Started",
            attributes={"chapterId": "intro"},
            criteria=["item:minecraft:oak_log"],
            tags=["early"],
        )

        entry = definition.to_master_entry()

        assert entry.kind is EntryKind.QUEST
        assert list(entry.attributes) == ["chapter", "tags", "chapterId"]
        assert entry.attributes["tags"] == ["early"]
        assert entry.criteria == ["item:minecraft:oak_log"]

    def test_document_round_trip(self) -> None:
        definition = QuestDefinition(id="q", name="Q", chapter="C", tags=["t"])

        assert QuestDefinition.from_document(definition.to_document()) == definition

    def test_blank_id_rejected(self) -> None:
        with pytest.raises(ValidationError):
            QuestDefinition(id="")


class TestAchievements:
    """Tests for achievement records and adapters."""

    def test_master_entry_sorts_criteria(self) -> None:
        record = AchievementRecord(id="demo:first", title="First", criteria=["c2", "c1"])

        entry = record.to_master_entry()

        assert entry is not None
        assert entry.criteria == ["c1", "c2"]
        assert entry.name == "First"

    def test_name_defaults_to_id(self) -> None:
        entry = AchievementRecord(id="demo:first").to_master_entry()

        assert entry is not None
        assert entry.name == "demo:first"

    def test_no_id_gives_no_entry(self) -> None:
        assert AchievementRecord(title="x").to_master_entry() is None

    def test_path_strips_namespace(self) -> None:
        assert AchievementRecord(id="minecraft:recipes/misc/stick").path == "recipes/misc/stick"

    def test_records_from_document_shapes(self) -> None:
        from_list = records_from_document([{"id": "a:b", "parentId": "a:root"}])
        from_object = records_from_document({"achievements": [{"id": "a:b"}, 3]})

        assert from_list[0].parent_id == "a:root"
        assert [r.id for r in from_object] == ["a:b"]

    def test_records_from_document_rejects_other_shapes(self) -> None:
        with pytest.raises(ValueError):
            records_from_document("nope")

    def test_record_from_adapter(self) -> None:
        class FakeAdvancement:
            def id(self) -> str:
                return "minecraft:story/root"

            def parent(self) -> None:
                return None

            def display(self) -> AchievementDisplay:
                return AchievementDisplay(title="Minecraft", frame="task", show_toast=True)

            def criteria(self) -> list[str]:
                raise RuntimeError("not loaded")

        record = record_from_adapter(FakeAdvancement())

        assert record.title == "Minecraft"
        assert record.criteria == []
        assert record.flags["showToast"] is True
        entry = record.to_master_entry()
        assert entry is not None
        assert entry.attributes["frame"] == "task"
