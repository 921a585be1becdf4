"""Synchronization passes and completion recording.

The coordinator turns host inputs (achievement records, quest directories,
definition artifacts, completion events) into catalog upserts and ledger
writes. Passes never raise on partial failure; problems are collected into
the returned result objects and logged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from questledger.errors import StorageError
from questledger.observability.logging import get_logger
from questledger.quests.definitions import read_definition_document, write_definition_document
from questledger.quests.extractor import QuestDefinitionExtractor, locate_quests_directory
from questledger.storage.catalog import CatalogStore, FlushResult, UpsertResult

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime
    from pathlib import Path

    from questledger.export.session import ExportSession
    from questledger.models.achievements import AchievementRecord
    from questledger.models.entries import Actor
    from questledger.models.quests import QuestDefinition
    from questledger.quests.extractor import QuestExtractionResult

log = get_logger(__name__)

REBUILD_REASON = "rebuild requested"


@dataclass
class AchievementSyncResult:
    processed: int = 0
    skipped: int = 0
    flush: FlushResult | None = None
    errors: list[str] = field(default_factory=list)


@dataclass
class QuestSyncResult:
    """Outcome of a quest regeneration or import.

    Attributes:
        quest_count: Quests upserted into the catalog.
        chapter_count: Chapters seen by the extractor.
        source: Quest directory or definition file that was read.
        warnings: Non-fatal problems (skipped files and elements).
        errors: Problems that left the catalog incomplete.
    """

    quest_count: int = 0
    chapter_count: int = 0
    source: Path | None = None
    flush: FlushResult | None = None
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class ResyncReport:
    achievements: int = 0
    quests: int = 0
    chapters: int = 0
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class ExportCoordinator:
    """Runs synchronization passes against an open ExportSession."""

    def __init__(self, session: ExportSession) -> None:
        self.session = session
        self.config = session.config
        self.extractor = QuestDefinitionExtractor(namespace=self.config.quest_namespace)

    # -------------------------------------------------------------------------
    # Catalog passes
    # -------------------------------------------------------------------------

    def synchronize_achievements(
        self, records: Iterable[AchievementRecord | None]
    ) -> AchievementSyncResult:
        """Upsert every achievement record, then flush the achievement catalog."""
        result = AchievementSyncResult()
        catalog = self.session.achievements
        for record in records:
            entry = record.to_master_entry() if record is not None else None
            if entry is None or catalog.upsert(entry) is UpsertResult.REJECTED:
                result.skipped += 1
                continue
            result.processed += 1

        result.flush = catalog.flush()
        if result.flush.error is not None:
            result.errors.append(str(result.flush.error))
        log.info(
            "achievements_synchronized",
            processed=result.processed,
            skipped=result.skipped,
            entries=len(catalog),
        )
        return result

    def regenerate_quests(self, quests_dir: Path | None = None) -> QuestSyncResult:
        """Extract quests, write the definition artifact, and update the quest catalog.

        The directory is, in order: the argument, the configured
        ``quests_dir``, or the first well-known location found near the
        data directory.
        """
        result = QuestSyncResult()
        catalog = self.session.quests
        directory = self._resolve_quests_dir(quests_dir)
        if directory is None:
            message = "FTB Quests directory not found"
            log.warning("quest_directory_unresolved", data_dir=str(self.config.data_dir))
            catalog.mark_needs_init("quest data missing")
            result.warnings.append(message)
            result.errors.append(message)
            return result

        result.source = directory
        extraction = self.extractor.extract(directory)
        result.chapter_count = extraction.chapter_count
        result.warnings.extend(extraction.warnings)
        if extraction.is_empty():
            message = f"No quests found in {directory.as_posix()}"
            catalog.mark_needs_init("no quests found")
            result.errors.append(message)
            return result

        self._write_definitions(directory, extraction, result)
        result.quest_count = self._upsert_quests(catalog, extraction.quests)
        self._flush_into(catalog, result)
        log.info(
            "quests_regenerated",
            quests=result.quest_count,
            chapters=result.chapter_count,
            warnings=len(result.warnings),
            errors=len(result.errors),
        )
        return result

    def import_quest_definitions(self, path: Path | None = None) -> QuestSyncResult:
        """Upsert quests from a definition artifact and flush the quest catalog.

        When the default artifact does not exist yet it is generated from
        the quest directory first.
        """
        definitions_path = path or self.config.definitions_path
        result = QuestSyncResult(source=definitions_path)
        catalog = self.session.quests

        if path is None and not definitions_path.exists():
            self._generate_definitions(result)

        if not definitions_path.exists():
            log.error("definitions_missing", path=str(definitions_path))
            catalog.mark_needs_init("quest definitions missing")
            result.errors.append(f"Quest definitions not found: {definitions_path}")
            return result

        imported = read_definition_document(definitions_path)
        if imported.error is not None:
            log.error("definitions_unreadable", path=str(definitions_path), error=str(imported.error))
            catalog.mark_needs_init("quest definitions unreadable")
            result.errors.append(str(imported.error))
            return result

        result.warnings.extend(imported.warnings)
        if not imported.quests:
            log.warning("definitions_empty", path=str(definitions_path))
            catalog.mark_needs_init("no quests found")

        result.quest_count = self._upsert_quests(catalog, imported.quests)
        self._flush_into(catalog, result)
        log.info("definitions_imported", path=str(definitions_path), quests=result.quest_count)
        return result

    def resynchronize(
        self,
        records: Iterable[AchievementRecord | None],
        quests_dir: Path | None = None,
        *,
        rebuild: bool = False,
    ) -> ResyncReport:
        """Run the achievement and quest passes.

        Args:
            records: Achievement enumerator.
            quests_dir: Quest directory override.
            rebuild: Discard both catalogs (and their files) first.

        Returns:
            Counts plus every warning and error from both passes.
        """
        if rebuild:
            for catalog in (self.session.achievements, self.session.quests):
                catalog.reset(REBUILD_REASON)
                catalog.delete_file()

        achievements = self.synchronize_achievements(records)
        quests = self.regenerate_quests(quests_dir)
        report = ResyncReport(
            achievements=achievements.processed,
            quests=quests.quest_count,
            chapters=quests.chapter_count,
            warnings=list(quests.warnings),
            errors=[*achievements.errors, *quests.errors],
        )
        log.info(
            "resync_complete",
            achievements=report.achievements,
            quests=report.quests,
            chapters=report.chapters,
            errors=len(report.errors),
        )
        return report

    # -------------------------------------------------------------------------
    # Completion recording
    # -------------------------------------------------------------------------

    def record_achievement_completion(
        self,
        actor: Actor,
        record: AchievementRecord | None,
        completed_at: datetime | None = None,
    ) -> bool:
        """Register an achievement and record it in the actor's ledger.

        Achievements under an ignored prefix (recipe unlocks) are skipped.

        Returns:
            True if the actor's ledger changed.
        """
        if record is None or not record.id:
            return False
        if self.config.is_ignored_achievement(record.path):
            log.debug("achievement_ignored", achievement=record.id)
            return False
        entry = record.to_master_entry()
        if entry is None:
            return False
        catalog = self.session.achievements
        if catalog.upsert(entry) is UpsertResult.REJECTED:
            return False
        stored = catalog.get(entry.id) or entry
        return self.session.progress.record(
            actor,
            stored,
            completed_at or self.session.clock(),
            list(stored.criteria),
            {"source": "achievement"},
        )

    def record_quest_completion(
        self,
        actor: Actor,
        definition: QuestDefinition | None,
        completed_at: datetime,
        completed_criteria: list[str] | None = None,
        details: dict[str, str] | None = None,
    ) -> bool:
        """Register a quest and record it in the actor's ledger.

        ``details`` gets ``source: quest`` unless it already names a source.

        Returns:
            True if the actor's ledger changed.
        """
        if definition is None:
            return False
        catalog = self.session.quests
        entry = definition.to_master_entry()
        if catalog.upsert(entry) is UpsertResult.REJECTED:
            return False
        stored = catalog.get(entry.id) or entry
        completion_details = dict(details or {})
        completion_details.setdefault("source", "quest")
        return self.session.progress.record(
            actor, stored, completed_at, completed_criteria, completion_details
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _resolve_quests_dir(self, override: Path | None) -> Path | None:
        for candidate in (override, self.config.quests_dir):
            if candidate is not None:
                return candidate if candidate.is_dir() else None
        return locate_quests_directory(self.config.data_dir)

    def _describe_source(self, directory: Path) -> str:
        base = self.config.data_dir.resolve().parent
        resolved = directory.resolve()
        if resolved.is_relative_to(base):
            return resolved.relative_to(base).as_posix()
        return resolved.as_posix()

    def _generate_definitions(self, result: QuestSyncResult) -> None:
        directory = self._resolve_quests_dir(None)
        if directory is None:
            result.warnings.append("FTB Quests directory not found")
            return
        extraction = self.extractor.extract(directory)
        result.chapter_count = extraction.chapter_count
        result.warnings.extend(extraction.warnings)
        if extraction.is_empty():
            result.warnings.append(f"No quests found in {directory.as_posix()}")
            return
        self._write_definitions(directory, extraction, result)

    def _write_definitions(
        self, directory: Path, extraction: QuestExtractionResult, result: QuestSyncResult
    ) -> None:
        try:
            write_definition_document(
                self.config.definitions_path,
                extraction,
                self.session.clock(),
                self._describe_source(directory),
            )
        except StorageError as e:
            log.error("definitions_write_failed", error=str(e))
            result.errors.append(str(e))

    def _upsert_quests(self, catalog: CatalogStore, quests: list[QuestDefinition]) -> int:
        upserted = 0
        for quest in quests:
            if catalog.upsert(quest.to_master_entry()) is not UpsertResult.REJECTED:
                upserted += 1
        return upserted

    def _flush_into(self, catalog: CatalogStore, result: QuestSyncResult) -> None:
        result.flush = catalog.flush()
        if result.flush.error is not None:
            result.errors.append(str(result.flush.error))
