"""Data models for catalogs, ledgers, quests, and achievement inputs."""

from questledger.models.achievements import (
    AchievementAdapter,
    AchievementDisplay,
    AchievementRecord,
    record_from_adapter,
    records_from_document,
)
from questledger.models.entries import (
    Actor,
    ActorProgress,
    CompletionRecord,
    EntryKind,
    MasterEntry,
    format_instant,
    parse_instant,
    utc_now,
)
from questledger.models.quests import ChapterRecord, QuestDefinition

__all__ = [
    "AchievementAdapter",
    "AchievementDisplay",
    "AchievementRecord",
    "Actor",
    "ActorProgress",
    "ChapterRecord",
    "CompletionRecord",
    "EntryKind",
    "MasterEntry",
    "QuestDefinition",
    "format_instant",
    "parse_instant",
    "record_from_adapter",
    "records_from_document",
    "utc_now",
]
