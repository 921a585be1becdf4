"""Export orchestration: the session lifecycle and synchronization passes."""

from questledger.export.coordinator import (
    AchievementSyncResult,
    ExportCoordinator,
    QuestSyncResult,
    ResyncReport,
)
from questledger.export.session import ExportSession

__all__ = [
    "AchievementSyncResult",
    "ExportCoordinator",
    "ExportSession",
    "QuestSyncResult",
    "ResyncReport",
]
