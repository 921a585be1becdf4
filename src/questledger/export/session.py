"""Export session: owns the catalogs and the progress store for one run."""

from __future__ import annotations

from typing import TYPE_CHECKING, Self

from questledger.models.entries import EntryKind, utc_now
from questledger.observability.logging import get_logger
from questledger.storage.catalog import CatalogStore, FlushResult
from questledger.storage.progress import ProgressStore

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime
    from types import TracebackType

    from questledger.config import ExportConfig

log = get_logger(__name__)


class ExportSession:
    """Explicit owner of all export state.

    Open with ``ExportSession.open(config)`` (or use it as a context
    manager); ``close()`` flushes everything once.
    """

    def __init__(
        self,
        config: ExportConfig,
        achievements: CatalogStore,
        quests: CatalogStore,
        progress: ProgressStore,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.config = config
        self.achievements = achievements
        self.quests = quests
        self.progress = progress
        self.clock = clock
        self._closed = False

    @classmethod
    def open(cls, config: ExportConfig, clock: Callable[[], datetime] = utc_now) -> Self:
        """Create the stores for config and load both catalogs."""
        achievements = CatalogStore(config.achievements_path, EntryKind.ACHIEVEMENT, clock)
        quests = CatalogStore(config.quests_path, EntryKind.QUEST, clock)
        achievements.load()
        quests.load()
        progress = ProgressStore(config.players_dir, config.audit_log_path, clock)
        log.info(
            "session_opened",
            data_dir=str(config.data_dir),
            achievements=len(achievements),
            quests=len(quests),
        )
        return cls(config, achievements, quests, progress, clock)

    @property
    def closed(self) -> bool:
        return self._closed

    def catalog_for(self, kind: EntryKind) -> CatalogStore:
        return self.achievements if kind is EntryKind.ACHIEVEMENT else self.quests

    def flush_all(self) -> list[FlushResult]:
        """Flush both catalogs and every actor with unsaved changes.

        Returns:
            Flush results for the achievement and quest catalogs.
        """
        results = [self.achievements.flush(), self.quests.flush()]
        written = self.progress.flush_all()
        log.debug("session_flushed", actors_written=written)
        return results

    def close(self) -> list[FlushResult]:
        """Flush once and mark the session closed. Later calls do nothing."""
        if self._closed:
            return []
        results = self.flush_all()
        self._closed = True
        log.info("session_closed")
        return results

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
