"""Per-actor completion ledgers and the shared audit log.

Each actor's ledger lives in ``<players_dir>/<actor-id>.json`` and is
rewritten in full whenever a completion changes. Every rewrite also appends
one compact line to the audit log recording who was updated and when.
"""

from __future__ import annotations

from pathlib import Path  # noqa: TC003 - used at runtime
from typing import TYPE_CHECKING, Any

from questledger.codec import text
from questledger.codec.result import ParseErr
from questledger.errors import StorageError
from questledger.models.entries import (
    Actor,
    ActorProgress,
    MasterEntry,
    format_instant,
    utc_now,
)
from questledger.observability.logging import get_logger
from questledger.storage.files import append_line, read_text, write_text_atomic

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

log = get_logger(__name__)


class ProgressStore:
    """Lazily loaded, write-through store of actor ledgers."""

    def __init__(
        self,
        players_dir: Path,
        audit_log: Path,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.players_dir = players_dir
        self.audit_log = audit_log
        self._clock = clock
        self._actors: dict[str, ActorProgress] = {}
        self._dirty: set[str] = set()

    def path_for(self, actor_id: str) -> Path:
        return self.players_dir / f"{actor_id}.json"

    @property
    def dirty_actors(self) -> set[str]:
        return set(self._dirty)

    def get(self, actor_id: str) -> ActorProgress:
        """Return the actor's ledger, loading it on first access.

        Raises:
            ValueError: If actor_id is not usable as a file name.
        """
        progress = self._actors.get(actor_id)
        if progress is None:
            progress = self._load(actor_id)
            self._actors[actor_id] = progress
        return progress

    def touch(self, actor: Actor) -> ActorProgress:
        """Load the actor and apply a display-name change, if any.

        A new name marks the actor dirty without writing; it is persisted by
        the next completion or by flush_all().
        """
        progress = self.get(actor.id)
        if progress.update_last_known_name(actor.name):
            self._dirty.add(actor.id)
        return progress

    def record(
        self,
        actor: Actor,
        entry: MasterEntry,
        completed_at: datetime,
        completed_criteria: list[str] | None = None,
        details: dict[str, str] | None = None,
    ) -> bool:
        """Record a completion and persist it if it changed the ledger.

        Returns:
            True if the completion was new or different.
        """
        progress = self.touch(actor)
        changed = progress.record_completion(entry, completed_at, completed_criteria, details)
        if not changed:
            log.debug("completion_unchanged", actor=actor.id, entry_id=entry.id)
            return False
        self._dirty.add(actor.id)
        log.info("completion_recorded", actor=actor.id, entry_id=entry.id, kind=entry.kind.value)
        self._save(actor.id, progress)
        return True

    def flush_all(self) -> int:
        """Write every actor with unsaved changes.

        Returns:
            Number of actors written successfully.
        """
        written = 0
        for actor_id in sorted(self._dirty):
            if self._save(actor_id, self._actors[actor_id]):
                written += 1
        return written

    def _load(self, actor_id: str) -> ActorProgress:
        empty = ActorProgress(actor_id=actor_id)
        path = self.path_for(actor_id)
        if not path.exists():
            return empty
        try:
            content = read_text(path)
        except StorageError as e:
            log.error("progress_read_failed", actor=actor_id, error=str(e))
            return empty
        result = text.try_parse(content)
        if isinstance(result, ParseErr):
            log.error("progress_parse_failed", actor=actor_id, path=str(path), error=str(result.error))
            return empty
        return ActorProgress.from_document(actor_id, result.value)

    def _save(self, actor_id: str, progress: ActorProgress) -> bool:
        exported_at = self._clock()
        path = self.path_for(actor_id)
        try:
            write_text_atomic(path, text.stringify(progress.to_document(exported_at)))
        except StorageError as e:
            log.error("progress_write_failed", actor=actor_id, error=str(e))
            return False
        self._dirty.discard(actor_id)

        audit: dict[str, Any] = {"playerId": actor_id, "updatedAt": format_instant(exported_at)}
        if progress.last_known_name and progress.last_known_name.strip():
            audit["lastKnownName"] = progress.last_known_name
        try:
            append_line(self.audit_log, text.stringify(audit, indent=None))
        except StorageError as e:
            log.error("audit_append_failed", actor=actor_id, error=str(e))
        return True
