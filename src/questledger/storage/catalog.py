"""Per-kind master catalog with a dirty/lock state machine.

A catalog holds every known entry of one kind (achievements or quests) and
persists them to a single JSON file. After a successful flush the catalog is
locked; any genuinely new or changed entry reopens it.

State transitions::

    UNINITIALIZED --load()--> LOADED        (file read, entries present)
    UNINITIALIZED --load()--> NEEDS_INIT    (missing / unreadable / empty)
    LOADED | LOCKED --upsert(changed)--> DIRTY
    NEEDS_INIT | DIRTY --flush() ok--> LOCKED
    any dirty state --flush() failed--> NEEDS_INIT ("write failed")
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path  # noqa: TC003 - used at runtime
from typing import TYPE_CHECKING

from questledger.codec import text
from questledger.codec.result import ParseErr
from questledger.errors import ConsistencyConflict, StorageError
from questledger.models.entries import EntryKind, MasterEntry, format_instant, utc_now
from questledger.observability.logging import get_logger
from questledger.storage.files import delete_file, read_text, write_text_atomic

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

log = get_logger(__name__)

WRITE_FAILED = "write failed"


class CatalogState(StrEnum):
    UNINITIALIZED = "uninitialized"
    LOADED = "loaded"
    NEEDS_INIT = "needs_init"
    DIRTY = "dirty"
    LOCKED = "locked"


class UpsertResult(StrEnum):
    INSERTED = "inserted"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    REJECTED = "rejected"


@dataclass(frozen=True)
class FlushResult:
    """Outcome of CatalogStore.flush().

    Attributes:
        path: Backing file of the catalog.
        written: True if the file was rewritten.
        error: The storage failure, if the write failed.
    """

    path: Path
    written: bool
    error: StorageError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CatalogStore:
    """Master catalog of one entry kind backed by a JSON file."""

    def __init__(
        self,
        path: Path,
        kind: EntryKind,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize an unloaded catalog.

        Args:
            path: Backing JSON file.
            kind: Entry kind this catalog accepts.
            clock: Source of ``generatedAt`` timestamps.
        """
        self.path = path
        self.kind = kind
        self._clock = clock
        self._entries: dict[str, MasterEntry] = {}
        self._loaded = False
        self.dirty = False
        self.locked = False
        self.reason: str | None = None

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def state(self) -> CatalogState:
        if not self._loaded:
            return CatalogState.UNINITIALIZED
        if self.locked:
            return CatalogState.LOCKED
        if self.dirty:
            return CatalogState.NEEDS_INIT if self.reason else CatalogState.DIRTY
        return CatalogState.LOADED

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._entries

    def get(self, entry_id: str) -> MasterEntry | None:
        return self._entries.get(entry_id)

    @property
    def entries(self) -> list[MasterEntry]:
        """Entries in insertion order."""
        return list(self._entries.values())

    def mark_needs_init(self, reason: str) -> None:
        """Flag the catalog for rewrite, keeping its entries."""
        self._loaded = True
        self.dirty = True
        self.locked = False
        self.reason = reason if reason and reason.strip() else "unknown reason"

    def reset(self, reason: str) -> None:
        """Drop all entries and flag the catalog for rewrite."""
        self._entries.clear()
        self.mark_needs_init(reason)

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def load(self) -> CatalogState:
        """Read the backing file, replacing any in-memory entries.

        Never raises: a missing, unreadable, malformed, or empty file leaves
        the catalog in NEEDS_INIT with a reason.

        Returns:
            The resulting state.
        """
        self._entries.clear()
        self._loaded = True
        log.debug("catalog_load", kind=self.kind.value, path=str(self.path))

        if not self.path.exists():
            log.warning("catalog_file_missing", kind=self.kind.value, path=str(self.path))
            self.mark_needs_init("file missing")
            return self.state

        try:
            content = read_text(self.path)
        except StorageError as e:
            log.error("catalog_read_failed", kind=self.kind.value, error=str(e))
            self.mark_needs_init("read error")
            return self.state

        result = text.try_parse(content)
        if isinstance(result, ParseErr):
            log.error(
                "catalog_parse_failed",
                kind=self.kind.value,
                path=str(self.path),
                error=str(result.error),
            )
            self.mark_needs_init("parse error")
            return self.state

        document = result.value
        raw_entries = document.get("entries") if isinstance(document, dict) else None
        if isinstance(raw_entries, list):
            for index, element in enumerate(raw_entries):
                self._load_element(index, element)

        if not self._entries:
            log.warning("catalog_empty", kind=self.kind.value, path=str(self.path))
            self.mark_needs_init("no entries")
            return self.state

        self.dirty = False
        self.locked = False
        self.reason = None
        log.info("catalog_loaded", kind=self.kind.value, count=len(self._entries))
        return self.state

    def _load_element(self, index: int, element: object) -> None:
        try:
            entry = MasterEntry.from_document(element)
        except ValueError as e:
            log.warning("catalog_entry_dropped", kind=self.kind.value, index=index, reason=str(e))
            return
        if entry is None:
            log.warning(
                "catalog_entry_dropped", kind=self.kind.value, index=index, reason="unreadable"
            )
            return
        if entry.kind != self.kind:
            log.warning(
                "catalog_entry_dropped",
                kind=self.kind.value,
                entry_id=entry.id,
                reason=f"kind {entry.kind.value} does not match catalog",
            )
            return
        self._entries[entry.id] = entry

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def upsert(self, entry: MasterEntry) -> UpsertResult:
        """Insert or replace an entry.

        Rejects entries of another kind or without an id; the conflict is
        logged and nothing changes. An entry equal to the stored one is a
        no-op. Otherwise the catalog becomes dirty, and a locked catalog is
        reopened.

        Returns:
            What happened to the entry.
        """
        if not entry.id or not entry.id.strip():
            conflict = ConsistencyConflict(entry.id or "", "entry has no id")
            log.warning("catalog_upsert_rejected", kind=self.kind.value, error=str(conflict))
            return UpsertResult.REJECTED
        if entry.kind != self.kind:
            conflict = ConsistencyConflict(
                entry.id,
                f"kind {entry.kind.value} cannot be stored in the {self.kind.value} catalog",
            )
            log.error("catalog_upsert_rejected", kind=self.kind.value, error=str(conflict))
            return UpsertResult.REJECTED

        normalized = MasterEntry.model_validate(entry.model_dump())
        existing = self._entries.get(normalized.id)
        if normalized == existing:
            return UpsertResult.UNCHANGED

        self._entries[normalized.id] = normalized
        if self.locked:
            log.info("catalog_reopened", kind=self.kind.value, entry_id=normalized.id)
            self.locked = False
            self.reason = None
        self.dirty = True
        self._loaded = True
        log.debug("catalog_entry_upserted", kind=self.kind.value, entry_id=normalized.id)
        return UpsertResult.INSERTED if existing is None else UpsertResult.UPDATED

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def to_document(self) -> dict[str, object]:
        return {
            "generatedAt": format_instant(self._clock()),
            "entries": [entry.to_document() for entry in self._entries.values()],
        }

    def flush(self) -> FlushResult:
        """Write the catalog if dirty.

        On success the catalog is locked. On failure it stays dirty with
        reason "write failed" and the error is returned in the result.
        """
        if not self.dirty:
            return FlushResult(self.path, written=False)

        if self.reason:
            log.warning(
                "catalog_initializing", kind=self.kind.value, reason=self.reason, path=str(self.path)
            )
        try:
            write_text_atomic(self.path, text.stringify(self.to_document()))
        except StorageError as e:
            log.error("catalog_write_failed", kind=self.kind.value, error=str(e))
            self.locked = False
            self.dirty = True
            self.reason = WRITE_FAILED
            return FlushResult(self.path, written=False, error=e)

        self.dirty = False
        self.locked = True
        self.reason = None
        log.info("catalog_written", kind=self.kind.value, count=len(self._entries), path=str(self.path))
        return FlushResult(self.path, written=True)

    def delete_file(self) -> bool:
        """Remove the backing file. Failures are logged, not raised.

        Returns:
            True if a file was removed.
        """
        try:
            removed = delete_file(self.path)
        except StorageError as e:
            log.error("catalog_delete_failed", kind=self.kind.value, error=str(e))
            return False
        if removed:
            log.info("catalog_file_deleted", kind=self.kind.value, path=str(self.path))
        return removed
