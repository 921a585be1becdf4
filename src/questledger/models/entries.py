"""Catalog and ledger models.

MasterEntry describes one achievement or quest in a master catalog.
CompletionRecord and ActorProgress hold what a single actor has completed.
Each model converts to and from the document shape written by the stores;
reading is lenient and returns ``None`` for elements that cannot be used.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator

ACTOR_ID_PATTERN = r"^[A-Za-z0-9_-][A-Za-z0-9_.-]*$"


class EntryKind(StrEnum):
    """Kind of exported progress entry; each kind has its own catalog."""

    ACHIEVEMENT = "ACHIEVEMENT"
    QUEST = "QUEST"

    @classmethod
    def parse(cls, raw: object) -> EntryKind:
        """Read a kind name case-insensitively.

        A missing or blank value means ACHIEVEMENT. The legacy name
        ``ADVANCEMENT`` is accepted as an alias of ACHIEVEMENT.

        Raises:
            ValueError: If the name is not a known kind.
        """
        if raw is None:
            return cls.ACHIEVEMENT
        name = str(raw).strip().upper()
        if not name or name == "ADVANCEMENT":
            return cls.ACHIEVEMENT
        return cls(name)


# -----------------------------------------------------------------------------
# Timestamps and lenient value coercion
# -----------------------------------------------------------------------------


def utc_now() -> datetime:
    return datetime.now(UTC)


def format_instant(moment: datetime) -> str:
    """Format a timestamp as ISO-8601 UTC with a ``Z`` suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat().replace("+00:00", "Z")


def parse_instant(raw: object) -> datetime | None:
    """Parse an ISO-8601 timestamp, returning None when absent or invalid.

    Naive timestamps are taken to be UTC.
    """
    if not isinstance(raw, str) or not raw.strip():
        return None
    try:
        moment = datetime.fromisoformat(raw.strip())
    except ValueError:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def as_text(value: object) -> str | None:
    """Return strings as-is and numbers/booleans as text; anything else is None."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return int.__repr__(value)
    if isinstance(value, float):
        return float.__repr__(value)
    return None


def as_text_list(value: object) -> list[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [text for text in (as_text(item) for item in value) if text is not None]


def as_text_map(value: object) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    result: dict[str, str] = {}
    for key, item in value.items():
        if key is None:
            continue
        text = as_text(item)
        if text is not None:
            result[str(key)] = text
    return result


def clean_attributes(value: object) -> dict[str, Any]:
    """Drop blank keys and None values; copy sequences to lists."""
    if not isinstance(value, dict):
        return {}
    cleaned: dict[str, Any] = {}
    for key, item in value.items():
        if key is None or not str(key).strip() or item is None:
            continue
        cleaned[str(key)] = list(item) if isinstance(item, (list, tuple, set, frozenset)) else item
    return cleaned


def dedupe(values: object) -> list[str]:
    """Drop None and repeats, keeping first-seen order."""
    if values is None:
        return []
    if isinstance(values, str):
        values = [values]
    seen: dict[str, None] = {}
    for item in values:  # type: ignore[union-attr]
        if item is not None:
            seen.setdefault(str(item), None)
    return list(seen)


# -----------------------------------------------------------------------------
# Master catalog
# -----------------------------------------------------------------------------


class MasterEntry(BaseModel):
    """Catalog definition of an achievement or quest.

    Attributes:
        id: Unique identifier within the entry's catalog.
        kind: Catalog the entry belongs to.
        name: Display name.
        description: Optional description text.
        parent_id: Optional parent entry (achievement trees).
        icon: Optional item identifier used as icon.
        attributes: Free-form metadata, insertion ordered.
        criteria: Criterion names, unique, insertion ordered.
    """

    id: str
    kind: EntryKind
    name: str | None = None
    description: str | None = None
    parent_id: str | None = None
    icon: str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)
    criteria: list[str] = Field(default_factory=list)

    @field_validator("attributes", mode="before")
    @classmethod
    def _normalize_attributes(cls, value: object) -> dict[str, Any]:
        return clean_attributes(value)

    @field_validator("criteria", mode="before")
    @classmethod
    def _normalize_criteria(cls, value: object) -> list[str]:
        return dedupe(value)

    def to_document(self) -> dict[str, Any]:
        """Build the catalog file representation, omitting unset fields."""
        doc: dict[str, Any] = {"id": self.id, "type": self.kind.value}
        if self.name is not None:
            doc["name"] = self.name
        if self.description is not None:
            doc["description"] = self.description
        if self.parent_id is not None:
            doc["parentId"] = self.parent_id
        if self.icon is not None:
            doc["icon"] = self.icon
        if self.attributes:
            doc["attributes"] = dict(self.attributes)
        if self.criteria:
            doc["criteria"] = list(self.criteria)
        return doc

    @classmethod
    def from_document(cls, data: object) -> MasterEntry | None:
        """Read a catalog element; None if it is not an object or has no id.

        Raises:
            ValueError: If the element names an unknown kind.
        """
        if not isinstance(data, dict):
            return None
        entry_id = as_text(data.get("id"))
        if not entry_id:
            return None
        return cls(
            id=entry_id,
            kind=EntryKind.parse(as_text(data.get("type"))),
            name=as_text(data.get("name")),
            description=as_text(data.get("description")),
            parent_id=as_text(data.get("parentId")),
            icon=as_text(data.get("icon")),
            attributes=data.get("attributes"),
            criteria=as_text_list(data.get("criteria")),
        )


# -----------------------------------------------------------------------------
# Actor ledger
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Actor:
    """Identity of a player as seen by the host: stable id plus display name."""

    id: str
    name: str | None = None


class CompletionRecord(BaseModel):
    """One completed entry in an actor's ledger."""

    entry_id: str = Field(min_length=1)
    kind: EntryKind
    completed_at: datetime
    completed_criteria: list[str] = Field(default_factory=list)
    details: dict[str, str] = Field(default_factory=dict)

    @field_validator("completed_criteria", mode="before")
    @classmethod
    def _normalize_criteria(cls, value: object) -> list[str]:
        if value is None:
            return []
        return [str(item) for item in value if item is not None]  # type: ignore[union-attr]

    @field_validator("details", mode="before")
    @classmethod
    def _normalize_details(cls, value: object) -> dict[str, str]:
        return as_text_map(value)

    @field_validator("completed_at")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def matches(self, other: CompletionRecord | None) -> bool:
        """Whether other records the same completion (criteria compared as a set)."""
        if other is None:
            return False
        return (
            self.entry_id == other.entry_id
            and self.kind == other.kind
            and self.completed_at == other.completed_at
            and set(self.completed_criteria) == set(other.completed_criteria)
            and self.details == other.details
        )

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "entryId": self.entry_id,
            "type": self.kind.value,
            "completedAt": format_instant(self.completed_at),
        }
        if self.completed_criteria:
            doc["completedCriteria"] = list(self.completed_criteria)
        if self.details:
            doc["details"] = dict(self.details)
        return doc

    @classmethod
    def from_document(cls, data: object) -> CompletionRecord | None:
        """Read a ledger element; None if it lacks an id, kind, or timestamp."""
        if not isinstance(data, dict):
            return None
        entry_id = as_text(data.get("entryId"))
        completed_at = parse_instant(data.get("completedAt"))
        if not entry_id or completed_at is None:
            return None
        try:
            kind = EntryKind.parse(as_text(data.get("type")))
        except ValueError:
            return None
        return cls(
            entry_id=entry_id,
            kind=kind,
            completed_at=completed_at,
            completed_criteria=as_text_list(data.get("completedCriteria")),
            details=data.get("details"),
        )


class ActorProgress(BaseModel):
    """Completion ledger of a single actor, keyed by entry id."""

    actor_id: str = Field(pattern=ACTOR_ID_PATTERN)
    last_known_name: str | None = None
    completions: dict[str, CompletionRecord] = Field(default_factory=dict)

    def update_last_known_name(self, name: str | None) -> bool:
        """Store a new display name. Blank names are ignored.

        Returns:
            True if the stored name changed.
        """
        if name is None or not name.strip() or name == self.last_known_name:
            return False
        self.last_known_name = name
        return True

    def record_completion(
        self,
        entry: MasterEntry,
        completed_at: datetime,
        completed_criteria: list[str] | None = None,
        details: dict[str, str] | None = None,
    ) -> bool:
        """Record that the actor completed entry.

        Returns:
            True if the ledger changed, False for an identical repeat.
        """
        updated = CompletionRecord(
            entry_id=entry.id,
            kind=entry.kind,
            completed_at=completed_at,
            completed_criteria=completed_criteria,
            details=details,
        )
        if updated.matches(self.completions.get(entry.id)):
            return False
        self.completions[entry.id] = updated
        return True

    def to_document(self, exported_at: datetime) -> dict[str, Any]:
        doc: dict[str, Any] = {"playerId": self.actor_id}
        if self.last_known_name is not None:
            doc["lastKnownName"] = self.last_known_name
        doc["exportedAt"] = format_instant(exported_at)
        doc["completions"] = [record.to_document() for record in self.completions.values()]
        return doc

    @classmethod
    def from_document(cls, actor_id: str, data: object) -> ActorProgress:
        """Read a ledger snapshot; unusable completions are skipped."""
        if not isinstance(data, dict):
            return cls(actor_id=actor_id)
        completions: dict[str, CompletionRecord] = {}
        raw_completions = data.get("completions")
        if isinstance(raw_completions, list):
            for element in raw_completions:
                record = CompletionRecord.from_document(element)
                if record is not None:
                    completions[record.entry_id] = record
        return cls(
            actor_id=actor_id,
            last_known_name=as_text(data.get("lastKnownName")),
            completions=completions,
        )
