"""Quest definition models produced by the extractor and the definition artifact."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from questledger.models.entries import EntryKind, MasterEntry, as_text, as_text_list, as_text_map


class ChapterRecord(BaseModel):
    """A quest chapter: one SNBT file under the quest root.

    Attributes:
        id: Sanitized chapter identifier.
        title: Display title.
        file: Source path relative to the quest root, ``/`` separated.
        description: Optional flattened description.
    """

    id: str
    title: str
    file: str
    description: str | None = None

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {"id": self.id, "title": self.title, "file": self.file}
        if self.description:
            doc["description"] = self.description
        return doc


class QuestDefinition(BaseModel):
    """Imported quest definition before it becomes a catalog entry."""

    id: str = Field(min_length=1)
    name: str | None = None
    description: str | None = None
    chapter: str | None = None
    icon: str | None = None
    attributes: dict[str, str] = Field(default_factory=dict)
    criteria: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)

    @field_validator("attributes", mode="before")
    @classmethod
    def _normalize_attributes(cls, value: object) -> dict[str, str]:
        return as_text_map(value)

    @field_validator("criteria", "tags", mode="before")
    @classmethod
    def _normalize_lists(cls, value: object) -> list[str]:
        return as_text_list(value)

    def to_master_entry(self) -> MasterEntry:
        """Project into a QUEST catalog entry.

        Attributes are ``chapter`` (if set), ``tags`` (if any), then the
        definition's own attributes.
        """
        merged: dict[str, Any] = {}
        if self.chapter and self.chapter.strip():
            merged["chapter"] = self.chapter
        if self.tags:
            merged["tags"] = list(self.tags)
        merged.update(self.attributes)
        return MasterEntry(
            id=self.id,
            kind=EntryKind.QUEST,
            name=self.name,
            description=self.description,
            icon=self.icon,
            attributes=merged,
            criteria=self.criteria,
        )

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {"id": self.id, "name": self.name}
        if self.description and self.description.strip():
            doc["description"] = self.description
        doc["chapter"] = self.chapter
        if self.icon and self.icon.strip():
            doc["icon"] = self.icon
        if self.attributes:
            doc["attributes"] = dict(self.attributes)
        if self.criteria:
            doc["criteria"] = list(self.criteria)
        if self.tags:
            doc["tags"] = list(self.tags)
        return doc

    @classmethod
    def from_document(cls, data: object) -> QuestDefinition | None:
        """Read a definition element; None if it is not an object or has no id."""
        if not isinstance(data, dict):
            return None
        quest_id = as_text(data.get("id"))
        if not quest_id:
            return None
        return cls(
            id=quest_id,
            name=as_text(data.get("name")),
            description=as_text(data.get("description")),
            chapter=as_text(data.get("chapter")),
            icon=as_text(data.get("icon")),
            attributes=data.get("attributes"),
            criteria=data.get("criteria"),
            tags=data.get("tags"),
        )
