"""Achievement inputs.

The host game supplies achievements through an enumerator of
AchievementRecord values. Host objects can be wrapped by anything that
satisfies AchievementAdapter and converted with ``record_from_adapter``;
the CLI reads records from a JSON document with ``records_from_document``.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field, ValidationError

from questledger.models.entries import EntryKind, MasterEntry, as_text, as_text_list
from questledger.observability.logging import get_logger

log = get_logger(__name__)


class AchievementDisplay(BaseModel):
    """Display properties of an achievement as reported by the host."""

    title: str | None = None
    description: str | None = None
    icon: str | None = None
    frame: str | None = None
    background: str | None = None
    announce_to_chat: bool = False
    show_toast: bool = False
    hidden: bool = False


class AchievementRecord(BaseModel):
    """Host achievement flattened into plain values.

    Attributes:
        id: Namespaced achievement key, e.g. ``minecraft:story/mine_stone``.
        parent_id: Key of the parent achievement, if any.
        title: Display title.
        description: Display description.
        icon: Item identifier of the icon.
        flags: Boolean display flags (announceToChat, showToast, hidden).
        frame: Frame style name.
        background: Background texture key.
        criteria: Criterion names.
    """

    id: str | None = None
    parent_id: str | None = None
    title: str | None = None
    description: str | None = None
    icon: str | None = None
    flags: dict[str, bool] = Field(default_factory=dict)
    frame: str | None = None
    background: str | None = None
    criteria: list[str] = Field(default_factory=list)

    def to_master_entry(self) -> MasterEntry | None:
        """Build the ACHIEVEMENT catalog entry; None when the record has no id."""
        if not self.id or not self.id.strip():
            return None
        attributes: dict[str, Any] = dict(self.flags)
        if self.background:
            attributes["background"] = self.background
        if self.frame:
            attributes["frame"] = self.frame
        return MasterEntry(
            id=self.id,
            kind=EntryKind.ACHIEVEMENT,
            name=self.title if self.title and self.title.strip() else self.id,
            description=self.description,
            parent_id=self.parent_id,
            icon=self.icon,
            attributes=attributes,
            criteria=sorted(c for c in self.criteria if c is not None),
        )

    @property
    def path(self) -> str:
        """Key without its namespace (``story/mine_stone``)."""
        if not self.id:
            return ""
        return self.id.split(":", 1)[-1]


@runtime_checkable
class AchievementAdapter(Protocol):
    """Read-only view of a host achievement object."""

    def id(self) -> str | None: ...

    def parent(self) -> str | None: ...

    def display(self) -> AchievementDisplay | None: ...

    def criteria(self) -> Iterable[str]: ...


def record_from_adapter(adapter: AchievementAdapter) -> AchievementRecord:
    """Convert a host achievement into an AchievementRecord.

    A failing ``criteria()`` call is logged and treated as no criteria.
    """
    try:
        criteria = [c for c in adapter.criteria() or () if c is not None]
    except Exception as e:
        log.warning("achievement_criteria_unavailable", achievement=adapter.id(), error=str(e))
        criteria = []

    display = adapter.display()
    if display is None:
        return AchievementRecord(id=adapter.id(), parent_id=adapter.parent(), criteria=criteria)
    return AchievementRecord(
        id=adapter.id(),
        parent_id=adapter.parent(),
        title=display.title,
        description=display.description,
        icon=display.icon,
        flags={
            "announceToChat": display.announce_to_chat,
            "showToast": display.show_toast,
            "hidden": display.hidden,
        },
        frame=display.frame,
        background=display.background,
        criteria=criteria,
    )


def records_from_document(data: object) -> list[AchievementRecord]:
    """Read achievement records from a decoded JSON document.

    Accepts a list of record objects or ``{"achievements": [...]}``. Field
    names may be camelCase (``parentId``) or snake_case. Elements that are
    not objects or fail validation are skipped with a warning.

    Raises:
        ValueError: If the document has neither shape.
    """
    if isinstance(data, dict):
        data = data.get("achievements")
    if not isinstance(data, list):
        raise ValueError("expected a list of achievements or an object with an 'achievements' list")

    records: list[AchievementRecord] = []
    for index, element in enumerate(data):
        if not isinstance(element, dict):
            log.warning("achievement_element_skipped", index=index, reason="not an object")
            continue
        flags = element.get("flags")
        try:
            record = AchievementRecord(
                id=as_text(element.get("id")),
                parent_id=as_text(element.get("parentId", element.get("parent_id"))),
                title=as_text(element.get("title")),
                description=as_text(element.get("description")),
                icon=as_text(element.get("icon")),
                flags=flags if isinstance(flags, dict) else {},
                frame=as_text(element.get("frame")),
                background=as_text(element.get("background")),
                criteria=as_text_list(element.get("criteria")),
            )
        except ValidationError as e:
            log.warning("achievement_element_skipped", index=index, reason=str(e))
            continue
        records.append(record)
    return records
