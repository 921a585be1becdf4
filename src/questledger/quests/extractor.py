"""Quest definition extraction from FTB Quests SNBT chapter files.

The extractor is forgiving: every quest keeps its full authored compound in
the ``rawData`` attribute, so nothing is lost when a modpack uses fields this
module does not interpret. Files that cannot be read or parsed produce a
warning and are skipped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from questledger.codec import snbt, text
from questledger.codec.result import ParseErr
from questledger.errors import ConsistencyConflict, StorageError, StructuralError
from questledger.models.entries import as_text
from questledger.models.quests import ChapterRecord, QuestDefinition
from questledger.observability.logging import get_logger
from questledger.storage.files import read_text

log = get_logger(__name__)

DEFAULT_NAMESPACE = "ftbquests"

# Relative to each base directory searched by locate_quests_directory().
QUEST_DIRECTORY_CANDIDATES = (
    Path("config/ftbquests/quests"),
    Path("ftbquests/quests"),
    Path("world/ftbquests/quests"),
    Path("world/serverconfig/ftbquests/quests"),
    Path("world/config/ftbquests/quests"),
    Path("serverconfig/ftbquests/quests"),
    Path("defaultconfigs/ftbquests/quests"),
    Path("local/ftbquests/quests"),
)
SEARCH_DEPTH = 5

_UNSAFE_RUN = re.compile(r"[^a-z0-9_]+")
_UNDERSCORES = re.compile(r"_+")


def safe_segment(value: str | None) -> str:
    """Reduce a value to ``[a-z0-9_]`` for use inside an entry id.

    Blank input gives ``unknown``; input with no usable characters gives
    ``segment``.
    """
    if value is None or not value.strip():
        return "unknown"
    normalized = _UNDERSCORES.sub("_", _UNSAFE_RUN.sub("_", value.lower()))
    normalized = normalized.strip("_")
    return normalized or "segment"


def first_non_blank(*values: str | None) -> str | None:
    for value in values:
        if value is not None and value.strip():
            return value
    return None


def flatten_description(value: object) -> str | None:
    """Flatten a description from a string, a list of lines, or a text compound."""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, list):
        lines = [flatten_description(item) for item in value]
        return "\n".join(line.strip() for line in lines if line and line.strip())
    if isinstance(value, dict):
        return flatten_description(value["text"] if "text" in value else value.get("value"))
    return None


def resolve_icon(value: object) -> str | None:
    """Resolve an icon given as an item id or an item compound."""
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        icon_id = first_non_blank(
            as_text(value.get("id")), as_text(value.get("item")), as_text(value.get("name"))
        )
        if icon_id is not None:
            return icon_id
        if "stack" in value:
            return resolve_icon(value["stack"])
    return None


def describe_tasks(tasks: object) -> list[str]:
    """Name each task as ``type:title`` or ``type#N`` (1-based)."""
    if not isinstance(tasks, list):
        return []
    described: list[str] = []
    for index, task in enumerate(tasks, start=1):
        if not isinstance(task, dict):
            described.append(f"task#{index}")
            continue
        task_type = as_text(task.get("type")) or "task"
        title = first_non_blank(
            as_text(task.get("title")), as_text(task.get("item")), as_text(task.get("entity"))
        )
        described.append(f"{task_type}:{title}" if title else f"{task_type}#{index}")
    return described


def _text_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in (as_text(v) for v in value) if item and item.strip()]


@dataclass
class QuestExtractionResult:
    """Quests, chapters, and warnings collected from a quest directory."""

    namespace: str = DEFAULT_NAMESPACE
    quests: list[QuestDefinition] = field(default_factory=list)
    chapters: list[ChapterRecord] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    _used_ids: set[str] = field(default_factory=set, repr=False)

    @property
    def quest_count(self) -> int:
        return len(self.quests)

    @property
    def chapter_count(self) -> int:
        return len(self.chapters)

    def is_empty(self) -> bool:
        return not self.quests

    def add_warning(self, warning: str) -> None:
        log.warning("quest_extraction_warning", warning=warning)
        self.warnings.append(warning)

    def next_unique_quest_id(self, chapter_id: str, desired_id: str | None) -> str:
        """Allocate ``<namespace>:<chapter>/<quest>``, suffixing -2, -3... on collision."""
        base = f"{self.namespace}:{safe_segment(chapter_id)}/{safe_segment(desired_id)}"
        if base not in self._used_ids:
            self._used_ids.add(base)
            return base
        counter = 2
        while f"{base}-{counter}" in self._used_ids:
            counter += 1
        unique = f"{base}-{counter}"
        self._used_ids.add(unique)
        conflict = ConsistencyConflict(base, f"duplicate quest id renamed to {unique}")
        log.debug("quest_id_collision", error=str(conflict))
        return unique

    def finalize(self) -> None:
        """Sort quests and chapters by id and warnings alphabetically."""
        self.quests.sort(key=lambda quest: quest.id)
        self.chapters.sort(key=lambda chapter: chapter.id)
        self.warnings.sort()


class QuestDefinitionExtractor:
    """Walks a quest directory and projects SNBT chapters into definitions."""

    def __init__(self, namespace: str = DEFAULT_NAMESPACE) -> None:
        self.namespace = namespace

    def extract(self, quests_dir: Path | None) -> QuestExtractionResult:
        """Extract every ``*.snbt`` file below quests_dir in sorted order.

        A missing directory yields an empty result.
        """
        result = QuestExtractionResult(namespace=self.namespace)
        if quests_dir is None or not quests_dir.is_dir():
            log.info("quest_directory_missing", path=str(quests_dir))
            return result

        files = sorted(path for path in quests_dir.rglob("*.snbt") if path.is_file())
        log.info("quest_extraction_start", path=str(quests_dir), files=len(files))
        for path in files:
            self._process_file(result, quests_dir, path)
        result.finalize()
        log.info(
            "quest_extraction_complete",
            quests=result.quest_count,
            chapters=result.chapter_count,
            warnings=len(result.warnings),
        )
        return result

    def _process_file(self, result: QuestExtractionResult, root: Path, path: Path) -> None:
        relative = path.relative_to(root).as_posix()
        try:
            content = read_text(path)
        except StorageError as e:
            log.error("quest_file_read_failed", path=relative, error=str(e))
            result.add_warning(f"Read error: {relative}")
            return

        parsed = snbt.try_parse(content)
        if isinstance(parsed, ParseErr):
            log.error("quest_file_parse_failed", path=relative, error=str(parsed.error))
            result.add_warning(f"Parse error: {relative}")
            return
        if not isinstance(parsed.value, dict):
            result.add_warning(f"SNBT file has no compound root: {relative}")
            return
        self._handle_chapter(result, path, relative, parsed.value)

    def _handle_chapter(
        self,
        result: QuestExtractionResult,
        path: Path,
        relative: str,
        compound: dict[str, Any],
    ) -> None:
        raw_chapter_id = first_non_blank(
            as_text(compound.get("id")), as_text(compound.get("chapter")), path.stem
        )
        chapter_title = first_non_blank(
            as_text(compound.get("title")), as_text(compound.get("name")), raw_chapter_id
        )
        description = flatten_description(compound.get("description"))
        chapter = ChapterRecord(
            id=safe_segment(raw_chapter_id),
            title=chapter_title or "",
            file=relative,
            description=description if description and description.strip() else None,
        )
        result.chapters.append(chapter)

        raw_quests = compound.get("quests")
        if raw_quests is not None and not isinstance(raw_quests, list):
            error = StructuralError(relative, "'quests' is not a list")
            result.add_warning(str(error))
            return
        quests = [quest for quest in raw_quests or [] if isinstance(quest, dict)]
        if not quests:
            result.add_warning(f"No quests found in chapter file: {path.name}")
            return
        for index, quest in enumerate(quests):
            result.quests.append(self._project_quest(result, chapter, quest, index))

    def _project_quest(
        self,
        result: QuestExtractionResult,
        chapter: ChapterRecord,
        quest: dict[str, Any],
        index: int,
    ) -> QuestDefinition:
        raw_id = as_text(quest.get("id"))
        name = first_non_blank(
            as_text(quest.get("title")), as_text(quest.get("name")), f"Quest {index + 1}"
        )
        quest_id = result.next_unique_quest_id(chapter.id, raw_id if raw_id is not None else name)
        description = flatten_description(quest.get("description")) or ""
        subtitle = first_non_blank(as_text(quest.get("subtitle")), as_text(quest.get("subtitle_id")))

        attributes: dict[str, str] = {
            "chapterId": chapter.id,
            "chapterTitle": chapter.title,
            "sourceFile": chapter.file,
        }
        if raw_id is not None and raw_id.strip():
            attributes["questSourceId"] = raw_id
        if subtitle is not None:
            attributes["subtitle"] = subtitle
        attributes["rawData"] = text.stringify(quest)
        if "rewards" in quest:
            attributes["rewards"] = text.stringify(quest["rewards"])
        if "dependencies" in quest:
            attributes["dependencies"] = text.stringify(quest["dependencies"])

        icon = resolve_icon(quest.get("icon"))
        return QuestDefinition(
            id=quest_id,
            name=name,
            description=description if description.strip() else None,
            chapter=chapter.title,
            icon=icon if icon and icon.strip() else None,
            attributes=attributes,
            criteria=describe_tasks(quest.get("tasks")),
            tags=_text_list(quest.get("tags")),
        )


def locate_quests_directory(base: Path) -> Path | None:
    """Find an FTB Quests ``quests`` directory near base.

    Checks the well-known locations under base and each of its parents, up
    to five levels in total.

    Returns:
        The first existing directory, or None.
    """
    current: Path | None = base.resolve()
    searched: list[Path] = []
    for _ in range(SEARCH_DEPTH):
        if current is None:
            break
        for candidate in QUEST_DIRECTORY_CANDIDATES:
            path = current / candidate
            if path.is_dir():
                log.debug("quest_directory_found", path=str(path))
                return path
            searched.append(path)
        current = current.parent if current.parent != current else None
    log.debug("quest_directory_not_found", searched=[p.as_posix() for p in searched])
    return None
