"""The quest definition artifact (``ftbquests_definitions.json``).

Extraction results are written to a JSON document that can be inspected,
edited, and later re-imported into the quest catalog without the original
SNBT files.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime  # noqa: TC003 - used at runtime
from pathlib import Path  # noqa: TC003 - used at runtime
from typing import Any

from pydantic import ValidationError

from questledger.codec import text
from questledger.codec.result import ParseErr
from questledger.errors import LedgerError, StructuralError
from questledger.models.entries import format_instant
from questledger.models.quests import QuestDefinition
from questledger.observability.logging import get_logger
from questledger.quests.extractor import QuestExtractionResult  # noqa: TC001 - used at runtime
from questledger.storage.files import read_text, write_text_atomic

log = get_logger(__name__)


@dataclass
class DefinitionImport:
    """Quests read back from a definition artifact.

    Attributes:
        quests: Definitions that could be read.
        warnings: One entry per skipped element.
        error: Set when the document as a whole could not be used.
    """

    quests: list[QuestDefinition] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: LedgerError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def to_definition_document(
    result: QuestExtractionResult,
    generated_at: datetime,
    source: str,
) -> dict[str, Any]:
    """Build the artifact document; chapters and warnings only when present."""
    doc: dict[str, Any] = {
        "generatedAt": format_instant(generated_at),
        "source": source,
        "questCount": result.quest_count,
        "chapterCount": result.chapter_count,
        "quests": [quest.to_document() for quest in result.quests],
    }
    if result.chapters:
        doc["chapters"] = [chapter.to_document() for chapter in result.chapters]
    if result.warnings:
        doc["warnings"] = list(result.warnings)
    return doc


def write_definition_document(
    path: Path,
    result: QuestExtractionResult,
    generated_at: datetime,
    source: str,
) -> None:
    """Write the artifact atomically.

    Raises:
        StorageError: If the file can't be written.
    """
    write_text_atomic(path, text.stringify(to_definition_document(result, generated_at, source)))
    log.info("definitions_written", path=str(path), quests=result.quest_count)


def read_definition_document(path: Path) -> DefinitionImport:
    """Read quests from a previously written artifact.

    Never raises. Unreadable files, syntax errors, a non-object root, and a
    missing or non-list ``quests`` field are reported through ``error``;
    unusable quest elements are skipped with a warning.
    """
    imported = DefinitionImport()
    try:
        content = read_text(path)
    except LedgerError as e:
        imported.error = e
        return imported

    parsed = text.try_parse(content)
    if isinstance(parsed, ParseErr):
        imported.error = parsed.error
        return imported
    if not isinstance(parsed.value, dict):
        imported.error = StructuralError(str(path), "root is not an object")
        return imported
    raw_quests = parsed.value.get("quests")
    if not isinstance(raw_quests, list):
        imported.error = StructuralError(str(path), "'quests' is missing or not a list")
        return imported

    for index, element in enumerate(raw_quests):
        try:
            quest = QuestDefinition.from_document(element)
        except ValidationError as e:
            quest = None
            log.debug("definition_element_invalid", index=index, error=str(e))
        if quest is None:
            warning = f"Quest definition #{index + 1} could not be read"
            log.warning("definition_element_skipped", path=str(path), index=index)
            imported.warnings.append(warning)
            continue
        imported.quests.append(quest)
    return imported
