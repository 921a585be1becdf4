"""FTB Quests definition extraction and the definition artifact."""

from questledger.quests.definitions import (
    DefinitionImport,
    read_definition_document,
    to_definition_document,
    write_definition_document,
)
from questledger.quests.extractor import (
    QuestDefinitionExtractor,
    QuestExtractionResult,
    locate_quests_directory,
    safe_segment,
)

__all__ = [
    "DefinitionImport",
    "QuestDefinitionExtractor",
    "QuestExtractionResult",
    "locate_quests_directory",
    "read_definition_document",
    "safe_segment",
    "to_definition_document",
    "write_definition_document",
]
