"""Error types for the export engine.

Every failure the engine can report derives from LedgerError. The codec,
storage, and extraction layers either raise these or carry them inside
result objects so callers can decide whether to skip, warn, or retry.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path  # noqa: TC003 - used at runtime


class LedgerError(Exception):
    """Base class for all export engine errors."""


@dataclass
class CodecSyntaxError(LedgerError):
    """Raised when text does not match a codec grammar.

    Attributes:
        message: Description of the violation.
        offset: Character offset into the input where parsing stopped.
    """

    message: str
    offset: int

    def __post_init__(self) -> None:
        super().__init__(f"{self.message} (offset {self.offset})")


@dataclass
class StructuralError(LedgerError):
    """Raised when well-formed text has the wrong shape.

    Example: a definition document whose ``quests`` field is not a list.

    Attributes:
        source: File or logical source that was being read.
        detail: What was expected and what was found.
    """

    source: str
    detail: str

    def __post_init__(self) -> None:
        super().__init__(f"{self.source}: {self.detail}")


@dataclass
class StorageError(LedgerError):
    """Raised when the filesystem refuses a read or write.

    Attributes:
        path: File that could not be read or written.
        reason: Underlying OS error message.
    """

    path: Path
    reason: str

    def __post_init__(self) -> None:
        super().__init__(f"Storage failure at {self.path}: {self.reason}")


@dataclass
class ConsistencyConflict(LedgerError):
    """Raised when an entry conflicts with the catalog it targets.

    Covers kind mismatches on upsert and id collisions that force a rename.

    Attributes:
        entry_id: Identifier of the offending entry.
        detail: Description of the conflict.
    """

    entry_id: str
    detail: str

    def __post_init__(self) -> None:
        super().__init__(f"Entry '{self.entry_id}': {self.detail}")


@dataclass
class ConfigError(LedgerError):
    """Raised when configuration cannot be loaded."""

    path: Path
    reason: str

    def __post_init__(self) -> None:
        super().__init__(f"Failed to load config at {self.path}: {self.reason}")
