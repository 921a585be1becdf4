"""Export configuration loading."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML

from questledger.errors import ConfigError

DEFAULT_CONFIG_FILE = "questledger.yaml"
DEFAULT_DATA_DIR = "data"
DEFAULT_NAMESPACE = "ftbquests"
DEFAULT_IGNORED_PREFIXES = ["recipes/"]

ENV_DATA_DIR = "QL_DATA_DIR"
ENV_QUESTS_DIR = "QL_QUESTS_DIR"


def _expect_str(data: dict[str, Any], key: str, default: str) -> str:
    value = data.get(key, default)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"'{key}' must be a non-empty string")
    return value


@dataclass
class OutputFiles:
    """File names inside the data directory."""

    achievements: str = "progress_master_achievements.json"
    quests: str = "progress_master_quests.json"
    definitions: str = "ftbquests_definitions.json"
    players_dir: str = "progress_players"
    audit_log: str = "progress_player_updates.log"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OutputFiles:
        defaults = cls()
        return cls(
            achievements=_expect_str(data, "achievements", defaults.achievements),
            quests=_expect_str(data, "quests", defaults.quests),
            definitions=_expect_str(data, "definitions", defaults.definitions),
            players_dir=_expect_str(data, "players_dir", defaults.players_dir),
            audit_log=_expect_str(data, "audit_log", defaults.audit_log),
        )


@dataclass
class ExportConfig:
    """Configuration for an export data directory.

    Attributes:
        data_dir: Directory holding catalogs, ledgers, and the audit log.
        quests_dir: FTB Quests ``quests`` directory. When None it is
            searched for near the data directory.
        quest_namespace: Prefix of generated quest ids.
        ignored_achievement_prefixes: Achievement paths starting with any of
            these are never recorded (recipe unlocks by default).
        files: Output file names.
    """

    data_dir: Path = field(default_factory=lambda: Path(DEFAULT_DATA_DIR))
    quests_dir: Path | None = None
    quest_namespace: str = DEFAULT_NAMESPACE
    ignored_achievement_prefixes: list[str] = field(
        default_factory=lambda: list(DEFAULT_IGNORED_PREFIXES)
    )
    files: OutputFiles = field(default_factory=OutputFiles)

    @property
    def achievements_path(self) -> Path:
        return self.data_dir / self.files.achievements

    @property
    def quests_path(self) -> Path:
        return self.data_dir / self.files.quests

    @property
    def definitions_path(self) -> Path:
        return self.data_dir / self.files.definitions

    @property
    def players_dir(self) -> Path:
        return self.data_dir / self.files.players_dir

    @property
    def audit_log_path(self) -> Path:
        return self.data_dir / self.files.audit_log

    @classmethod
    def from_dict(cls, data: dict[str, Any], base_dir: Path | None = None) -> ExportConfig:
        """Create config from dictionary.

        Args:
            data: Dictionary containing config fields.
            base_dir: Directory that relative paths are resolved against.

        Returns:
            ExportConfig instance.

        Raises:
            ValueError: If a field has the wrong type.
        """

        def resolve(raw: str) -> Path:
            path = Path(raw).expanduser()
            if base_dir is not None and not path.is_absolute():
                return base_dir / path
            return path

        quests_raw = data.get("quests_dir")
        if quests_raw is not None and not isinstance(quests_raw, str):
            raise ValueError("'quests_dir' must be a string")

        prefixes = data.get("ignored_achievement_prefixes", list(DEFAULT_IGNORED_PREFIXES))
        if not isinstance(prefixes, list) or not all(isinstance(p, str) for p in prefixes):
            raise ValueError("'ignored_achievement_prefixes' must be a list of strings")

        files_data = data.get("files", {})
        if not isinstance(files_data, dict):
            raise ValueError("'files' must be a mapping")

        return cls(
            data_dir=resolve(_expect_str(data, "data_dir", DEFAULT_DATA_DIR)),
            quests_dir=resolve(quests_raw) if quests_raw else None,
            quest_namespace=_expect_str(data, "quest_namespace", DEFAULT_NAMESPACE),
            ignored_achievement_prefixes=list(prefixes),
            files=OutputFiles.from_dict(dict(files_data)),
        )

    def with_env_overrides(self) -> ExportConfig:
        """Apply QL_DATA_DIR and QL_QUESTS_DIR when set."""
        data_dir = os.getenv(ENV_DATA_DIR)
        quests_dir = os.getenv(ENV_QUESTS_DIR)
        return replace(
            self,
            data_dir=Path(data_dir) if data_dir else self.data_dir,
            quests_dir=Path(quests_dir) if quests_dir else self.quests_dir,
        )

    def is_ignored_achievement(self, path: str) -> bool:
        return any(path.startswith(prefix) for prefix in self.ignored_achievement_prefixes)


def load_config(config_path: Path | None = None) -> ExportConfig:
    """Load export configuration from a YAML file.

    Missing files give the defaults. Environment overrides are applied last.

    Args:
        config_path: YAML file, or None for ``questledger.yaml`` in the
            working directory.

    Returns:
        ExportConfig instance.

    Raises:
        ConfigError: If the file exists but can't be parsed or validated.
    """
    path = config_path or Path(DEFAULT_CONFIG_FILE)
    if not path.exists():
        if config_path is not None:
            raise ConfigError(path, "File not found")
        return ExportConfig().with_env_overrides()

    yaml = YAML(typ="safe")
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)

        if data is None:
            return ExportConfig().with_env_overrides()
        if not isinstance(data, dict):
            raise ConfigError(path, "Top level must be a mapping")

        return ExportConfig.from_dict(dict(data), base_dir=path.parent).with_env_overrides()
    except Exception as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(path, str(e)) from e
