"""
Configuration Management System
===============================

Provides dataclass-based configuration with YAML file loading support.
The organization engine never reads files itself: the CLI resolves a
``Config`` (defaults, optional YAML file, command-line overrides) and
passes explicit values down.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Any, Dict
import yaml

from file_sorter.utils.exceptions import ConfigurationError
from file_sorter.utils.logging_config import get_logger

logger = get_logger(__name__)

DATE_FORMAT = "%Y-%m-%d"


class DuplicatePolicy(Enum):
    """What happens to a file whose content already has a canonical copy.

    QUARANTINE moves it into the duplicates holding area under the
    destination root. TRASH sends it to the OS trash. DELETE removes it
    permanently and must be chosen explicitly.
    """
    QUARANTINE = "quarantine"
    TRASH = "trash"
    DELETE = "delete"

    @classmethod
    def parse(cls, value: Any) -> "DuplicatePolicy":
        """Parse a policy from a string or enum value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            choices = ", ".join(p.value for p in cls)
            raise ConfigurationError(
                f"Unknown duplicate policy '{value}' (expected one of: {choices})",
                config_key="deduplication.policy",
            ) from None


@dataclass
class WatcherConfig:
    """Filesystem watcher configuration.

    Attributes:
        quiet_seconds: Quiet period a path needs before it is processed.
        ignore_patterns: Glob patterns for file names to ignore.
        recursive: Whether to watch subdirectories.
    """
    quiet_seconds: float = 2.0
    ignore_patterns: List[str] = field(default_factory=lambda: [
        "*.tmp", "*.crdownload", "*.part", "*.partial", "~$*", ".DS_Store", "Thumbs.db"
    ])
    recursive: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WatcherConfig":
        """Create WatcherConfig from dictionary."""
        if not data:
            return cls()
        return cls(
            quiet_seconds=float(data.get("quiet_seconds", cls.quiet_seconds)),
            ignore_patterns=list(data.get("ignore_patterns", cls().ignore_patterns)),
            recursive=bool(data.get("recursive", cls.recursive)),
        )


@dataclass
class DeduplicationConfig:
    """Deduplication settings.

    Attributes:
        policy: Disposition for duplicate files.
        duplicates_folder: Holding area folder name under the destination root.
        hash_buffer_size: Chunk size in bytes for streaming hashes.
    """
    policy: DuplicatePolicy = DuplicatePolicy.QUARANTINE
    duplicates_folder: str = "duplicates"
    hash_buffer_size: int = 65536

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeduplicationConfig":
        """Create DeduplicationConfig from dictionary."""
        if not data:
            return cls()
        return cls(
            policy=DuplicatePolicy.parse(data.get("policy", cls.policy)),
            duplicates_folder=data.get("duplicates_folder", cls.duplicates_folder),
            hash_buffer_size=int(data.get("hash_buffer_size", cls.hash_buffer_size)),
        )


@dataclass
class OrganizationConfig:
    """File organization settings.

    Attributes:
        destination_root: Root of the organized tree. ``None`` means the
            source directory itself (in-place organization).
        max_workers: Size of the worker pool.
        max_name_attempts: Upper bound on ``name (n).ext`` candidates.
    """
    destination_root: Optional[Path] = None
    max_workers: int = 4
    max_name_attempts: int = 1000

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrganizationConfig":
        """Create OrganizationConfig from dictionary."""
        if not data:
            return cls()
        dest = data.get("destination_root")
        return cls(
            destination_root=Path(dest).expanduser() if dest else None,
            max_workers=int(data.get("max_workers", cls.max_workers)),
            max_name_attempts=int(data.get("max_name_attempts", cls.max_name_attempts)),
        )


@dataclass
class Config:
    """Main configuration container.

    Aggregates all configuration sections and provides loading from YAML.
    """
    watcher: WatcherConfig = field(default_factory=WatcherConfig)
    deduplication: DeduplicationConfig = field(default_factory=DeduplicationConfig)
    organization: OrganizationConfig = field(default_factory=OrganizationConfig)

    def validate(self) -> "Config":
        """Check value ranges.

        Raises:
            ConfigurationError: If a value is out of range.
        """
        if self.organization.max_workers < 1:
            raise ConfigurationError("max_workers must be at least 1", config_key="organization.max_workers")
        if self.organization.max_name_attempts < 1:
            raise ConfigurationError(
                "max_name_attempts must be at least 1", config_key="organization.max_name_attempts"
            )
        if self.watcher.quiet_seconds < 0:
            raise ConfigurationError("quiet_seconds must not be negative", config_key="watcher.quiet_seconds")
        if self.deduplication.hash_buffer_size < 1:
            raise ConfigurationError(
                "hash_buffer_size must be positive", config_key="deduplication.hash_buffer_size"
            )
        folder = self.deduplication.duplicates_folder
        if not folder or "/" in folder or "\\" in folder or folder in (".", ".."):
            raise ConfigurationError(
                f"Invalid duplicates folder name '{folder}'", config_key="deduplication.duplicates_folder"
            )
        return self

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Config":
        """Load configuration from YAML file.

        Args:
            config_path: Path to the configuration file. If None, defaults
                are returned.

        Returns:
            Config instance with loaded settings.

        Raises:
            ConfigurationError: If the file is missing or not valid YAML.
        """
        if config_path is None:
            return cls().validate()

        if not config_path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}", config_key="config")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse config file: {e}", cause=e) from e

        if not isinstance(data, dict):
            raise ConfigurationError("Config file must contain a mapping", config_key="config")

        logger.info(f"Loaded configuration from {config_path}")
        return cls._from_dict(data).validate()

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        return cls(
            watcher=WatcherConfig.from_dict(data.get("watcher", {})),
            deduplication=DeduplicationConfig.from_dict(data.get("deduplication", {})),
            organization=OrganizationConfig.from_dict(data.get("organization", {})),
        )

    def save(self, config_path: Path) -> None:
        """Save configuration to YAML file.

        Args:
            config_path: Path where to save the configuration.
        """
        dest = self.organization.destination_root
        data = {
            "watcher": {
                "quiet_seconds": self.watcher.quiet_seconds,
                "ignore_patterns": self.watcher.ignore_patterns,
                "recursive": self.watcher.recursive,
            },
            "deduplication": {
                "policy": self.deduplication.policy.value,
                "duplicates_folder": self.deduplication.duplicates_folder,
                "hash_buffer_size": self.deduplication.hash_buffer_size,
            },
            "organization": {
                "destination_root": str(dest) if dest else None,
                "max_workers": self.organization.max_workers,
                "max_name_attempts": self.organization.max_name_attempts,
            },
        }

        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

        logger.info(f"Saved configuration to {config_path}")
