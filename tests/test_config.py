"""
Unit tests for configuration module.
"""

import pytest
from pathlib import Path
import yaml

from file_sorter.config.settings import (
    Config,
    WatcherConfig,
    DeduplicationConfig,
    OrganizationConfig,
    DuplicatePolicy,
)
from file_sorter.utils.exceptions import ConfigurationError, ErrorCode


class TestWatcherConfig:
    """Tests for WatcherConfig."""

    def test_default_values(self):
        """Test default configuration values."""
        config = WatcherConfig()

        assert config.quiet_seconds == 2.0
        assert config.recursive is True
        assert "*.tmp" in config.ignore_patterns
        assert "*.crdownload" in config.ignore_patterns

    def test_from_dict(self):
        """Test creation from dictionary."""
        data = {
            "quiet_seconds": 0.5,
            "ignore_patterns": ["*.bak"],
            "recursive": False
        }
        config = WatcherConfig.from_dict(data)

        assert config.quiet_seconds == 0.5
        assert config.ignore_patterns == ["*.bak"]
        assert config.recursive is False

    def test_from_empty_dict(self):
        """Test empty section falls back to defaults."""
        assert WatcherConfig.from_dict({}) == WatcherConfig()


class TestDeduplicationConfig:
    """Tests for DeduplicationConfig."""

    def test_default_policy_is_quarantine(self):
        """Test duplicates are quarantined unless configured otherwise."""
        config = DeduplicationConfig()

        assert config.policy is DuplicatePolicy.QUARANTINE
        assert config.duplicates_folder == "duplicates"

    def test_policy_from_string(self):
        """Test policy parsing is case-insensitive."""
        config = DeduplicationConfig.from_dict({"policy": "Trash"})

        assert config.policy is DuplicatePolicy.TRASH

    def test_unknown_policy(self):
        """Test unknown policy raises ConfigurationError."""
        with pytest.raises(ConfigurationError) as exc_info:
            DeduplicationConfig.from_dict({"policy": "shred"})

        assert exc_info.value.error_code is ErrorCode.CONFIGURATION_ERROR
        assert exc_info.value.details["config_key"] == "deduplication.policy"


class TestOrganizationConfig:
    """Tests for OrganizationConfig."""

    def test_defaults_organize_in_place(self):
        """Test no destination means the source root is used."""
        config = OrganizationConfig()

        assert config.destination_root is None
        assert config.max_workers == 4
        assert config.max_name_attempts == 1000

    def test_from_dict(self, tmp_path):
        """Test creation from dictionary."""
        config = OrganizationConfig.from_dict({
            "destination_root": str(tmp_path / "sorted"),
            "max_workers": 8,
        })

        assert config.destination_root == tmp_path / "sorted"
        assert config.max_workers == 8


class TestConfig:
    """Tests for main Config class."""

    def test_load_defaults(self):
        """Test loading with no file returns defaults."""
        config = Config.load()

        assert isinstance(config.watcher, WatcherConfig)
        assert isinstance(config.deduplication, DeduplicationConfig)
        assert isinstance(config.organization, OrganizationConfig)

    def test_load_from_yaml(self, tmp_path):
        """Test loading from YAML file."""
        config_data = {
            "watcher": {"quiet_seconds": 5.0},
            "deduplication": {"policy": "delete"},
            "organization": {"max_workers": 2},
        }
        config_path = tmp_path / "config.yaml"
        config_path.write_text(yaml.dump(config_data))

        config = Config.load(config_path)

        assert config.watcher.quiet_seconds == 5.0
        assert config.deduplication.policy is DuplicatePolicy.DELETE
        assert config.organization.max_workers == 2

    def test_missing_file(self, tmp_path):
        """Test an explicit but missing config file is an error."""
        with pytest.raises(ConfigurationError):
            Config.load(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        """Test malformed YAML is an error."""
        config_path = tmp_path / "bad.yaml"
        config_path.write_text("watcher: [unclosed")

        with pytest.raises(ConfigurationError):
            Config.load(config_path)

    def test_non_mapping_yaml(self, tmp_path):
        """Test a YAML list at top level is rejected."""
        config_path = tmp_path / "list.yaml"
        config_path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError):
            Config.load(config_path)

    @pytest.mark.parametrize("section, key, value", [
        ("organization", "max_workers", 0),
        ("organization", "max_name_attempts", 0),
        ("watcher", "quiet_seconds", -1.0),
        ("deduplication", "duplicates_folder", "a/b"),
    ])
    def test_validate_rejects_out_of_range(self, section, key, value):
        """Test validation of value ranges."""
        config = Config()
        setattr(getattr(config, section), key, value)

        with pytest.raises(ConfigurationError):
            config.validate()

    def test_save_and_reload(self, tmp_path):
        """Test saved configuration loads back with the same values."""
        config = Config()
        config.deduplication.policy = DuplicatePolicy.TRASH
        config.organization.destination_root = tmp_path / "sorted"
        config_path = tmp_path / "saved.yaml"

        config.save(config_path)
        loaded = Config.load(config_path)

        assert loaded.deduplication.policy is DuplicatePolicy.TRASH
        assert loaded.organization.destination_root == tmp_path / "sorted"
        assert loaded.watcher == config.watcher
