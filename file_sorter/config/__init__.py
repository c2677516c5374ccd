"""Configuration module for File Sorter."""

from .settings import (
    Config,
    WatcherConfig,
    DeduplicationConfig,
    OrganizationConfig,
    DuplicatePolicy,
    DATE_FORMAT,
)
from .categories import Category, classify, is_category_dir_name, EXTENSION_TABLE

__all__ = [
    "Config",
    "WatcherConfig",
    "DeduplicationConfig",
    "OrganizationConfig",
    "DuplicatePolicy",
    "DATE_FORMAT",
    "Category",
    "classify",
    "is_category_dir_name",
    "EXTENSION_TABLE",
]
