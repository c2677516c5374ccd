"""
Category Definitions
====================

Defines the fixed content categories and the extension table that maps
every file name to exactly one of them.
"""

import os
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from file_sorter.utils.exceptions import ConfigurationError


class Category(Enum):
    """Content categories. The value is the folder name on disk."""
    IMAGES = "Images"
    GIFS = "Gifs"
    VIDEOS = "Videos"
    AUDIO = "Audio"
    DOCUMENTS = "Documents"
    ARCHIVES = "Archives"
    OTHERS = "Others"


DEFAULT_CATEGORY = Category.OTHERS

# Lower-cased extension (no dot) -> category
EXTENSION_TABLE: Mapping[str, Category] = MappingProxyType({
    "jpg": Category.IMAGES,
    "jpeg": Category.IMAGES,
    "png": Category.IMAGES,
    "bmp": Category.IMAGES,
    "tiff": Category.IMAGES,
    "gif": Category.GIFS,
    "mp4": Category.VIDEOS,
    "mov": Category.VIDEOS,
    "avi": Category.VIDEOS,
    "mkv": Category.VIDEOS,
    "mp3": Category.AUDIO,
    "wav": Category.AUDIO,
    "flac": Category.AUDIO,
    "pdf": Category.DOCUMENTS,
    "docx": Category.DOCUMENTS,
    "txt": Category.DOCUMENTS,
    "zip": Category.ARCHIVES,
    "rar": Category.ARCHIVES,
    "7z": Category.ARCHIVES,
})

CATEGORY_DIR_NAMES = frozenset(category.value for category in Category)


def extension_of(file_name: str) -> str:
    """Return the lower-cased text after the last dot, or ``""``.

    A leading dot alone (``.bashrc``) does not count as an extension.
    """
    base = os.path.basename(file_name)
    stem, dot, extension = base.rpartition(".")
    if not dot or not stem:
        return ""
    return extension.lower()


def classify(file_name: str) -> Category:
    """Get the category for a file name.

    Args:
        file_name: Base name or path of the file (e.g. ``"IMG.JPG"``).

    Returns:
        The mapped Category, or ``Category.OTHERS`` when unknown.
    """
    return EXTENSION_TABLE.get(extension_of(file_name), DEFAULT_CATEGORY)


def is_category_dir_name(name: str) -> bool:
    """Check if a folder name is one of the category folders."""
    return name in CATEGORY_DIR_NAMES


def validate_category_table(table: Mapping[str, Category] = EXTENSION_TABLE) -> None:
    """Check the extension table against the declared categories.

    Raises:
        ConfigurationError: If an entry is malformed or a category other
            than the default has no extension.
    """
    for extension, category in table.items():
        if not isinstance(category, Category):
            raise ConfigurationError(
                f"Extension '{extension}' maps to unknown category {category!r}",
                config_key="extension_table",
            )
        if extension != extension.lower() or extension.startswith("."):
            raise ConfigurationError(
                f"Extension '{extension}' must be lower-case without a dot",
                config_key="extension_table",
            )

    covered = set(table.values())
    missing = [c.value for c in Category if c is not DEFAULT_CATEGORY and c not in covered]
    if missing:
        raise ConfigurationError(
            f"Categories without extensions: {', '.join(missing)}",
            config_key="extension_table",
        )


validate_category_table()
