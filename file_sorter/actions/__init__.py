"""Actions module for file operations."""

from .file_operations import FileOperations
from .path_planner import PathPlanner, Placement, is_output_path, in_date_directory, in_duplicates_area

__all__ = [
    "FileOperations",
    "PathPlanner",
    "Placement",
    "is_output_path",
    "in_date_directory",
    "in_duplicates_area",
]
