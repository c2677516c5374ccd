"""
File Sorter
===========

Automatic file organizer for download folders.

Features:
- Category and date based layout (``<Category>/<YYYY-MM-DD>/``)
- Content deduplication via SHA-256 with a quarantine holding area
- One-shot runs and a debounced watch mode on a worker pool

Files are never overwritten; a name collision gets a `` (n)`` suffix.
"""

__version__ = "0.1.0"
