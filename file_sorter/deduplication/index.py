"""
Duplicate Index
===============

Process-wide map from content digest to the canonical path holding
that content. Entries are only ever added.
"""

import threading
from pathlib import Path
from typing import Dict, Optional

from file_sorter.utils.logging_config import get_logger

logger = get_logger(__name__)


class DuplicateIndex:
    """Thread-safe digest -> canonical path index.

    One instance is created per run and handed to every worker. The
    first ``register`` for a digest wins; every later file with that
    digest is a duplicate.
    """

    def __init__(self):
        self._canonical: Dict[str, Path] = {}
        self._lock = threading.Lock()
        self._duplicate_hits = 0

    def lookup(self, digest: str) -> Optional[Path]:
        """Return the canonical path for a digest, if one is registered."""
        with self._lock:
            return self._canonical.get(digest)

    def register(self, digest: str, path: Path) -> bool:
        """Register ``path`` as canonical for ``digest`` if none exists.

        Args:
            digest: Content digest.
            path: Prospective canonical path.

        Returns:
            True if this call created the canonical entry, False if an
            entry already existed.
        """
        with self._lock:
            if digest in self._canonical:
                self._duplicate_hits += 1
                return False
            self._canonical[digest] = Path(path)
        logger.debug(f"Canonical for {digest[:12]}: {path}", extra={"digest": digest})
        return True

    def __contains__(self, digest: str) -> bool:
        with self._lock:
            return digest in self._canonical

    def __len__(self) -> int:
        with self._lock:
            return len(self._canonical)

    def get_stats(self) -> dict:
        """Get index statistics.

        Returns:
            Dictionary with index statistics.
        """
        with self._lock:
            return {
                "canonical_entries": len(self._canonical),
                "rejected_registrations": self._duplicate_hits,
            }
