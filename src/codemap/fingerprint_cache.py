# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Content-fingerprint cache for parsed declarations.

This module caches the TypeDeclarations parsed from each source file, keyed
by absolute path and validated by a SHA-256 hash of the file contents. When a
file has not changed since it was parsed, the cached declarations are reused
instead of parsing again.

Key features:
- Content hash validation (a touched but unchanged file is still a hit)
- Atomic get-or-parse per file for parallel parsing
- Optional persistence to disk as JSON
- Thread-safe operations

Usage:
    cache = FingerprintCache()

    declarations = cache.get(filepath)
    if declarations is None:
        declarations = parser.parse_file(filepath)
        cache.put(filepath, declarations)
"""

import hashlib
import json
import logging
import os
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from codemap.models import TypeDeclaration

logger = logging.getLogger(__name__)

CACHE_FORMAT_VERSION = 1

PathLike = Union[str, Path]


class CacheEntry:
    """Entry in the fingerprint cache."""

    def __init__(
        self,
        declarations: Sequence[TypeDeclaration],
        content_hash: str,
        cached_at: Optional[float] = None,
    ):
        """Initialize cache entry.

        Args:
            declarations: Declarations parsed from the file.
            content_hash: SHA-256 of the file contents they were parsed from.
            cached_at: Timestamp when cached (default: now).
        """
        self.declarations = tuple(declarations)
        self.content_hash = content_hash
        self.cached_at = cached_at or time.time()


class FingerprintCache:
    """Cache of parsed declarations invalidated by file content hash.

    Thread Safety:
        All public methods are thread-safe using a reentrant lock.
        get_or_parse() additionally holds a per-file lock so concurrent
        callers parse a given file at most once.

    I/O failures never propagate: an unreadable file is a miss on get()
    and is not stored on put().
    """

    def __init__(self, persist_path: Optional[Path] = None):
        """Initialize the fingerprint cache.

        Args:
            persist_path: Optional JSON file to load from now and persist() to later.
        """
        self._persist_path = persist_path
        self._lock = threading.RLock()
        self._entries: Dict[str, CacheEntry] = {}
        self._key_locks: Dict[str, threading.Lock] = {}

        self._hits = 0
        self._misses = 0

        if persist_path is not None and persist_path.exists():
            self._load_from_disk()

    def get(self, filepath: PathLike) -> Optional[List[TypeDeclaration]]:
        """Get cached declarations for a file.

        Args:
            filepath: Path to the source file.

        Returns:
            Declarations if cached and the file content is unchanged, None otherwise.
        """
        key = self._key(filepath)
        return self._lookup(key, self._try_hash(key))

    def put(self, filepath: PathLike, declarations: Sequence[TypeDeclaration]) -> None:
        """Cache declarations for a file under its current content hash.

        Args:
            filepath: Path to the source file.
            declarations: Declarations parsed from it.
        """
        key = self._key(filepath)
        content_hash = self._try_hash(key)
        if content_hash is None:
            logger.debug(f"Cannot cache {key}: file not readable")
            return
        with self._lock:
            self._entries[key] = CacheEntry(declarations, content_hash)

    def get_or_parse(
        self,
        filepath: PathLike,
        parse: Callable[[str], Sequence[TypeDeclaration]],
    ) -> List[TypeDeclaration]:
        """Return cached declarations, or parse the file and cache the result.

        The content hash is taken before parsing, so a file modified while
        it is being parsed is re-parsed on the next call.

        Args:
            filepath: Path to the source file.
            parse: Callable taking the absolute path and returning its declarations.

        Returns:
            Declarations for the file.
        """
        key = self._key(filepath)
        with self._lock:
            key_lock = self._key_locks.setdefault(key, threading.Lock())

        with key_lock:
            content_hash = self._try_hash(key)
            cached = self._lookup(key, content_hash)
            if cached is not None:
                return cached

            declarations = list(parse(key))
            if content_hash is not None:
                with self._lock:
                    self._entries[key] = CacheEntry(declarations, content_hash)
            return declarations

    def invalidate(self, filepath: PathLike) -> None:
        """Remove the entry for a file."""
        with self._lock:
            self._entries.pop(self._key(filepath), None)

    def clear(self) -> None:
        """Remove all entries and reset hit/miss counters."""
        with self._lock:
            self._entries.clear()
            self._key_locks.clear()
            self._hits = 0
            self._misses = 0
            logger.debug("Fingerprint cache cleared")

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dictionary with entries, hits, misses and hit_rate.
        """
        with self._lock:
            total_requests = self._hits + self._misses
            hit_rate = self._hits / total_requests if total_requests > 0 else 0.0
            return {
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": hit_rate,
            }

    def cached_files(self) -> List[str]:
        """Paths with a cache entry, valid or not."""
        with self._lock:
            return list(self._entries)

    def persist(self) -> None:
        """Persist cache to disk if persist_path is set."""
        if self._persist_path is None:
            return

        with self._lock:
            try:
                self._save_to_disk()
                logger.debug(f"Fingerprint cache persisted to {self._persist_path}")
            except (OSError, TypeError, ValueError) as e:
                logger.warning(f"Failed to persist fingerprint cache: {e}")

    def _lookup(self, key: str, content_hash: Optional[str]) -> Optional[List[TypeDeclaration]]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or content_hash is None or entry.content_hash != content_hash:
                self._misses += 1
                return None
            self._hits += 1
            return list(entry.declarations)

    def _key(self, filepath: PathLike) -> str:
        return os.path.abspath(str(filepath))

    def _try_hash(self, filepath: str) -> Optional[str]:
        try:
            return self._compute_hash(filepath)
        except OSError as e:
            logger.debug(f"Cannot hash {filepath}: {e}")
            return None

    def _compute_hash(self, filepath: str) -> str:
        """Compute content hash for a file.

        Args:
            filepath: Path to file.

        Returns:
            SHA256 hash of file contents.
        """
        hasher = hashlib.sha256()
        with open(filepath, "rb") as f:
            for chunk in iter(lambda: f.read(8192), b""):
                hasher.update(chunk)
        return hasher.hexdigest()

    def _save_to_disk(self) -> None:
        """Save cache entries to disk."""
        if self._persist_path is None:
            return

        self._persist_path.parent.mkdir(parents=True, exist_ok=True)

        data: Dict[str, Any] = {"version": CACHE_FORMAT_VERSION, "entries": {}}
        for filepath, entry in self._entries.items():
            data["entries"][filepath] = {
                "content_hash": entry.content_hash,
                "cached_at": entry.cached_at,
                "declarations": [decl.to_dict() for decl in entry.declarations],
            }

        with open(self._persist_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def _load_from_disk(self) -> None:
        """Load cache entries from disk, ignoring unusable files."""
        if self._persist_path is None or not self._persist_path.exists():
            return

        try:
            with open(self._persist_path, encoding="utf-8") as f:
                data = json.load(f)

            if not isinstance(data, dict) or data.get("version") != CACHE_FORMAT_VERSION:
                logger.warning("Cache version mismatch, ignoring persisted cache")
                return

            for filepath, entry_data in data.get("entries", {}).items():
                declarations = [
                    TypeDeclaration.from_dict(decl) for decl in entry_data.get("declarations", [])
                ]
                self._entries[filepath] = CacheEntry(
                    declarations,
                    content_hash=entry_data["content_hash"],
                    cached_at=entry_data.get("cached_at"),
                )

            logger.debug(f"Loaded {len(self._entries)} entries from cache")

        except (OSError, ValueError, KeyError, TypeError) as e:
            self._entries.clear()
            logger.warning(f"Failed to load fingerprint cache {self._persist_path}: {e}")
