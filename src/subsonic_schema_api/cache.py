"""Caching layer for compiled schema registries.

Compiling the Subsonic schema builds a few dozen pydantic models; it should
happen once per process, not once per client. This module memoizes compiled
:class:`~subsonic_schema_api.registry.TypeRegistry` objects keyed by schema
path and parser configuration, and recompiles when the schema file changes
on disk.

Design goals:
    1. Deterministic keys: cache keys are md5 hashes of argument tuples.
    2. Predictable invalidation: TTL expiry OR a changed upstream file (newer
       mtime and a different content hash).
    3. Single compilation: concurrent first calls compile once under a lock.

Quick example::

    from subsonic_schema_api.cache import get_compiled_schema
    registry = get_compiled_schema()
    print(registry.response)    # <ResponseUnion Response: 43 variants>
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, cast

from .registry import TypeRegistry, compile_schema
from .schema_locator import locate_schema
from .xsd_parser import ParserConfig

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """Cache entry with optional TTL and file staleness tracking."""

    data: Any
    timestamp: float = field(default_factory=time.time)
    ttl: Optional[float] = None
    etag: str = ""
    file_mtime: float = 0.0

    def is_expired(self) -> bool:
        """Check if cache entry has expired (never, without a TTL)."""
        if self.ttl is None:
            return False
        return time.time() - self.timestamp > self.ttl

    def is_stale(self, file_path: Path) -> bool:
        """Check if cache is stale based on file modification.

        A newer mtime alone is not enough when a content hash was recorded:
        the entry stays fresh if the file's md5 still matches ``etag``.
        """
        if not file_path.exists():
            return True
        current_mtime = file_path.stat().st_mtime
        if current_mtime <= self.file_mtime:
            return False
        return not self.etag or file_digest(file_path) != self.etag


def file_digest(file_path: Path) -> str:
    """md5 of the file's bytes."""
    return hashlib.md5(file_path.read_bytes()).hexdigest()


class SchemaCache:
    """Thread-safe in-memory cache for compiled schema objects."""

    def __init__(self, default_ttl: Optional[float] = None):
        self.default_ttl = default_ttl
        self._cache: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()

    def _make_key(self, *args) -> str:
        """Create cache key from arguments."""
        key_data = str(args).encode()
        return hashlib.md5(key_data).hexdigest()

    def get(self, key: str) -> Optional[Any]:
        """Retrieve a value if present and not expired."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            if entry.is_expired():
                del self._cache[key]
                return None
            return entry.data

    def set(
        self,
        key: str,
        data: Any,
        ttl: Optional[float] = None,
        file_path: Optional[Path] = None,
    ) -> None:
        """Insert or replace a value, recording the source file's mtime and md5."""
        etag = ""
        file_mtime = 0.0
        if file_path and file_path.exists():
            file_mtime = file_path.stat().st_mtime
            etag = file_digest(file_path)
        with self._lock:
            self._cache[key] = CacheEntry(
                data=data,
                ttl=ttl if ttl is not None else self.default_ttl,
                etag=etag,
                file_mtime=file_mtime,
            )

    def invalidate(self, key: str) -> None:
        """Remove specific entry from cache."""
        with self._lock:
            self._cache.pop(key, None)

    def clear(self) -> None:
        """Clear all cache entries."""
        with self._lock:
            self._cache.clear()

    def check_file_staleness(self, key: str, file_path: Path) -> bool:
        """Check if cached entry is stale based on file modification."""
        with self._lock:
            entry = self._cache.get(key)
        if entry is None:
            return True
        return entry.is_stale(file_path)

    def get_cache_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {"cache_size": len(self._cache), "default_ttl": self.default_ttl}


class CachedSchemaCompiler:
    """Compiler wrapper that memoizes :class:`TypeRegistry` objects."""

    def __init__(
        self,
        cache: Optional[SchemaCache] = None,
        parser_config: Optional[ParserConfig] = None,
    ):
        self.cache = cache or SchemaCache()
        self.parser_config = parser_config or ParserConfig()
        self._compile_lock = threading.Lock()

    def compile(
        self, xsd_path: Optional[Path] = None, force_refresh: bool = False
    ) -> TypeRegistry:
        """Compile a schema (cached).

        Args:
            xsd_path: Schema path; defaults to :func:`locate_schema`.
            force_refresh: Skip the cache and recompile if True.
        """
        xsd_path = Path(xsd_path) if xsd_path is not None else locate_schema()
        cache_key = self.cache._make_key("registry", str(xsd_path), repr(self.parser_config))

        with self._compile_lock:
            if not force_refresh and not self.cache.check_file_staleness(cache_key, xsd_path):
                cached = self.cache.get(cache_key)
                if cached is not None:
                    return cast(TypeRegistry, cached)

            started = time.perf_counter()
            registry = compile_schema(xsd_path, config=self.parser_config)
            logger.info(
                f"Compiled {xsd_path.name} into {len(registry)} types "
                f"in {time.perf_counter() - started:.3f}s"
            )
            self.cache.set(cache_key, registry, file_path=xsd_path)
            return registry

    def invalidate_all(self) -> None:
        """Clear all cached registries."""
        self.cache.clear()


@lru_cache(maxsize=4)
def get_cached_compiler(parser_config: Optional[ParserConfig] = None) -> CachedSchemaCompiler:
    """Get or create the process-wide compiler for ``parser_config``."""
    return CachedSchemaCompiler(parser_config=parser_config)


def get_compiled_schema(
    xsd_path: Optional[Path] = None, config: Optional[ParserConfig] = None
) -> TypeRegistry:
    """Compile once per ``(path, config)`` and reuse the registry afterwards."""
    return get_cached_compiler(config).compile(xsd_path)
