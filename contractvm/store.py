"""A versioned key-value tree and the store that puts a cache in front of it."""

from __future__ import annotations

import hashlib
import struct

from contractvm.cache_store import CacheKVStore
from contractvm.keys import version_key


class VersionedTree:
    """An in-memory key-value map whose state can be saved as numbered versions."""

    def __init__(self) -> None:
        self._working: dict[bytes, bytes] = {}
        self._versions: dict[int, dict[bytes, bytes]] = {}
        self._latest = 0

    def get(self, key: bytes) -> bytes | None:
        """Return the working value of ``key``, or ``None``."""
        return self._working.get(bytes(key))

    def set(self, key: bytes, value: bytes) -> bool:
        """Set ``key``; return whether an existing value was replaced."""
        key = bytes(key)
        updated = key in self._working
        self._working[key] = bytes(value)
        return updated

    def remove(self, key: bytes) -> bytes | None:
        """Remove ``key`` and return its old value, if any."""
        return self._working.pop(bytes(key), None)

    def working_version(self) -> int:
        """Return the number the next saved version will get."""
        return self._latest + 1

    def save_version(self) -> tuple[bytes, int]:
        """Snapshot the working state; return its hash and version number."""
        version = self.working_version()
        snapshot = dict(self._working)
        self._versions[version] = snapshot
        self._latest = version
        return self._hash(snapshot), version

    @staticmethod
    def _hash(items: dict[bytes, bytes]) -> bytes:
        digest = hashlib.sha256()
        for key in sorted(items):
            value = items[key]
            digest.update(struct.pack(">Q", len(key)))
            digest.update(key)
            digest.update(struct.pack(">Q", len(value)))
            digest.update(value)
        return digest.digest()


class Store:
    """Couples a :class:`VersionedTree` with a write-back cache over it."""

    def __init__(self, tree: VersionedTree) -> None:
        self._tree = tree
        self._cache = CacheKVStore(tree.get, tree.set, tree.remove)

    @property
    def cached(self) -> CacheKVStore:
        """The cache that buffers writes to the tree."""
        return self._cache

    def save_version_with_id(self, version_id: int) -> bytes:
        """Record the working version under ``version_id``, save it and return its hash."""
        new_version = self._tree.working_version()
        self._tree.set(version_key(version_id), struct.pack(">Q", new_version))
        tree_hash, _ = self._tree.save_version()
        return tree_hash

    def get_version_by_id(self, version_id: int) -> int:
        """Return the tree version saved under ``version_id``."""
        raw = self._tree.get(version_key(version_id))
        if raw is None:
            raise LookupError(f"version not found for id {version_id}")
        return struct.unpack(">Q", raw[:8])[0]