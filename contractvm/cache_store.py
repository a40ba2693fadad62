"""A write-back cache over a key-value store, holding contract data."""

from __future__ import annotations

from typing import Callable, Optional

from contractvm.keys import (
    CONTRACT_NEXT_CODE_ID_KEY,
    contract_code_key,
    contract_entity_key,
    contract_initialized_key,
    contract_module_key,
)

_NEXT_CODE_ID_KEY = CONTRACT_NEXT_CODE_ID_KEY.encode()
_UINT64_MAX = (1 << 64) - 1

GetFn = Callable[[bytes], Optional[bytes]]
SetFn = Callable[[bytes, bytes], None]
DeleteFn = Callable[[bytes], None]


class ContractStoreError(Exception):
    """Raised when a contract store operation cannot be carried out."""


def _parse_code_id(raw: bytes) -> int:
    text = bytes(raw)
    if not text or not text.isdigit():
        raise ContractStoreError("failed to parse next code id")
    value = int(text)
    if value > _UINT64_MAX:
        raise ContractStoreError("failed to parse next code id")
    return value


class CacheKVStore:
    """Buffers writes in memory until :meth:`commit`; reads fall through to the backend.

    ``get_fn`` returns ``None`` for a missing key. A cached value of ``None``
    marks a deletion.
    """

    def __init__(self, get_fn: GetFn, set_fn: SetFn, delete_fn: DeleteFn) -> None:
        self._get_fn = get_fn
        self._set_fn = set_fn
        self._delete_fn = delete_fn
        # Insertion order of the dict is the order keys were first updated.
        self._cache: dict[bytes, Optional[bytes]] = {}

    # Contract repository -------------------------------------------------

    def load_entity(self, contract_id: str, entity_key: str) -> bytes | None:
        """Load an entity from the contract's namespace."""
        return self.get(contract_entity_key(contract_id, entity_key))

    def save_entity(self, contract_id: str, entity_key: str, data: bytes) -> None:
        """Save an entity in the contract's namespace."""
        self.set(contract_entity_key(contract_id, entity_key), data)

    def get_contract_code_by_contract(self, contract_id: str) -> bytes | None:
        """Return the code a contract runs; raise if the contract does not exist."""
        key = contract_module_key(contract_id)
        if not self.has(key):
            raise ContractStoreError(f"contract does not exist: {contract_id}")
        code_key = self.get(key)
        return self.get(code_key if code_key is not None else b"")

    def get_contract_code_by_id(self, code_id: int) -> bytes:
        """Return stored code by id; raise if none is stored."""
        code = self.get(contract_code_key(code_id))
        if code is None:
            raise ContractStoreError(f"contract code not found for id: {code_id}")
        return code

    def create_contract(self, code_id: int, contract_id: str) -> None:
        """Register a contract running ``code_id``; raise if it already exists."""
        key = contract_module_key(contract_id)
        if self.has(key):
            raise ContractStoreError(f"contract already exists: {contract_id}")
        self.set(key, contract_code_key(code_id))

    def try_initialize_contract(self, contract_id: str) -> None:
        """Mark a contract initialised; raise if it already was."""
        key = contract_initialized_key(contract_id)
        if self.has(key):
            raise ContractStoreError(f"contract already initialized: {contract_id}")
        self.set(key, b"\x01")

    def get_total_contract_amount(self) -> int:
        """Return how many code entries have been stored."""
        if not self.has(_NEXT_CODE_ID_KEY):
            return 0
        return _parse_code_id(self.get(_NEXT_CODE_ID_KEY) or b"")

    def store_contract_code(self, code: bytes) -> None:
        """Store code under the next free code id and advance the counter."""
        raw = self.get(_NEXT_CODE_ID_KEY)
        next_code_id = _parse_code_id(b"0" if raw is None else raw)
        self.set(contract_code_key(next_code_id), code)
        self.set(_NEXT_CODE_ID_KEY, str(next_code_id + 1).encode())

    # Key-value access ----------------------------------------------------

    def has(self, key: bytes) -> bool:
        """Return whether ``key`` holds a value, cached or in the backend."""
        key = bytes(key)
        if key in self._cache:
            return self._cache[key] is not None
        return self._get_fn(key) is not None

    def get(self, key: bytes) -> bytes | None:
        """Return the value of ``key``, or ``None`` if there is none."""
        key = bytes(key)
        if key in self._cache:
            return self._cache[key]
        return self._get_fn(key)

    def set(self, key: bytes, value: bytes) -> None:
        """Buffer a write of ``value`` under ``key``."""
        self._cache[bytes(key)] = bytes(value)

    def rollback(self) -> None:
        """Drop every buffered write."""
        self._cache = {}

    def commit(self) -> None:
        """Write buffered changes to the backend in first-update order, then clear."""
        for key, value in self._cache.items():
            if value is None:
                self._delete_fn(key)
            else:
                self._set_fn(key, value)
        self._cache = {}