"""Host functions a contract calls, and helpers for reading and writing guest memory."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Callable

from contractvm.callback_queue import CallbackQueue
from contractvm.messages import ContractRepository, ResultEvent, new_contract_message

_BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_UINT64_MASK = (1 << 64) - 1
_LENGTH_PREFIX = 4
_BUFFER_CLASS_ID = 1


class ContractAbort(RuntimeError):
    """Raised when contract code calls ``env.abort``."""


@dataclass
class GuestMemory:
    """Linear memory of a contract instance and its ``__new`` allocator.

    ``allocate(size, class_id)`` reserves ``size`` bytes and returns the
    offset of the block, whose little-endian length sits in the four bytes
    before it.
    """

    data: bytearray
    allocate: Callable[[int, int], int]


def read_bytes(memory: GuestMemory, ptr: int) -> bytes:
    """Read a length-prefixed block starting at ``ptr``."""
    data = memory.data
    if ptr < _LENGTH_PREFIX or ptr > len(data):
        raise IndexError(f"pointer out of bounds: {ptr}")
    length = int.from_bytes(data[ptr - _LENGTH_PREFIX:ptr], "little")
    if ptr + length > len(data):
        raise IndexError(f"block at {ptr} of length {length} exceeds memory")
    return bytes(data[ptr:ptr + length])


def write_bytes(memory: GuestMemory, data: bytes) -> int:
    """Allocate a block in guest memory, copy ``data`` into it and return its offset."""
    payload = bytes(data)
    ptr = memory.allocate(len(payload), _BUFFER_CLASS_ID)
    if ptr < 0 or ptr + len(payload) > len(memory.data):
        raise IndexError(f"allocated block at {ptr} exceeds memory")
    memory.data[ptr:ptr + len(payload)] = payload
    return ptr


def decode_utf16(data: bytes) -> str:
    """Decode a guest string by keeping the low byte of every UTF-16 code unit."""
    return bytes(data[::2]).decode("utf-8", errors="replace")


def base58_encode(data: bytes) -> str:
    """Encode bytes with the Bitcoin base58 alphabet."""
    raw = bytes(data)
    number = int.from_bytes(raw, "big")
    digits = []
    while number:
        number, remainder = divmod(number, 58)
        digits.append(_BASE58_ALPHABET[remainder])
    leading_zeros = len(raw) - len(raw.lstrip(b"\x00"))
    return _BASE58_ALPHABET[0] * leading_zeros + "".join(reversed(digits))


def generate_contract_id(state: bytes, code_id: int, salt: bytes) -> str:
    """Derive a contract id from the state, code id and salt."""
    code_id_bytes = (code_id & _UINT64_MASK).to_bytes(8, "little")
    digest = hashlib.sha256(bytes(state) + code_id_bytes + bytes(salt)).digest()
    return base58_encode(digest)


class ContractHost:
    """The functions one running contract imports from its host."""

    def __init__(
        self,
        repository: ContractRepository,
        callback_queue: CallbackQueue,
        result_events: list[ResultEvent],
        state: bytes,
        contract_id: str,
    ) -> None:
        self.repository = repository
        self.callback_queue = callback_queue
        self.result_events = result_events
        self.state = bytes(state)
        self.contract_id = contract_id

    def save(self, memory: GuestMemory, id_ptr: int, data_ptr: int) -> None:
        """``db.save``: store an entity in the contract's namespace."""
        entity_id = decode_utf16(read_bytes(memory, id_ptr))
        data = read_bytes(memory, data_ptr)
        self.repository.save_entity(self.contract_id, entity_id, data)

    def load(self, memory: GuestMemory, id_ptr: int) -> int:
        """``db.load``: copy an entity into guest memory and return its pointer."""
        entity_id = decode_utf16(read_bytes(memory, id_ptr))
        loaded = self.repository.load_entity(self.contract_id, entity_id)
        return write_bytes(memory, loaded or b"")

    def call(self, memory: GuestMemory, contract_id_ptr: int, method_ptr: int, args_ptr: int) -> None:
        """``contract.call``: queue a call of another contract."""
        contract_id = decode_utf16(read_bytes(memory, contract_id_ptr))
        method = decode_utf16(read_bytes(memory, method_ptr))
        args = read_bytes(memory, args_ptr)
        self.callback_queue.enqueue(new_contract_message(contract_id, method, args, self.contract_id))

    def create_contract(self, memory: GuestMemory, code_id: int, init_args_ptr: int) -> int:
        """``contract.create``: register a new contract, queue its init call, return its id."""
        code_id &= _UINT64_MASK
        amount = self.repository.get_total_contract_amount()
        salt = (amount & _UINT64_MASK).to_bytes(8, "little")
        contract_id = generate_contract_id(self.state, code_id, salt)
        self.repository.create_contract(code_id, contract_id)

        init_args = read_bytes(memory, init_args_ptr)
        self.callback_queue.enqueue(new_contract_message(contract_id, "init", init_args, self.contract_id))
        return write_bytes(memory, contract_id.encode())

    def emit_event(self, memory: GuestMemory, event_ptr: int, data_ptr: int) -> None:
        """``event.emit``: record an event raised by the contract."""
        event = decode_utf16(read_bytes(memory, event_ptr))
        data = decode_utf16(read_bytes(memory, data_ptr))
        self.result_events.append(ResultEvent(contract_id=self.contract_id, event=event, data=data))

    def abort(self, memory: GuestMemory, msg_ptr: int, file_ptr: int, line: int, column: int) -> None:
        """``env.abort``: stop the contract with its message and location."""
        msg = decode_utf16(read_bytes(memory, msg_ptr))
        file = decode_utf16(read_bytes(memory, file_ptr))
        raise ContractAbort(f"WASM called abort msg: {msg}, file: {file}, line: {line}, column: {column}")

    def imports(self) -> dict[tuple[str, str], Callable[..., object]]:
        """Return the host functions keyed by (module, name) as contracts import them."""
        return {
            ("runtime", "db.save"): self.save,
            ("runtime", "db.load"): self.load,
            ("runtime", "contract.call"): self.call,
            ("runtime", "contract.create"): self.create_contract,
            ("runtime", "event.emit"): self.emit_event,
            ("env", "abort"): self.abort,
        }