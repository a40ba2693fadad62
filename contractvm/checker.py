"""Byte-level checks that reject Wasm code with non-deterministic operations."""

from __future__ import annotations

import io
from typing import BinaryIO

_MAGIC = b"\x00asm"
_HEADER_SIZE = 8
_MEMORY_SECTION_ID = 5
_UINT64_MASK = (1 << 64) - 1

_FLOATING_POINT_OPCODES = frozenset(
    [
        # f32 arithmetic and comparisons
        0x8B, 0x8C, 0x8D, 0x8E, 0x8F, 0x90, 0x91, 0x92, 0x93, 0x94,
        0x95, 0x96, 0x97, 0x98, 0x5B, 0x5C, 0x5D, 0x5E, 0x5F, 0x60,
        # f64 arithmetic and comparisons
        0x99, 0x9A, 0x9B, 0x9C, 0x9D, 0x9E, 0x9F, 0xA0, 0xA1, 0xA2,
        0xA3, 0xA4, 0xA5, 0xA6, 0x61, 0x62, 0x63, 0x64, 0x65, 0x66,
        # conversions
        0xB2, 0xB3, 0xB4, 0xB5, 0xB6, 0xB7, 0xB8, 0xB9, 0xBA, 0xBB,
        0xA8, 0xA9, 0xAA, 0xAB, 0xAE, 0xAF, 0xB0, 0xB1,
    ]
)

_SIMD_PREFIX = 0xFD
_V128_TYPE = 0x7B
_ATOMIC_PREFIX = 0xFE


class InvalidWasmError(ValueError):
    """Raised when the input is not a well-formed Wasm binary."""


def _body(wasm_code: bytes) -> bytes:
    """Validate the header and return everything after magic and version."""
    if len(wasm_code) < _HEADER_SIZE:
        raise InvalidWasmError("invalid Wasm binary: too short")
    if bytes(wasm_code[:4]) != _MAGIC:
        raise InvalidWasmError("invalid Wasm binary: wrong magic number")
    return bytes(wasm_code[_HEADER_SIZE:])


def read_leb128(stream: BinaryIO) -> int:
    """Read an unsigned LEB128 integer (64-bit) from a binary stream.

    Raises EOFError if the stream ends before the integer does.
    """
    result = 0
    shift = 0
    while True:
        chunk = stream.read(1)
        if not chunk:
            raise EOFError("unexpected end of LEB128 integer")
        byte = chunk[0]
        if shift < 64:
            result |= (byte & 0x7F) << shift
        shift += 7
        if not byte & 0x80:
            return result & _UINT64_MASK


def contains_floating_point_ops(wasm_code: bytes) -> bool:
    """Return whether any byte after the header is a floating-point opcode.

    The scan covers the whole binary, so it may report false positives but
    never misses a floating-point instruction.
    """
    return any(byte in _FLOATING_POINT_OPCODES for byte in _body(wasm_code))


def contains_simd_ops(wasm_code: bytes) -> bool:
    """Return whether the binary holds the SIMD prefix or the v128 type byte."""
    body = _body(wasm_code)
    return _SIMD_PREFIX in body or _V128_TYPE in body


def _has_shared_memory(stream: BinaryIO) -> bool:
    while True:
        section_id = stream.read(1)
        if not section_id:
            return False
        section_size = read_leb128(stream)
        if section_id[0] != _MEMORY_SECTION_ID:
            stream.seek(section_size, io.SEEK_CUR)
            continue
        for _ in range(read_leb128(stream)):
            mem_type = stream.read(1)
            if not mem_type:
                raise EOFError("unexpected end of memory section")
            flags = mem_type[0]
            if flags & 0x02:
                return True
            read_leb128(stream)
            if flags & 0x01:
                read_leb128(stream)
        return False


def contains_threading_ops(wasm_code: bytes) -> bool:
    """Return whether the binary uses atomic instructions or shared memory."""
    body = _body(wasm_code)
    if _ATOMIC_PREFIX in body:
        return True
    try:
        return _has_shared_memory(io.BytesIO(body))
    except EOFError as exc:
        raise InvalidWasmError(f"invalid Wasm binary: {exc}") from exc


def contains_nondeterministic_ops(wasm_code: bytes) -> bool:
    """Return whether the code uses floating-point, SIMD or threading operations."""
    return (
        contains_floating_point_ops(wasm_code)
        or contains_simd_ops(wasm_code)
        or contains_threading_ops(wasm_code)
    )