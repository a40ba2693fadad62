"""Key layout of the contract store."""

from __future__ import annotations

CONTRACT_ENTITY_PREFIX = "contracts/entities"
CONTRACT_MODULE_PREFIX = "contracts/modules"
CONTRACT_INITIALIZED_PREFIX = "contracts/initialized"

CONTRACT_CODE_PREFIX = "contracts/codes"
CONTRACT_NEXT_CODE_ID_KEY = "contracts/next_code_id"

VERSION_MAP_PREFIX = "version"


def contract_entity_key(contract_id: str, entity_id: str) -> bytes:
    """Key of an entity stored in a contract's namespace."""
    return f"{CONTRACT_INITIALIZED_PREFIX}/{contract_id}/{entity_id}".encode()


def contract_initialized_key(contract_id: str) -> bytes:
    """Key of the flag marking a contract as initialised."""
    return f"{CONTRACT_ENTITY_PREFIX}/{contract_id}".encode()


def contract_module_key(contract_id: str) -> bytes:
    """Key that maps a contract to the key of its code."""
    return f"{CONTRACT_MODULE_PREFIX}/{contract_id}".encode()


def contract_code_key(code_id: int) -> bytes:
    """Key under which the code with ``code_id`` is stored."""
    return f"{CONTRACT_CODE_PREFIX}/{code_id}".encode()


def parse_contract_code_key(key: bytes) -> int:
    """Return the code id held in a code key; raise ValueError if it is not one."""
    text = bytes(key).decode("utf-8", errors="replace")
    prefix = f"{CONTRACT_CODE_PREFIX}/"
    if not text.startswith(prefix):
        raise ValueError(f"not a contract code key: {text!r}")
    digits = text[len(prefix):]
    if not digits.isascii() or not digits.isdigit():
        raise ValueError(f"invalid code id in key: {text!r}")
    return int(digits)


def version_key(version_id: int) -> bytes:
    """Key mapping an external id to a saved tree version."""
    return f"{VERSION_MAP_PREFIX}/{version_id}".encode()