"""Messages, events and the repository protocol shared by the virtual machine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, Sequence, Union


@dataclass(frozen=True)
class ContractMessage:
    """A call of ``method`` on ``contract`` with raw ``args``."""

    contract: str
    method: str
    args: bytes = b""
    sender: str = ""


@dataclass(frozen=True)
class DeployContractCodeMessage:
    """A request to store new contract code."""

    code: bytes
    sender: str = ""


@dataclass(frozen=True)
class InitializeContractMessage:
    """A request to create and initialise a contract from stored code."""

    code_id: int
    args: bytes = b""
    sender: str = ""


VMMessage = Union[ContractMessage, DeployContractCodeMessage, InitializeContractMessage]


@dataclass(frozen=True)
class ResultEvent:
    """An event emitted while a contract ran."""

    contract_id: str
    event: str
    data: str


@dataclass(frozen=True)
class Transaction:
    """A batch of messages run against one state with a shared gas limit."""

    gas_limit: int
    state: bytes
    messages: Sequence[VMMessage] = field(default_factory=tuple)


class ContractRepository(Protocol):
    """Storage the virtual machine needs for contracts, their code and entities."""

    def save_entity(self, contract_id: str, entity_key: str, data: bytes) -> None:
        """Save ``data`` under ``entity_key`` in the contract's namespace."""

    def load_entity(self, contract_id: str, entity_key: str) -> bytes | None:
        """Load the entity stored under ``entity_key`` in the contract's namespace."""

    def get_contract_code_by_contract(self, contract_id: str) -> bytes | None:
        """Return the code of a contract; raise if the contract does not exist."""

    def get_contract_code_by_id(self, code_id: int) -> bytes:
        """Return stored code by its id; raise if there is none."""

    def create_contract(self, code_id: int, contract_id: str) -> None:
        """Register a contract running ``code_id``; raise if it already exists."""

    def try_initialize_contract(self, contract_id: str) -> None:
        """Mark the contract initialised; raise if it already was."""

    def get_total_contract_amount(self) -> int:
        """Return the number of code entries stored so far."""


def new_contract_message(contract: str, method: str, args: bytes, sender: str) -> ContractMessage:
    """Build a :class:`ContractMessage`."""
    return ContractMessage(contract=contract, method=method, args=bytes(args), sender=sender)