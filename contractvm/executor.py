"""Runs contract calls and the calls they queue, sharing one gas budget."""

from __future__ import annotations

from typing import Callable, Optional, Protocol, Sequence

from contractvm.callback_queue import CallbackQueue
from contractvm.host import ContractHost, generate_contract_id
from contractvm.messages import ContractMessage, ContractRepository, ResultEvent

_UINT64_MASK = (1 << 64) - 1


class _ContractRuntime(Protocol):
    def run(self, msg: ContractMessage) -> int:
        """Run ``msg.method`` and return the gas left."""


_RuntimeFactory = Callable[[bytes, ContractHost, int], _ContractRuntime]


class ContractExecutionError(RuntimeError):
    """Raised when a contract call fails; carries the queue and events so far."""

    def __init__(
        self,
        message: str,
        callback_queue: Optional[CallbackQueue] = None,
        result_events: Sequence[ResultEvent] = (),
    ) -> None:
        super().__init__(message)
        self.callback_queue = callback_queue
        self.result_events = list(result_events)


class ContractExecutor:
    """Executes contracts with runtimes built by ``runtime_factory(code, host, gas_limit)``."""

    def __init__(self, runtime_factory: _RuntimeFactory) -> None:
        self._runtime_factory = runtime_factory

    def initialize_contract(
        self,
        repository: ContractRepository,
        state: bytes,
        code_id: int,
        args: bytes,
        gas_limit: int,
    ) -> tuple[int, CallbackQueue, list[ResultEvent]]:
        """Create a contract from stored code and run its ``init`` method."""
        amount = repository.get_total_contract_amount()
        salt = (amount & _UINT64_MASK).to_bytes(8, "little")
        contract_id = generate_contract_id(state, code_id, salt)
        try:
            repository.create_contract(code_id, contract_id)
        except Exception as exc:
            raise ContractExecutionError(str(exc)) from exc

        return self.run_contract(
            repository,
            state,
            ContractMessage(contract=contract_id, method="init", args=bytes(args)),
            gas_limit,
        )

    def run_contract(
        self,
        repository: ContractRepository,
        state: bytes,
        msg: ContractMessage,
        gas_limit: int,
    ) -> tuple[int, CallbackQueue, list[ResultEvent]]:
        """Run ``msg`` and every call it queues; return gas left, the queue and events."""
        callback_queue = CallbackQueue()
        result_events: list[ResultEvent] = []
        callback_queue.enqueue(msg)

        while (current := callback_queue.dequeue()) is not None:
            try:
                gas_limit = self._run_message(callback_queue, result_events, repository, state, current, gas_limit)
            except ContractExecutionError as exc:
                raise ContractExecutionError(str(exc), callback_queue, result_events) from exc.__cause__

        return gas_limit, callback_queue, result_events

    def _run_message(
        self,
        callback_queue: CallbackQueue,
        result_events: list[ResultEvent],
        repository: ContractRepository,
        state: bytes,
        msg: ContractMessage,
        gas_limit: int,
    ) -> int:
        code = self._load_code(repository, msg.contract)

        if msg.method == "init":
            try:
                repository.try_initialize_contract(msg.contract)
            except Exception as exc:
                raise ContractExecutionError(f"failed to initialize contract: {exc}") from exc
            result_events.append(ResultEvent(contract_id=msg.contract, event="initialized", data="true"))

        host = ContractHost(repository, callback_queue, result_events, state, msg.contract)
        try:
            runtime = self._runtime_factory(code, host, gas_limit)
            return runtime.run(msg)
        except Exception as exc:
            raise ContractExecutionError(f"failed to run contract: {exc}") from exc

    @staticmethod
    def _load_code(repository: ContractRepository, contract_id: str) -> bytes:
        try:
            code = repository.get_contract_code_by_contract(contract_id)
        except Exception as exc:
            raise ContractExecutionError(str(exc)) from exc
        if code is None:
            raise ContractExecutionError(f"contract code not found for contract: {contract_id}")
        return code