"""Runs the messages of a transaction against the contract store."""

from __future__ import annotations

from typing import Optional

from contractvm.cache_store import CacheKVStore
from contractvm.callback_queue import CallbackQueue
from contractvm.checker import InvalidWasmError, contains_nondeterministic_ops
from contractvm.executor import ContractExecutionError, ContractExecutor
from contractvm.messages import (
    ContractMessage,
    DeployContractCodeMessage,
    InitializeContractMessage,
    ResultEvent,
    Transaction,
    VMMessage,
)

DEPLOY_GAS = 0


class TransactionError(RuntimeError):
    """Raised when a message of a transaction fails; the cache is rolled back first."""


class TxRunner:
    """Applies transactions through a contract executor and a cached store."""

    def __init__(self, executor: ContractExecutor, store: CacheKVStore) -> None:
        self._executor = executor
        self._store = store

    def run_transaction(
        self, tx: Transaction
    ) -> tuple[int, list[Optional[CallbackQueue]], list[ResultEvent]]:
        """Run every message; return the gas left, each message's queue and all events."""
        gas_limit = tx.gas_limit
        callback_queues: list[Optional[CallbackQueue]] = []
        result_events: list[ResultEvent] = []
        for msg in tx.messages:
            gas_limit, queue, events = self._run_message(tx.state, msg, gas_limit)
            callback_queues.append(queue)
            result_events.extend(events)
        return gas_limit, callback_queues, result_events

    def _run_message(
        self, state: bytes, msg: VMMessage, gas_limit: int
    ) -> tuple[int, Optional[CallbackQueue], list[ResultEvent]]:
        try:
            match msg:
                case DeployContractCodeMessage():
                    return self._deploy_contract(msg, gas_limit), None, []
                case InitializeContractMessage():
                    return self._executor.initialize_contract(self._store, state, msg.code_id, msg.args, gas_limit)
                case ContractMessage():
                    return self._executor.run_contract(self._store, state, msg, gas_limit)
                case _:
                    raise TypeError(f"unknown message type: {type(msg).__name__}")
        except TransactionError:
            self._store.rollback()
            raise
        except ContractExecutionError as exc:
            self._store.rollback()
            raise TransactionError(str(exc)) from exc

    def _deploy_contract(self, msg: DeployContractCodeMessage, gas_limit: int) -> int:
        consumed = DEPLOY_GAS * len(msg.code)
        if consumed > gas_limit:
            raise TransactionError("not enough gas limit")

        try:
            nondeterministic = contains_nondeterministic_ops(msg.code)
        except InvalidWasmError as exc:
            raise TransactionError(f"failed to check code: {exc}") from exc
        if nondeterministic:
            raise TransactionError("code contains unsupported operations")

        self._store.store_contract_code(msg.code)
        return gas_limit - consumed