import pytest

from contractvm.cache_store import CacheKVStore, ContractStoreError
from contractvm.executor import ContractExecutor
from contractvm.messages import (
    ContractMessage,
    DeployContractCodeMessage,
    InitializeContractMessage,
    Transaction,
)
from contractvm.runner import TransactionError, TxRunner

GAS = 500
COST = 11
WASM = b"\x00asm\x01\x00\x00\x00"


class FakeRuntime:
    def __init__(self, gas_limit):
        self.gas_limit = gas_limit

    def run(self, msg):
        return self.gas_limit - COST


@pytest.fixture
def store():
    backend = {}
    return CacheKVStore(backend.get, backend.__setitem__, lambda key: backend.pop(key, None))


@pytest.fixture
def runner(store):
    executor = ContractExecutor(lambda code, host, gas_limit: FakeRuntime(gas_limit))
    return TxRunner(executor, store)


def test_deploy_stores_code(runner, store):
    remaining, queues, events = runner.run_transaction(
        Transaction(GAS, b"state", [DeployContractCodeMessage(WASM)])
    )
    assert remaining == GAS
    assert queues == [None]
    assert events == []
    assert store.get_contract_code_by_id(0) == WASM


def test_deploy_then_initialize(runner, store):
    remaining, queues, events = runner.run_transaction(
        Transaction(GAS, b"state", [DeployContractCodeMessage(WASM), InitializeContractMessage(0, b"args")])
    )
    assert remaining == GAS - COST
    assert len(queues) == 2
    assert [event.event for event in events] == ["initialized"]
    assert store.get_contract_code_by_contract(events[0].contract_id) == WASM


def test_nondeterministic_code_is_rejected_and_rolled_back(runner, store):
    tx = Transaction(GAS, b"state", [DeployContractCodeMessage(WASM), DeployContractCodeMessage(WASM + b"\x92")])
    with pytest.raises(TransactionError, match="code contains unsupported operations"):
        runner.run_transaction(tx)
    assert store.get_total_contract_amount() == 0
    with pytest.raises(ContractStoreError):
        store.get_contract_code_by_id(0)


def test_invalid_code_fails_check(runner):
    with pytest.raises(TransactionError, match="failed to check code: invalid Wasm binary: too short"):
        runner.run_transaction(Transaction(GAS, b"state", [DeployContractCodeMessage(b"\x00asm")]))


def test_unknown_contract_rolls_back(runner, store):
    tx = Transaction(GAS, b"state", [DeployContractCodeMessage(WASM), ContractMessage("ghost", "run")])
    with pytest.raises(TransactionError, match="contract does not exist: ghost"):
        runner.run_transaction(tx)
    assert store.get_total_contract_amount() == 0


def test_unknown_message_type_raises(runner):
    with pytest.raises(TypeError, match="unknown message type"):
        runner.run_transaction(Transaction(GAS, b"state", ["not a message"]))