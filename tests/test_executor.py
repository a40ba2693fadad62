import pytest

from contractvm.cache_store import CacheKVStore
from contractvm.executor import ContractExecutionError, ContractExecutor
from contractvm.host import generate_contract_id
from contractvm.messages import ContractMessage, ResultEvent, new_contract_message

GAS = 1_000
COST = 7


class FakeRuntime:
    def __init__(self, code, host, gas_limit, log, actions):
        self.code = code
        self.host = host
        self.gas_limit = gas_limit
        self.log = log
        self.actions = actions

    def run(self, msg):
        self.log.append((self.code, msg, self.gas_limit))
        action = self.actions.get(msg.method)
        if action is not None:
            action(self.host, msg)
        return self.gas_limit - COST


def make_executor(log, actions=None):
    def factory(code, host, gas_limit):
        return FakeRuntime(code, host, gas_limit, log, actions or {})

    return ContractExecutor(factory)


@pytest.fixture
def store():
    backend = {}
    return CacheKVStore(backend.get, backend.__setitem__, lambda key: backend.pop(key, None))


def test_initialize_contract_runs_init(store):
    log = []
    store.store_contract_code(b"code-a")
    remaining, queue, events = make_executor(log).initialize_contract(store, b"state", 0, b"args", GAS)

    contract_id = generate_contract_id(b"state", 0, (1).to_bytes(8, "little"))
    assert remaining == GAS - COST
    assert events == [ResultEvent(contract_id=contract_id, event="initialized", data="true")]
    assert log == [(b"code-a", ContractMessage(contract_id, "init", b"args", ""), GAS)]
    assert queue.is_empty()
    assert store.get_contract_code_by_contract(contract_id) == b"code-a"


def test_callbacks_run_in_order_sharing_gas(store):
    log = []

    def forward(host, msg):
        host.callback_queue.enqueue(new_contract_message(host.contract_id, "pong", b"p", host.contract_id))

    store.store_contract_code(b"code")
    store.create_contract(0, "alpha")
    remaining, queue, _ = make_executor(log, {"forward": forward}).run_contract(
        store, b"s", ContractMessage("alpha", "forward"), GAS
    )

    assert [entry[1].method for entry in log] == ["forward", "pong"]
    assert log[1][2] == GAS - COST
    assert remaining == GAS - 2 * COST
    assert len(queue.all()) == 2
    assert queue.is_empty()
    assert log[1][1].sender == "alpha"


def test_unknown_contract_raises(store):
    with pytest.raises(ContractExecutionError, match="contract does not exist: ghost"):
        make_executor([]).run_contract(store, b"s", ContractMessage("ghost", "run"), GAS)


def test_initializing_twice_raises(store):
    executor = make_executor([])
    store.store_contract_code(b"code")
    _, _, events = executor.initialize_contract(store, b"state", 0, b"", GAS)
    contract_id = events[0].contract_id
    with pytest.raises(ContractExecutionError, match="failed to initialize contract"):
        executor.run_contract(store, b"state", ContractMessage(contract_id, "init"), GAS)


def test_creating_existing_contract_raises(store):
    executor = make_executor([])
    store.store_contract_code(b"code")
    contract_id = generate_contract_id(b"state", 0, (1).to_bytes(8, "little"))
    store.create_contract(0, contract_id)
    with pytest.raises(ContractExecutionError, match="contract already exists"):
        executor.initialize_contract(store, b"state", 0, b"", GAS)


def test_runtime_failure_keeps_events(store):
    def boom(host, msg):
        raise RuntimeError("boom")

    store.store_contract_code(b"code")
    with pytest.raises(ContractExecutionError, match="failed to run contract: boom") as info:
        make_executor([], {"init": boom}).initialize_contract(store, b"state", 0, b"", GAS)

    assert [event.event for event in info.value.result_events] == ["initialized"]
    assert info.value.callback_queue.is_empty()