# contractvm

The core of a virtual machine for WebAssembly smart contracts. It uses only
the standard library.

- **Code checks**: `contractvm.checker.contains_nondeterministic_ops` reports
  whether a module uses floating-point, SIMD or threading operations. It scans
  the bytes after the header, so it can give false positives but does not miss
  these instructions. It also checks the memory section for shared memory.
  Separate checks exist too: `contains_floating_point_ops`,
  `contains_simd_ops` and `contains_threading_ops`.
- **Cached state**: `contractvm.cache_store.CacheKVStore` sits over any
  backend you give as `get_fn`, `set_fn` and `delete_fn`. It buffers writes.
  `commit()` writes them through in first-update order, and `rollback()`
  drops them. It also stores contract code, contracts, initialisation flags
  and entities, using the key layout in `contractvm.keys`.
- **Versioned storage**: `contractvm.store.VersionedTree` is an in-memory map
  whose state can be saved as numbered versions. `contractvm.store.Store`
  puts a `CacheKVStore` (its `cached` property) in front of a tree.
  `save_version_with_id(id)` saves the tree version under an identifier and
  `get_version_by_id(id)` looks it up again.
- **Host functions**: `contractvm.host.ContractHost` provides the functions a
  contract imports: `db.save`, `db.load`, `contract.call`, `contract.create`,
  `event.emit` and `env.abort`. `imports()` returns them keyed by
  `(module, name)`. Each one takes a `GuestMemory` as its first argument. A
  `GuestMemory` holds the linear memory as a `bytearray` and the guest's
  `allocate(size, class_id)` allocator. Blocks use a 4-byte little-endian
  length prefix.
- **Execution**: `contractvm.executor.ContractExecutor` runs a contract call
  and then every call that the call queues. The remaining gas passes from one
  call to the next. `contractvm.runner.TxRunner` runs each message of a
  `contractvm.messages.Transaction`: deploy, initialise or call. If a message
  fails, it rolls back the cache.

## What it does not do

The package does not contain a WebAssembly engine. `ContractExecutor` is
built with a `runtime_factory(code, host, gas_limit)`. The factory must return
an object whose `run(msg)` instantiates the code with the host's `imports()`,
calls `msg.method`, and returns the gas left. Metering gas is also the
runtime's job. The package has no command-line tool and no server, and
`VersionedTree` keeps its data in memory only.

## Install

```
pip install .
pip install ".[test]"   # to run the tests
```

## Example

```python
from contractvm.checker import contains_nondeterministic_ops
from contractvm.store import Store, VersionedTree

tree = VersionedTree()
store = Store(tree)
cache = store.cached

wasm = bytes.fromhex("0061736d01000000")
assert not contains_nondeterministic_ops(wasm)

cache.store_contract_code(wasm)
cache.commit()
assert cache.get_contract_code_by_id(0) == wasm

store.save_version_with_id(1)
print(store.get_version_by_id(1))  # 1
```

## Errors

| Exception | Raised when |
| --- | --- |
| `InvalidWasmError` (a `ValueError`) | A module is too short, has the wrong magic number, or ends mid-section. |
| `ContractStoreError` | A contract or code is missing, a contract is created twice, or a contract is initialised twice. |
| `LookupError` | `Store.get_version_by_id` is given an unknown id. |
| `ContractAbort` | A contract calls `env.abort`. |
| `ContractExecutionError` | A contract call fails. It carries `callback_queue` and `result_events` as they were at the point of failure. |
| `TransactionError` | A transaction message is rejected or fails. |

## Tests

```
pytest
```