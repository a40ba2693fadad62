from contractvm.callback_queue import CallbackQueue
from contractvm.messages import ContractMessage


def _msg(name):
    return ContractMessage(contract=name, method="m", args=b"", sender="s")


def test_new_queue_is_empty():
    queue = CallbackQueue()
    assert queue.is_empty()
    assert len(queue) == 0
    assert queue.dequeue() is None


def test_fifo_order():
    queue = CallbackQueue()
    for name in ("a", "b", "c"):
        queue.enqueue(_msg(name))
    assert [queue.dequeue().contract for _ in range(3)] == ["a", "b", "c"]
    assert queue.dequeue() is None


def test_len_counts_pending_only():
    queue = CallbackQueue()
    queue.enqueue(_msg("a"))
    queue.enqueue(_msg("b"))
    assert len(queue) == 2
    queue.dequeue()
    assert len(queue) == 1
    assert not queue.is_empty()
    queue.dequeue()
    assert queue.is_empty()


def test_all_includes_dequeued_messages():
    queue = CallbackQueue()
    first, second = _msg("a"), _msg("b")
    queue.enqueue(first)
    queue.enqueue(second)
    queue.dequeue()
    assert queue.all() == [first, second]


def test_enqueue_after_drain():
    queue = CallbackQueue()
    queue.enqueue(_msg("a"))
    queue.dequeue()
    queue.enqueue(_msg("b"))
    assert queue.dequeue().contract == "b"
    assert queue.is_empty()


def test_all_returns_copy():
    queue = CallbackQueue()
    queue.enqueue(_msg("a"))
    snapshot = queue.all()
    snapshot.clear()
    assert len(queue.all()) == 1