"""A first-in first-out queue of contract calls made during execution."""

from __future__ import annotations

from contractvm.messages import ContractMessage


class CallbackQueue:
    """Queue of pending contract messages that remembers every message enqueued."""

    def __init__(self) -> None:
        self._messages: list[ContractMessage] = []
        self._head = 0

    def enqueue(self, msg: ContractMessage) -> None:
        """Append a message to the end of the queue."""
        self._messages.append(msg)

    def dequeue(self) -> ContractMessage | None:
        """Remove and return the oldest pending message, or ``None`` when empty."""
        if self.is_empty():
            return None
        msg = self._messages[self._head]
        self._head += 1
        return msg

    def is_empty(self) -> bool:
        """Return whether no message is pending."""
        return self._head >= len(self._messages)

    def all(self) -> list[ContractMessage]:
        """Return every message ever enqueued, dequeued ones included."""
        return list(self._messages)

    def __len__(self) -> int:
        """Return the number of pending messages."""
        return len(self._messages) - self._head