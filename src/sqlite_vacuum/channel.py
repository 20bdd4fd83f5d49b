"""Closable multi-producer, multi-consumer channel.

A channel closes for receivers once every sender handle is closed and the
buffer is drained, and it disconnects for senders once every receiver handle
is closed. Pipeline threads signal completion only by closing their handles.
"""

import threading
from collections import deque
from typing import Any, Generic, Iterator, Optional, TypeVar

T = TypeVar("T")


class Closed(Exception):
    """Receiving from an empty channel with no senders left."""


class Disconnected(Exception):
    """Sending to a channel with no receivers left."""


class Channel(Generic[T]):
    """
    FIFO channel shared between threads.

    Args:
        capacity: Maximum number of buffered items; None means unbounded
    """

    def __init__(self, capacity: Optional[int] = None) -> None:
        if capacity is not None and capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._items: deque[T] = deque()
        self._lock = threading.Lock()
        self._not_empty = threading.Condition(self._lock)
        self._not_full = threading.Condition(self._lock)
        self._senders = 0
        self._receivers = 0

    def sender(self) -> "Sender[T]":
        with self._lock:
            self._senders += 1
        return Sender(self)

    def receiver(self) -> "Receiver[T]":
        with self._lock:
            self._receivers += 1
        return Receiver(self)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def _full(self) -> bool:
        return self.capacity is not None and len(self._items) >= self.capacity

    def _send(self, item: T) -> None:
        with self._not_full:
            while self._receivers and self._full():
                self._not_full.wait()
            if not self._receivers:
                raise Disconnected()
            self._items.append(item)
            self._not_empty.notify()

    def _recv(self) -> T:
        with self._not_empty:
            while not self._items and self._senders:
                self._not_empty.wait()
            if not self._items:
                raise Closed()
            item = self._items.popleft()
            self._not_full.notify()
            return item

    def _drop_sender(self) -> None:
        with self._lock:
            self._senders -= 1
            if not self._senders:
                self._not_empty.notify_all()

    def _drop_receiver(self) -> None:
        with self._lock:
            self._receivers -= 1
            if not self._receivers:
                # Nobody will ever consume what is left
                self._items.clear()
                self._not_full.notify_all()


class _Handle(Generic[T]):
    def __init__(self, channel: Channel[T]) -> None:
        self._channel = channel
        self.closed = False

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._release()

    def _release(self) -> None:
        raise NotImplementedError

    def __enter__(self):
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


class Sender(_Handle[T]):
    """Producer side of a channel."""

    def send(self, item: T) -> None:
        """Push an item, blocking while the channel is full.

        Raises:
            Disconnected: every receiver has been closed
        """
        if self.closed:
            raise ValueError("send on a closed sender")
        self._channel._send(item)

    def _release(self) -> None:
        self._channel._drop_sender()


class Receiver(_Handle[T]):
    """Consumer side of a channel."""

    def recv(self) -> T:
        """Pop an item, blocking while the channel is empty but still open.

        Raises:
            Closed: the channel is empty and every sender has been closed
        """
        if self.closed:
            raise ValueError("recv on a closed receiver")
        return self._channel._recv()

    def __iter__(self) -> Iterator[T]:
        while True:
            try:
                yield self.recv()
            except Closed:
                return

    def _release(self) -> None:
        self._channel._drop_receiver()
