"""Bounded intake queue and the fixed-size worker pool draining it."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from queue import Full, Queue
from threading import Lock
from typing import Callable, Generic, Iterator, TypeVar

T = TypeVar("T")

_CLOSED = object()


class QueueClosedError(RuntimeError):
    """Raised when putting into a queue that has already been closed."""


class IntakeQueue(Generic[T]):
    """Small-buffer queue with an explicit close.

    ``put`` blocks while the buffer is full, which gives the reader natural
    back-pressure. Iterating yields items until the queue is closed and
    drained; the close marker is re-queued so every consumer sees it.
    """

    def __init__(self, maxsize: int = 1) -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")
        self._queue: Queue = Queue(maxsize=maxsize)
        self._closed = False
        self._marker_queued = False
        self._lock = Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, item: T, timeout: float | None = None) -> None:
        """Queue ``item``; raises ``queue.Full`` if no slot frees up within ``timeout``."""

        with self._lock:
            if self._closed:
                raise QueueClosedError("intake queue is closed")
        self._queue.put(item, timeout=timeout)

    def close(self, timeout: float | None = None) -> bool:
        """Close the queue; returns False when the end marker could not be queued in time.

        Calling again after a False result retries queuing the marker.
        """

        with self._lock:
            self._closed = True
            if self._marker_queued:
                return True
        try:
            self._queue.put(_CLOSED, timeout=timeout)
        except Full:
            return False
        with self._lock:
            self._marker_queued = True
        return True

    def __iter__(self) -> Iterator[T]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                self._queue.put(_CLOSED)
                return
            yield item


class WorkerPool(Generic[T]):
    """Run ``workers`` identical consumer loops over one ``IntakeQueue``."""

    def __init__(
        self,
        workers: int = 3,
        queue_size: int = 1,
        thread_name_prefix: str = "relay",
        poll_interval: float = 0.2,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self.workers = workers
        self.poll_interval = poll_interval
        self.queue: IntakeQueue[T] = IntakeQueue(queue_size)
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix=thread_name_prefix)
        self._futures: list[Future[None]] = []

    def start(self, handler: Callable[[int, IntakeQueue[T]], None]) -> None:
        """Start one ``handler(index, queue)`` per worker."""

        if self._futures:
            raise RuntimeError("worker pool already started")
        for index in range(self.workers):
            self._futures.append(self._executor.submit(handler, index, self.queue))

    def submit(self, item: T) -> None:
        """Hand ``item`` to the workers, blocking while they are busy.

        Raises the first worker error, or ``RuntimeError``, once every
        worker has exited and nobody is left to take the item.
        """

        while True:
            try:
                self.queue.put(item, timeout=self.poll_interval)
                return
            except Full:
                if self.exited:
                    self._raise_worker_error()

    def close(self) -> None:
        """Queue the end marker; gives up once every worker has exited."""

        while not self.queue.close(timeout=self.poll_interval):
            if self.exited:
                return

    @property
    def exited(self) -> bool:
        return bool(self._futures) and all(future.done() for future in self._futures)

    def _raise_worker_error(self) -> None:
        for future in self._futures:
            future.result()
        raise RuntimeError("every worker has exited")

    def join(self) -> None:
        """Wait until every worker has drained the queue and exited."""

        try:
            for future in self._futures:
                future.result()
        finally:
            self._executor.shutdown(wait=True)

    def __enter__(self) -> "WorkerPool[T]":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()
        self.join()


__all__ = ["IntakeQueue", "QueueClosedError", "WorkerPool"]
