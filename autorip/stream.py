"""Bounded single-producer / single-consumer streams.

A producer function runs in a worker thread and hands items to the consumer
through a small queue. A full queue blocks the producer, so a slow consumer
throttles the producer instead of letting items pile up. Cancellation is
explicit: :meth:`Stream.cancel` sets a flag that the producer observes on its
next emission.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable, Iterator
from typing import Generic, TypeVar

T = TypeVar("T")

log = logging.getLogger(__name__)

_ITEM = 0
_DONE = 1
_ERROR = 2


class StreamCancelled(Exception):
    """Raised inside the producer when the consumer has cancelled."""


class Stream(Generic[T]):
    """A finite, ordered, non-restartable sequence produced by a worker thread.

    *produce* receives an ``emit`` callable and must call it once per item.
    Exceptions raised by *produce* are re-raised to the consumer at the
    position they occurred.
    """

    def __init__(
        self,
        produce: Callable[[Callable[[T], None]], None],
        *,
        maxsize: int = 1,
        name: str = "stream",
    ) -> None:
        self._queue: queue.Queue[tuple[int, object]] = queue.Queue(maxsize=maxsize)
        self._cancel = threading.Event()
        self._finished = False
        self._name = name
        self._thread = threading.Thread(target=self._run, args=(produce,), name=name, daemon=True)
        self._thread.start()

    # -- producer side --

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def _put(self, kind: int, payload: object) -> None:
        if self._cancel.is_set():
            raise StreamCancelled
        self._queue.put((kind, payload))

    def _emit(self, item: T) -> None:
        self._put(_ITEM, item)

    def _run(self, produce: Callable[[Callable[[T], None]], None]) -> None:
        try:
            produce(self._emit)
        except StreamCancelled:
            log.debug("%s: producer stopped after cancel", self._name)
            return
        except Exception as exc:
            try:
                self._put(_ERROR, exc)
            except StreamCancelled:
                log.debug("%s: dropping producer error after cancel", self._name, exc_info=True)
            return
        try:
            self._put(_DONE, None)
        except StreamCancelled:
            pass

    # -- consumer side --

    def __iter__(self) -> Iterator[T]:
        return self

    def __next__(self) -> T:
        if self._finished or self._cancel.is_set():
            raise StopIteration
        kind, payload = self._queue.get()
        if kind == _DONE:
            self._finished = True
            raise StopIteration
        if kind == _ERROR:
            self._finished = True
            raise payload  # type: ignore[misc]
        return payload  # type: ignore[return-value]

    def cancel(self, timeout: float | None = 1.0) -> None:
        """Stop the producer and release the worker thread.

        Draining the queue once unblocks a producer waiting on a full queue;
        its next emission then observes the flag and unwinds.
        """
        self._cancel.set()
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
        self._thread.join(timeout)
        if self._thread.is_alive():
            log.debug("%s: producer still blocked after cancel", self._name)

    def __enter__(self) -> Stream[T]:
        return self

    def __exit__(self, *_: object) -> None:
        self.cancel()
