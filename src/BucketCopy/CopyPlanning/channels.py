# === NAVMAP v1 ===
# {
#   "module": "BucketCopy.CopyPlanning.channels",
#   "purpose": "Bounded, cancellation-aware channel connecting the pipeline threads",
#   "sections": [
#     {"id": "channelclosed", "name": "ChannelClosed", "anchor": "class-channelclosed", "kind": "class"},
#     {"id": "channel", "name": "Channel", "anchor": "class-channel", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Single-writer channel used between the generate and filter stages.

A :class:`Channel` wraps a bounded :class:`queue.Queue` (capacity 1 by
default) so a fast producer cannot run ahead of a slow consumer.  Every blocking
``put``/``get`` is a short timed wait followed by a cancellation check, which
lets a cancelled token unwind any blocked sender or receiver within one poll
interval.
"""

from __future__ import annotations

import logging
import threading
from queue import Empty, Full, Queue
from typing import Generic, Iterator, TypeVar

from .cancellation import CancellationToken

__all__ = ["Channel", "ChannelClosed", "DEFAULT_POLL_INTERVAL"]

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_POLL_INTERVAL = 0.05

_CLOSED = object()


class ChannelClosed(Exception):
    """Raised by :meth:`Channel.receive` once the sender closed the channel."""


class Channel(Generic[T]):
    """Bounded channel with cooperative cancellation.

    ``send`` returns ``False`` instead of blocking forever when the token is
    cancelled or the receiver abandoned the channel; producers stop as soon as
    they see ``False``.
    """

    def __init__(
        self,
        token: CancellationToken,
        *,
        capacity: int = 1,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        name: str = "channel",
    ) -> None:
        self.name = name
        self._token = token
        self._poll_interval = poll_interval
        self._queue: Queue[object] = Queue(maxsize=max(1, capacity))
        self._abandoned = threading.Event()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def abandoned(self) -> bool:
        return self._abandoned.is_set()

    def _put(self, item: object) -> bool:
        while True:
            if self._token.is_cancelled() or self._abandoned.is_set():
                return False
            try:
                self._queue.put(item, timeout=self._poll_interval)
            except Full:
                continue
            # A put that raced with abandon() lands in a queue nobody reads.
            return not self._abandoned.is_set()

    def send(self, item: T) -> bool:
        """Block until ``item`` is handed over; ``False`` when it never will be."""

        if self._closed.is_set():
            raise RuntimeError(f"send on closed channel {self.name}")
        return self._put(item)

    def close(self) -> None:
        """Mark the end of the stream. Idempotent."""

        if self._closed.is_set():
            return
        self._closed.set()
        if not self._put(_CLOSED):
            logger.debug("channel %s closed without delivering sentinel", self.name)

    def abandon(self) -> None:
        """Signal from the receiving side that no further items will be read."""

        self._abandoned.set()
        # Free a sender blocked on a full queue.
        try:
            while True:
                self._queue.get_nowait()
        except Empty:
            pass

    def receive(self) -> T:
        """Return the next item.

        Raises:
            ChannelClosed: once the sender closed the channel, the receiver
                abandoned it, or the token was cancelled.
        """

        while True:
            if self._abandoned.is_set() or self._token.is_cancelled():
                raise ChannelClosed(self.name)
            try:
                item = self._queue.get(timeout=self._poll_interval)
            except Empty:
                if self._token.is_cancelled():
                    raise ChannelClosed(self.name) from None
                continue
            if item is _CLOSED:
                self._abandoned.set()
                raise ChannelClosed(self.name)
            return item  # type: ignore[return-value]

    def __iter__(self) -> Iterator[T]:
        while True:
            try:
                yield self.receive()
            except ChannelClosed:
                return
