# === NAVMAP v1 ===
# {
#   "module": "BucketCopy.CopyPlanning.cancellation",
#   "purpose": "Provide cooperative cancellation tokens threaded through stat, list, and channel calls",
#   "sections": [
#     {"id": "token", "name": "CancellationToken", "anchor": "TOK", "kind": "api"},
#     {"id": "group", "name": "CancellationTokenGroup", "anchor": "GRP", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Cooperative cancellation primitives shared by the copy planning stages.

One invocation runs a generator thread, a filter thread, and possibly a pool of
per-source listing threads.  A single :class:`CancellationToken` is passed to
every backend stat and list call and to every channel send and receive.  A
job stream derives a child token from the caller's token so closing the stream
stops its own threads without cancelling the caller's wider context.
"""

from __future__ import annotations

import threading
from typing import Optional


class CancellationToken:
    """Thread-safe cancellation token for cooperative task cancellation.

    A token created with ``parent`` reports cancellation when either itself or
    any ancestor has been cancelled.

    Examples:
        >>> token = CancellationToken()
        >>> child = token.child()
        >>> token.cancel()
        >>> child.is_cancelled()
        True
    """

    def __init__(self, parent: Optional["CancellationToken"] = None) -> None:
        """Initialize a new cancellation token."""
        self._is_cancelled = threading.Event()
        self._lock = threading.Lock()
        self._parent = parent

    def cancel(self) -> None:
        """Signal that cancellation has been requested."""
        with self._lock:
            self._is_cancelled.set()

    def is_cancelled(self) -> bool:
        """Check if cancellation has been requested on this token or an ancestor."""
        if self._is_cancelled.is_set():
            return True
        return self._parent is not None and self._parent.is_cancelled()

    def wait(self, timeout: float) -> bool:
        """Block up to ``timeout`` seconds for cancellation; return the final state."""
        if self._parent is None:
            return self._is_cancelled.wait(timeout)
        if self._is_cancelled.wait(timeout):
            return True
        return self._parent.is_cancelled()

    def child(self) -> "CancellationToken":
        """Return a token cancelled together with this one but cancellable on its own."""
        return CancellationToken(parent=self)

    def reset(self) -> None:
        """Reset the cancellation token to its initial state.

        This should only be used for testing or when reusing tokens
        in controlled scenarios.
        """
        with self._lock:
            self._is_cancelled.clear()


class CancellationTokenGroup:
    """A group of cancellation tokens that can be cancelled together.

    Type D fan-out registers one token per in-flight source so that closing
    the stream stops every listing at once.
    """

    def __init__(self) -> None:
        """Initialize an empty token group."""
        self._tokens: list[CancellationToken] = []
        self._lock = threading.Lock()
        self._cancelled = False

    def add_token(self, token: CancellationToken) -> None:
        """Add a token to this group, cancelling it immediately if the group is cancelled."""
        with self._lock:
            self._tokens.append(token)
            if self._cancelled:
                token.cancel()

    def create_token(self, parent: Optional[CancellationToken] = None) -> CancellationToken:
        """Create a new token (optionally derived from ``parent``) and add it to this group."""
        token = CancellationToken(parent=parent)
        self.add_token(token)
        return token

    def remove_token(self, token: CancellationToken) -> None:
        """Remove ``token`` from this group if it is present."""

        with self._lock:
            try:
                self._tokens.remove(token)
            except ValueError:
                # Already released by a finished worker.
                pass

    def cancel_all(self) -> None:
        """Cancel all tokens in this group."""
        with self._lock:
            self._cancelled = True
            for token in self._tokens:
                token.cancel()

    def __len__(self) -> int:
        """Return the number of tokens in this group."""
        with self._lock:
            return len(self._tokens)


__all__ = ["CancellationToken", "CancellationTokenGroup"]
