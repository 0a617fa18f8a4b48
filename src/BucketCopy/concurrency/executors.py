"""Executor factory used by the multi-source listing fan-out."""

from __future__ import annotations

from concurrent import futures
from typing import Optional, Tuple

Executor = futures.Executor

_THREAD_NAME_PREFIX = "copy-plan-source"


def create_executor(policy: str, workers: int) -> Tuple[Optional[Executor], bool]:
    """
    Return an executor configured for the given policy.

    Args:
        policy: Execution policy.  Only ``"io"`` is supported; listing a
            backend is network or disk bound, and jobs must stay in-process.
        workers: Desired concurrency level.

    Returns:
        Tuple of (executor, needs_shutdown).  ``(None, False)`` means the caller
        should run inline.  Caller is responsible for shutting down the returned
        executor when ``needs_shutdown`` is ``True``.

    Raises:
        ValueError: for an unknown policy.
    """
    normalized = (policy or "io").lower()
    if normalized != "io":
        raise ValueError(f"Unsupported executor policy '{policy}'")
    if workers <= 1:
        return None, False
    return (
        futures.ThreadPoolExecutor(max_workers=workers, thread_name_prefix=_THREAD_NAME_PREFIX),
        True,
    )
