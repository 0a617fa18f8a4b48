# === NAVMAP v1 ===
# {
#   "module": "BucketCopy.CopyPlanning.expanders",
#   "purpose": "Expand each copy shape into single-file copy jobs with rewritten target paths",
#   "sections": [
#     {"id": "type-a", "name": "Type A: file to file", "anchor": "TYA", "kind": "api"},
#     {"id": "type-b", "name": "Type B: file into directory", "anchor": "TYB", "kind": "api"},
#     {"id": "type-c", "name": "Type C: recursive expansion", "anchor": "TYC", "kind": "api"},
#     {"id": "type-d", "name": "Type D: many sources into directory", "anchor": "TYD", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Job expanders, one per copy shape.

Types A and B return a single :class:`CopyJob`.  Types C and D are generators:
they pull from the backend listing lazily and yield one job per regular file,
so the full listing is never held in memory.  Failures become error jobs and
iteration continues with the next entry or source.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from datetime import datetime
from typing import Iterator, List, Optional, Sequence

from BucketCopy.concurrency import create_executor

from .cancellation import CancellationToken, CancellationTokenGroup
from .channels import DEFAULT_POLL_INTERVAL, Channel
from .clients import Backend, EncKeys
from .errors import InvalidSourceError, SourceIsDirectoryError, TracedError
from .models import Content, CopyJob, ListOptions, Location
from .paths import file_into_directory, join_path, target_suffix

__all__ = [
    "make_job_type_a",
    "prepare_type_a",
    "make_job_type_b",
    "prepare_type_b",
    "make_job_type_c",
    "iter_type_c",
    "iter_type_d",
]

logger = logging.getLogger(__name__)


# --- Type A ---


def make_job_type_a(
    source_alias: str, source_content: Content, target_alias: str, target_path: str
) -> CopyJob:
    """Build a job whose target is a bare location around ``target_path``.

    The target is not stat'ed; whether it exists is the transfer stage's concern.
    """

    target = Content(location=Location(alias=target_alias, path=target_path))
    return CopyJob(
        source_alias=source_alias,
        source_content=source_content,
        target_alias=target_alias,
        target_content=target,
    )


def _stat_source(
    token: CancellationToken,
    backend: Backend,
    source_url: str,
    version_id: str,
    enc_keys: Optional[EncKeys],
    archive_mode: bool,
) -> Content:
    _, content = backend.stat(
        token,
        source_url,
        version_id=version_id,
        follow_links=False,
        enc_keys=enc_keys,
        time_ref=None,
        archive_mode=archive_mode,
    )
    return content


def prepare_type_a(
    token: CancellationToken,
    backend: Backend,
    source_url: str,
    version_id: str,
    target_url: str,
    enc_keys: Optional[EncKeys] = None,
    archive_mode: bool = False,
) -> CopyJob:
    """copy(f, f): validate the source and pair it with ``target_url``."""

    source_alias, _ = backend.resolve_alias(source_url)
    target_alias, target_path = backend.resolve_alias(target_url)

    try:
        source = _stat_source(token, backend, source_url, version_id, enc_keys, archive_mode)
    except TracedError as exc:
        return CopyJob.from_error(exc.trace(source_url, operation="prepare"))
    if not source.type.is_regular:
        return CopyJob.from_error(
            InvalidSourceError(source_url).trace(source_url, operation="prepare")
        )
    return make_job_type_a(source_alias, source, target_alias, target_path)


# --- Type B ---


def make_job_type_b(
    source_alias: str, source_content: Content, target_alias: str, target_path: str
) -> CopyJob:
    """Append the source's base name to the target directory, then build a Type A job."""

    location = source_content.location
    path = file_into_directory(target_path, location.path, location.separator)
    return make_job_type_a(source_alias, source_content, target_alias, path)


def prepare_type_b(
    token: CancellationToken,
    backend: Backend,
    source_url: str,
    version_id: str,
    target_url: str,
    enc_keys: Optional[EncKeys] = None,
    archive_mode: bool = False,
) -> CopyJob:
    """copy(f, d): the target is known to be an existing directory."""

    source_alias, _ = backend.resolve_alias(source_url)
    target_alias, target_path = backend.resolve_alias(target_url)

    try:
        source = _stat_source(token, backend, source_url, version_id, enc_keys, archive_mode)
    except TracedError as exc:
        return CopyJob.from_error(exc.trace(source_url, operation="prepare"))
    if not source.type.is_regular:
        if source.type.is_dir:
            return CopyJob.from_error(
                SourceIsDirectoryError(source_url).trace(source_url, operation="prepare")
            )
        return CopyJob.from_error(
            InvalidSourceError(source_url).trace(source_url, operation="prepare")
        )
    return make_job_type_b(source_alias, source, target_alias, target_path)


# --- Type C ---


def make_job_type_c(
    source_alias: str,
    source_url: Location,
    source_content: Content,
    target_alias: str,
    target_path: str,
) -> CopyJob:
    """Rewrite ``source_content``'s path under ``target_path``.

    ``source_url`` is the location of the source argument (the client URL), not
    of the listed entry.
    """

    suffix = target_suffix(
        source_url.path, source_url.separator, source_content.location.path
    )
    return make_job_type_a(
        source_alias, source_content, target_alias, join_path(target_path, suffix)
    )


def iter_type_c(
    token: CancellationToken,
    backend: Backend,
    source_url: str,
    target_url: str,
    *,
    time_ref: Optional[datetime] = None,
    archive_mode: bool = False,
) -> Iterator[CopyJob]:
    """copy(d1..., d2): yield one job per regular file listed under ``source_url``."""

    source_alias, _ = backend.resolve_alias(source_url)
    target_alias, target_path = backend.resolve_alias(target_url)

    try:
        client = backend.new_client(source_url)
    except TracedError as exc:
        yield CopyJob.from_error(exc.trace(source_url, operation="new_client"))
        return

    options = ListOptions(recursive=True, time_ref=time_ref, archive_mode=archive_mode)
    for content in client.list(token, options):
        if content.error is not None:
            logger.warning(
                "listing entry failed: %s",
                content.error,
                extra={"stage": "expand", "extra_fields": {"source": source_url}},
            )
            yield CopyJob.from_error(content.error.trace(client.url.url, operation="list"))
            continue
        if not content.type.is_regular:
            # Directories are implied by the files they contain.
            continue
        yield make_job_type_c(source_alias, client.url, content, target_alias, target_path)


# --- Type D ---


def iter_type_d(
    token: CancellationToken,
    backend: Backend,
    source_urls: Sequence[str],
    target_url: str,
    *,
    time_ref: Optional[datetime] = None,
    source_concurrency: int = 1,
    channel_capacity: int = 1,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> Iterator[CopyJob]:
    """copy([](f|d)..., d): run Type C per source, in argument order.

    With ``source_concurrency > 1`` up to that many sources are listed ahead in
    a thread pool; their jobs are still yielded source by source, so the output
    order is identical to the sequential order.
    """

    if source_concurrency <= 1 or len(source_urls) <= 1:
        for source_url in source_urls:
            if token.is_cancelled():
                return
            yield from iter_type_c(token, backend, source_url, target_url, time_ref=time_ref)
        return

    yield from _iter_type_d_fanout(
        token,
        backend,
        source_urls,
        target_url,
        time_ref=time_ref,
        workers=source_concurrency,
        capacity=channel_capacity,
        poll_interval=poll_interval,
    )


def _iter_type_d_fanout(
    token: CancellationToken,
    backend: Backend,
    source_urls: Sequence[str],
    target_url: str,
    *,
    time_ref: Optional[datetime],
    workers: int,
    capacity: int,
    poll_interval: float,
) -> Iterator[CopyJob]:
    group = CancellationTokenGroup()
    channels: List[Channel[CopyJob]] = []
    futures: List[Future[None]] = []
    executor, needs_shutdown = create_executor("io", min(workers, len(source_urls)))
    if executor is None:
        raise ValueError("fan-out requires more than one worker")

    def _produce(
        source_url: str, channel: Channel[CopyJob], source_token: CancellationToken
    ) -> None:
        jobs = iter_type_c(source_token, backend, source_url, target_url, time_ref=time_ref)
        try:
            for job in jobs:
                if not channel.send(job):
                    return
        finally:
            jobs.close()
            channel.close()
            group.remove_token(source_token)

    try:
        for index, source_url in enumerate(source_urls):
            source_token = group.create_token(parent=token)
            channel: Channel[CopyJob] = Channel(
                source_token,
                capacity=capacity,
                poll_interval=poll_interval,
                name=f"type-d-{index}",
            )
            channels.append(channel)
            futures.append(executor.submit(_produce, source_url, channel, source_token))

        for channel, future in zip(channels, futures):
            yield from channel
            if token.is_cancelled():
                return
            # Surface unexpected producer failures in the consuming thread.
            future.result()
    finally:
        group.cancel_all()
        for channel in channels:
            channel.abandon()
        if needs_shutdown:
            executor.shutdown(wait=True, cancel_futures=True)
