# === NAVMAP v1 ===
# {
#   "module": "BucketCopy.CopyPlanning.pipeline",
#   "purpose": "Classify an invocation and stream its copy jobs through the generate and filter stages",
#   "sections": [
#     {"id": "log-with-extra", "name": "_log_with_extra", "anchor": "function-log-with-extra", "kind": "function"},
#     {"id": "dispatch", "name": "Copy type dispatch", "anchor": "DSP", "kind": "api"},
#     {"id": "copyjobstream", "name": "CopyJobStream", "anchor": "class-copyjobstream", "kind": "class"},
#     {"id": "prepare-copy-jobs", "name": "prepare_copy_jobs", "anchor": "function-prepare-copy-jobs", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Copy job preparation pipeline.

:func:`prepare_copy_jobs` is the only entry point the transfer stage needs.  It
classifies the invocation synchronously, so an invalid shape raises before any
thread starts, and then returns a :class:`CopyJobStream` backed by two threads:

``copy-plan-generate``
    runs the expander for the detected copy type and sends every job,
    including error jobs, into an intermediate channel.
``copy-plan-filter``
    applies the ``--older-than``/``--newer-than`` bounds to successful jobs and
    forwards survivors (and every error job) to the output channel.

Both channels are bounded, so listing never runs far ahead of the consumer.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Iterable, Iterator, List, Mapping, Optional

from .cancellation import CancellationToken
from .channels import Channel
from .classify import guess_copy_type
from .clients import Backend
from .errors import InvalidArgumentError
from .expanders import iter_type_c, iter_type_d, prepare_type_a, prepare_type_b
from .logging_utils import generate_correlation_id
from .models import Classification, CopyJob, CopyType, RequestOptions
from .settings import CopyPlanningSettings, get_settings
from .timefilter import TimeBounds, keep_job

__all__ = ["CopyJobStream", "StreamStats", "prepare_copy_jobs"]

logger = logging.getLogger(__name__)

GENERATE_THREAD_NAME = "copy-plan-generate"
FILTER_THREAD_NAME = "copy-plan-filter"


def _log_with_extra(
    log: logging.Logger | logging.LoggerAdapter,
    level: int,
    message: str,
    extra: Mapping[str, object],
) -> None:
    """Log ``message`` with structured ``extra`` supporting LoggerAdapters."""

    if isinstance(log, logging.LoggerAdapter):
        adapter_extra = getattr(log, "extra", None)
        merged: dict[str, object] = dict(adapter_extra or {})
        merged.update(extra)
        log.logger.log(level, message, extra=merged)
        return
    log.log(level, message, extra=extra)


# --- Copy type dispatch ---

JobSource = Callable[
    [CancellationToken, RequestOptions, Classification, Backend, CopyPlanningSettings],
    Iterable[CopyJob],
]


def _jobs_type_a(
    token: CancellationToken,
    options: RequestOptions,
    classification: Classification,
    backend: Backend,
    settings: CopyPlanningSettings,
) -> Iterable[CopyJob]:
    return [
        prepare_type_a(
            token,
            backend,
            options.source_urls[0],
            classification.version_id,
            options.target_url,
            options.enc_keys,
            options.archive_mode,
        )
    ]


def _jobs_type_b(
    token: CancellationToken,
    options: RequestOptions,
    classification: Classification,
    backend: Backend,
    settings: CopyPlanningSettings,
) -> Iterable[CopyJob]:
    return [
        prepare_type_b(
            token,
            backend,
            options.source_urls[0],
            classification.version_id,
            options.target_url,
            options.enc_keys,
            options.archive_mode,
        )
    ]


def _jobs_type_c(
    token: CancellationToken,
    options: RequestOptions,
    classification: Classification,
    backend: Backend,
    settings: CopyPlanningSettings,
) -> Iterable[CopyJob]:
    return iter_type_c(
        token,
        backend,
        options.source_urls[0],
        options.target_url,
        time_ref=options.time_ref,
        archive_mode=options.archive_mode,
    )


def _jobs_type_d(
    token: CancellationToken,
    options: RequestOptions,
    classification: Classification,
    backend: Backend,
    settings: CopyPlanningSettings,
) -> Iterable[CopyJob]:
    return iter_type_d(
        token,
        backend,
        options.source_urls,
        options.target_url,
        time_ref=options.time_ref,
        source_concurrency=settings.source_concurrency,
        channel_capacity=settings.channel_capacity,
        poll_interval=settings.poll_interval,
    )


_DISPATCH: Dict[CopyType, JobSource] = {
    CopyType.A: _jobs_type_a,
    CopyType.B: _jobs_type_b,
    CopyType.C: _jobs_type_c,
    CopyType.D: _jobs_type_d,
}


def _job_source(classification: Classification, options: RequestOptions) -> JobSource:
    try:
        return _DISPATCH[classification.copy_type]
    except KeyError:
        raise InvalidArgumentError(
            f"Unable to prepare copy jobs for copy type {classification.copy_type.value}"
        ).trace(*options.source_urls, options.target_url, operation="dispatch") from None


# --- Job stream ---


@dataclass
class StreamStats:
    """Counters maintained by the pipeline threads."""

    generated: int = 0
    emitted: int = 0
    dropped: int = 0
    errors: int = 0


class CopyJobStream:
    """Iterable of :class:`CopyJob` produced by a running pipeline.

    Iterate it once.  Leaving iteration early, calling :meth:`close`, or
    exiting the ``with`` block cancels both stages and joins their threads.

    Examples:
        >>> with prepare_copy_jobs(options, backend) as jobs:  # doctest: +SKIP
        ...     for job in jobs:
        ...         print(job.source_url, "->", job.target_url)
    """

    def __init__(
        self,
        *,
        classification: Classification,
        token: CancellationToken,
        job_source: Callable[[CancellationToken], Iterable[CopyJob]],
        bounds: TimeBounds,
        settings: CopyPlanningSettings,
        log: logging.Logger | logging.LoggerAdapter,
    ) -> None:
        self.classification = classification
        self.stats = StreamStats()
        self._token = token
        self._job_source = job_source
        self._bounds = bounds
        self._join_timeout = settings.join_timeout
        self._log = log
        self._generated: Channel[CopyJob] = Channel(
            token,
            capacity=settings.channel_capacity,
            poll_interval=settings.poll_interval,
            name="generated",
        )
        self._output: Channel[CopyJob] = Channel(
            token,
            capacity=settings.channel_capacity,
            poll_interval=settings.poll_interval,
            name="filtered",
        )
        self._failures: List[Exception] = []
        self._closed = False
        self._close_lock = threading.Lock()
        self._threads = [
            threading.Thread(target=self._generate, name=GENERATE_THREAD_NAME, daemon=True),
            threading.Thread(target=self._filter, name=FILTER_THREAD_NAME, daemon=True),
        ]

    @property
    def copy_type(self) -> CopyType:
        return self.classification.copy_type

    @property
    def threads(self) -> tuple[threading.Thread, ...]:
        return tuple(self._threads)

    def start(self) -> "CopyJobStream":
        for thread in self._threads:
            thread.start()
        return self

    def _generate(self) -> None:
        jobs: Optional[Iterable[CopyJob]] = None
        try:
            jobs = self._job_source(self._token)
            for job in jobs:
                if not self._generated.send(job):
                    return
                self.stats.generated += 1
        except Exception as exc:  # noqa: BLE001 - re-raised in the consuming thread
            self._failures.append(exc)
            _log_with_extra(
                self._log,
                logging.ERROR,
                f"job generation failed: {exc}",
                {"stage": "generate"},
            )
        finally:
            close = getattr(jobs, "close", None)
            if close is not None:
                close()
            self._generated.close()

    def _filter(self) -> None:
        try:
            for job in self._generated:
                if job.error is not None:
                    self.stats.errors += 1
                    _log_with_extra(
                        self._log,
                        logging.WARNING,
                        f"copy job error: {job.error}",
                        {
                            "stage": "filter",
                            "extra_fields": {"locations": list(job.error.locations)},
                        },
                    )
                elif not keep_job(job, self._bounds):
                    self.stats.dropped += 1
                    _log_with_extra(
                        self._log,
                        logging.DEBUG,
                        "dropped by time filter",
                        {"stage": "filter", "extra_fields": {"source": job.source_url}},
                    )
                    continue
                if not self._output.send(job):
                    return
                self.stats.emitted += 1
        finally:
            # Unblock a generator still waiting to hand over a job.
            self._generated.abandon()
            if not self._token.is_cancelled():
                _log_with_extra(
                    self._log,
                    logging.INFO,
                    "copy job preparation finished",
                    {
                        "stage": "filter",
                        "extra_fields": {
                            "generated": self.stats.generated,
                            "emitted": self.stats.emitted,
                            "dropped": self.stats.dropped,
                            "errors": self.stats.errors,
                        },
                    },
                )
            self._output.close()

    def __iter__(self) -> Iterator[CopyJob]:
        try:
            yield from self._output
        finally:
            self.close()
        if self._failures:
            raise self._failures[0]

    def __enter__(self) -> "CopyJobStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Cancel both stages and wait up to ``join_timeout`` for their threads."""

        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        self._token.cancel()
        self._output.abandon()
        self._generated.abandon()
        current = threading.current_thread()
        for thread in self._threads:
            if thread is current or not thread.is_alive():
                continue
            thread.join(self._join_timeout)
            if thread.is_alive():
                _log_with_extra(
                    self._log,
                    logging.WARNING,
                    f"pipeline thread {thread.name} did not stop within {self._join_timeout}s",
                    {"stage": "close"},
                )


def prepare_copy_jobs(
    options: RequestOptions,
    backend: Backend,
    *,
    token: Optional[CancellationToken] = None,
    settings: Optional[CopyPlanningSettings] = None,
    now: Optional[datetime] = None,
    correlation_id: Optional[str] = None,
) -> CopyJobStream:
    """Classify ``options`` and start streaming its copy jobs.

    Args:
        options: Per-invocation request options.
        backend: Collaborators used for alias resolution, stat, and listing.
        token: Caller's cancellation token; the stream derives a child of it.
        settings: Pipeline tuning; defaults to :func:`get_settings`.
        now: Reference time for the age filter, resolved once per invocation.
        correlation_id: Identifier attached to every log record of this run.

    Returns:
        CopyJobStream: started stream; iterate it or use it as a context manager.

    Raises:
        InvalidArgumentError: the invocation matches none of the copy shapes.
        TracedError: the single source could not be probed.
        UserConfigError: a time bound is malformed.
    """

    active_settings = settings or get_settings()
    parent = token or CancellationToken()
    log = logging.LoggerAdapter(
        logger, extra={"correlation_id": correlation_id or generate_correlation_id()}
    )

    bounds = TimeBounds.resolve(options.older_than, options.newer_than, now=now)
    classification = guess_copy_type(parent, options, backend)
    handler = _job_source(classification, options)
    _log_with_extra(
        log,
        logging.INFO,
        f"classified copy as type {classification.copy_type.value}",
        {
            "stage": "classify",
            "extra_fields": {
                "copy_type": classification.copy_type.value,
                "sources": list(options.source_urls),
                "target": options.target_url,
            },
        },
    )

    stream_token = parent.child()

    def _source(active: CancellationToken) -> Iterable[CopyJob]:
        return handler(active, options, classification, backend, active_settings)

    stream = CopyJobStream(
        classification=classification,
        token=stream_token,
        job_source=_source,
        bounds=bounds,
        settings=active_settings,
        log=log,
    )
    return stream.start()
