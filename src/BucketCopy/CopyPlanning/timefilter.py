# === NAVMAP v1 ===
# {
#   "module": "BucketCopy.CopyPlanning.timefilter",
#   "purpose": "Parse --older-than/--newer-than durations and evaluate the modification-time filter",
#   "sections": [
#     {"id": "parse-duration", "name": "parse_duration", "anchor": "function-parse-duration", "kind": "function"},
#     {"id": "timebounds", "name": "TimeBounds", "anchor": "class-timebounds", "kind": "class"},
#     {"id": "keep-job", "name": "keep_job", "anchor": "function-keep-job", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Modification-time bounds for the filter stage.

``--older-than 7d`` keeps objects that are at least seven days old and
``--newer-than 7d`` keeps objects younger than seven days.  Both bound strings
are resolved against a single reference ``now`` when the invocation starts, so
the filter compares timestamps only and is idempotent.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from .errors import UserConfigError
from .models import CopyJob, as_utc

__all__ = ["parse_duration", "TimeBounds", "is_older", "is_newer", "keep_job"]

_DURATION_PATTERN = re.compile(r"^(?:(\d+)d)?(?:(\d+)h)?(?:(\d+)m)?(?:(\d+)s)?$")


def parse_duration(value: str) -> timedelta:
    """Convert a duration such as ``7d10h31s`` into a :class:`timedelta`.

    Raises:
        UserConfigError: when ``value`` is empty or malformed.
    """

    text = (value or "").strip().lower()
    match = _DURATION_PATTERN.match(text)
    if not text or not match:
        raise UserConfigError(f"Invalid duration '{value}'; expected e.g. 7d10h31s")
    days, hours, minutes, seconds = (int(part) if part else 0 for part in match.groups())
    return timedelta(days=days, hours=hours, minutes=minutes, seconds=seconds)


@dataclass(frozen=True)
class TimeBounds:
    """Resolved filter bounds.

    ``upper`` comes from ``older_than`` (objects modified after it are dropped);
    ``lower`` comes from ``newer_than`` (objects modified at or before it are
    dropped).
    """

    upper: Optional[datetime] = None
    lower: Optional[datetime] = None

    @classmethod
    def resolve(
        cls,
        older_than: str = "",
        newer_than: str = "",
        *,
        now: Optional[datetime] = None,
    ) -> "TimeBounds":
        reference = as_utc(now or datetime.now(timezone.utc))
        upper = reference - parse_duration(older_than) if older_than else None
        lower = reference - parse_duration(newer_than) if newer_than else None
        return cls(upper=upper, lower=lower)

    @property
    def active(self) -> bool:
        return self.upper is not None or self.lower is not None


def is_older(time: datetime, bounds: TimeBounds) -> bool:
    """Return ``True`` when ``time`` is too recent to satisfy ``--older-than``."""

    return bounds.upper is not None and as_utc(time) > bounds.upper


def is_newer(time: datetime, bounds: TimeBounds) -> bool:
    """Return ``True`` when ``time`` is too old to satisfy ``--newer-than``."""

    return bounds.lower is not None and as_utc(time) <= bounds.lower


def keep_job(job: CopyJob, bounds: TimeBounds) -> bool:
    """Decide whether ``job`` survives the filter stage; error jobs always do."""

    if job.error is not None or job.source_content is None:
        return True
    time = job.source_content.time
    if is_older(time, bounds):
        return False
    if is_newer(time, bounds):
        return False
    return True
