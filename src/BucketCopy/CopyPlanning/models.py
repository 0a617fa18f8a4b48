# === NAVMAP v1 ===
# {
#   "module": "BucketCopy.CopyPlanning.models",
#   "purpose": "Immutable records describing locations, listing entries, copy jobs, and invocation options",
#   "sections": [
#     {"id": "contenttype", "name": "ContentType", "anchor": "class-contenttype", "kind": "class"},
#     {"id": "location", "name": "Location", "anchor": "class-location", "kind": "class"},
#     {"id": "content", "name": "Content", "anchor": "class-content", "kind": "class"},
#     {"id": "copyjob", "name": "CopyJob", "anchor": "class-copyjob", "kind": "class"},
#     {"id": "copytype", "name": "CopyType", "anchor": "class-copytype", "kind": "class"},
#     {"id": "classification", "name": "Classification", "anchor": "class-classification", "kind": "class"},
#     {"id": "listoptions", "name": "ListOptions", "anchor": "class-listoptions", "kind": "class"},
#     {"id": "requestoptions", "name": "RequestOptions", "anchor": "class-requestoptions", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Data model for copy planning.

All records are frozen dataclasses: a :class:`Content` is produced by a backend
stat or list call and never changed afterwards, and a :class:`CopyJob` only
exists while it travels from an expander to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Sequence, Tuple

from .errors import TracedError

__all__ = [
    "EPOCH",
    "as_utc",
    "ContentType",
    "Location",
    "Content",
    "CopyJob",
    "CopyType",
    "Classification",
    "DirOpt",
    "ListOptions",
    "RequestOptions",
]

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ContentType(str, Enum):
    """Observed type of a backend entry."""

    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    OTHER = "other"
    ABSENT = "absent"

    @property
    def is_regular(self) -> bool:
        return self is ContentType.FILE

    @property
    def is_dir(self) -> bool:
        return self is ContentType.DIRECTORY


@dataclass(frozen=True)
class Location:
    """Parsed, alias-stripped address of an entry on one backend."""

    alias: str
    path: str
    separator: str = "/"
    type: ContentType = ContentType.ABSENT

    @property
    def url(self) -> str:
        """Render the aliased URL form (``alias/path`` or a bare local path)."""

        if not self.alias:
            return self.path
        return f"{self.alias}/{self.path.lstrip(self.separator)}"

    def __str__(self) -> str:
        return self.url


@dataclass(frozen=True)
class Content:
    """Description of one backend entry as reported by stat or list."""

    location: Location
    type: ContentType = ContentType.FILE
    size: int = 0
    time: datetime = EPOCH
    version_id: str = ""
    error: Optional[TracedError] = None

    @property
    def path(self) -> str:
        return self.location.path

    @classmethod
    def from_error(cls, location: Location, error: TracedError) -> "Content":
        """Return a listing entry that only carries ``error``."""

        return cls(location=location, type=ContentType.ABSENT, error=error)


@dataclass(frozen=True)
class CopyJob:
    """A resolved single-file (source, target) copy unit, or an error.

    Exactly one of ``source_content`` and ``error`` is populated.
    """

    source_alias: str = ""
    source_content: Optional[Content] = None
    target_alias: str = ""
    target_content: Optional[Content] = None
    error: Optional[TracedError] = None

    def __post_init__(self) -> None:
        if (self.source_content is None) == (self.error is None):
            raise ValueError("CopyJob requires exactly one of source_content or error")
        if self.error is None and self.target_content is None:
            raise ValueError("successful CopyJob requires target_content")

    @classmethod
    def from_error(cls, error: TracedError) -> "CopyJob":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def source_url(self) -> Optional[str]:
        if self.source_content is None:
            return None
        return self.source_content.location.url

    @property
    def target_url(self) -> Optional[str]:
        if self.target_content is None:
            return None
        return self.target_content.location.url


class CopyType(str, Enum):
    """Canonical invocation shapes.

    A: copy(f, f); B: copy(f, d) -> copy(f, d/f); C: copy(d..., d2) -> []A;
    D: copy([]f|d, d) -> []C.
    """

    INVALID = "invalid"
    A = "A"
    B = "B"
    C = "C"
    D = "D"


@dataclass(frozen=True)
class Classification:
    copy_type: CopyType
    version_id: str = ""


class DirOpt(str, Enum):
    """Whether directories appear as listing entries, and where."""

    NONE = "none"
    FIRST = "first"
    LAST = "last"


@dataclass(frozen=True)
class ListOptions:
    recursive: bool = True
    time_ref: Optional[datetime] = None
    show_dirs: DirOpt = DirOpt.NONE
    archive_mode: bool = False
    max_entries: Optional[int] = None


@dataclass(frozen=True)
class RequestOptions:
    """Per-invocation option bundle, built once by the caller.

    ``enc_keys`` maps an alias or path prefix to its key material; it is only
    passed through to backend calls.  ``older_than`` and ``newer_than`` are
    duration strings resolved once per invocation by
    :class:`~BucketCopy.CopyPlanning.timefilter.TimeBounds`.
    """

    source_urls: Tuple[str, ...]
    target_url: str
    recursive: bool = False
    enc_keys: Mapping[str, Sequence[str]] = field(default_factory=dict)
    older_than: str = ""
    newer_than: str = ""
    time_ref: Optional[datetime] = None
    version_id: str = ""
    archive_mode: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.source_urls, str):
            object.__setattr__(self, "source_urls", (self.source_urls,))
        else:
            object.__setattr__(self, "source_urls", tuple(self.source_urls))
        if not self.source_urls:
            raise ValueError("RequestOptions requires at least one source URL")
        if not self.target_url:
            raise ValueError("RequestOptions requires a target URL")
        object.__setattr__(self, "enc_keys", MappingProxyType(dict(self.enc_keys)))
