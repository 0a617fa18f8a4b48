"""Testing utilities for exercising copy planning without a real storage backend.

Provides :class:`FakeBackend`, an in-memory tree of files and directories that
implements the backend contracts, with hooks to inject stat, listing, and
client construction failures and a log of every backend call.
"""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from ..cancellation import CancellationToken
from ..clients import ClientBackend
from ..errors import (
    ClientInitError,
    ObjectMissingError,
    OperationCancelledError,
    SourceNotFoundError,
    TracedError,
    UnsupportedOperationError,
)
from ..models import EPOCH, Content, ContentType, DirOpt, ListOptions, Location, as_utc

__all__ = ["FakeBackend", "FakeClient"]


def _key(alias: str, path: str) -> str:
    path = path.replace("\\", "/").strip("/")
    if not alias:
        return path
    return f"{alias}/{path}" if path else alias


class FakeClient:
    """Client over one URL of a :class:`FakeBackend`."""

    def __init__(self, backend: "FakeBackend", url: Location) -> None:
        self.backend = backend
        self.url = url
        self._key = _key(url.alias, url.path)

    def stat(
        self,
        token: CancellationToken,
        *,
        version_id: str = "",
        follow_links: bool = False,
        enc_keys: Sequence[str] = (),
        time_ref: Optional[datetime] = None,
        archive_mode: bool = False,
    ) -> Content:
        self.backend._record("stat", self.url.url)
        if token.is_cancelled():
            raise OperationCancelledError("stat cancelled")
        if archive_mode:
            raise UnsupportedOperationError("archive mode is not supported by this backend")
        injected = self.backend.stat_errors.get(self._key)
        if injected is not None:
            raise injected
        content = self.backend.entries.get(self._key)
        if content is None:
            raise SourceNotFoundError("Object does not exist")
        if version_id and content.version_id != version_id:
            raise SourceNotFoundError(f"Version {version_id} does not exist")
        if time_ref is not None and as_utc(content.time) > as_utc(time_ref):
            raise SourceNotFoundError("Object did not exist at the reference time")
        return content

    def list(self, token: CancellationToken, options: ListOptions) -> Iterator[Content]:
        self.backend._record("list", self.url.url)
        if options.archive_mode:
            yield Content.from_error(
                self.url, UnsupportedOperationError("archive mode is not supported")
            )
            return
        root = self.backend.entries.get(self._key)
        if root is None:
            yield Content.from_error(self.url, ObjectMissingError("Object does not exist"))
            return

        emitted = 0
        for content in self._walk(root, options):
            if token.is_cancelled():
                return
            if (
                content.error is None
                and options.time_ref is not None
                and as_utc(content.time) > as_utc(options.time_ref)
            ):
                continue
            yield content
            emitted += 1
            if options.max_entries is not None and emitted >= options.max_entries:
                return

    def _walk(self, root: Content, options: ListOptions) -> Iterator[Content]:
        if not root.type.is_dir:
            yield root
            return
        pending = [self._key]
        while pending:
            current = pending.pop()
            children = self.backend.children(current)
            dirs = [child for child in children if child.type.is_dir]
            files = [child for child in children if not child.type.is_dir]
            if options.show_dirs is DirOpt.FIRST:
                yield from dirs
            for child in files:
                error = self.backend.list_errors.get(_key(child.location.alias, child.path))
                if error is not None:
                    yield Content.from_error(child.location, error)
                    continue
                yield child
            if options.show_dirs is DirOpt.LAST:
                yield from dirs
            if options.recursive:
                pending.extend(
                    _key(child.location.alias, child.path) for child in reversed(dirs)
                )


class FakeBackend(ClientBackend):
    """In-memory :class:`~BucketCopy.CopyPlanning.clients.Backend`.

    Examples:
        >>> backend = FakeBackend(aliases=["play"])
        >>> backend.add_file("play/bucket/dir/a.txt")
        >>> backend.resolve_alias("play/bucket/dir")
        ('play', 'bucket/dir')
    """

    def __init__(self, aliases: Iterable[str] = ()) -> None:
        self.aliases = tuple(aliases)
        self.entries: Dict[str, Content] = {}
        self.stat_errors: Dict[str, TracedError] = {}
        self.list_errors: Dict[str, TracedError] = {}
        self.client_errors: Dict[str, TracedError] = {}
        self.calls: List[Tuple[str, str]] = []
        self._lock = threading.Lock()

    def _record(self, operation: str, url: str) -> None:
        with self._lock:
            self.calls.append((operation, url))

    def resolve_alias(self, url: str) -> Tuple[str, str]:
        head, sep, rest = url.partition("/")
        if head in self.aliases:
            return head, rest if sep else ""
        return "", url

    def new_client(self, url: str) -> FakeClient:
        self._record("new_client", url)
        alias, path = self.resolve_alias(url)
        injected = self.client_errors.get(_key(alias, path))
        if injected is not None:
            raise injected
        return FakeClient(self, Location(alias=alias, path=path))

    def _add(self, url: str, kind: ContentType, **fields) -> Content:
        alias, path = self.resolve_alias(url)
        path = path.strip("/")
        parts = path.split("/") if path else []
        for depth in range(len(parts)):
            parent = "/".join(parts[:depth])
            parent_key = _key(alias, parent)
            if parent_key and parent_key not in self.entries:
                self.entries[parent_key] = Content(
                    location=Location(alias=alias, path=parent, type=ContentType.DIRECTORY),
                    type=ContentType.DIRECTORY,
                )
        content = Content(location=Location(alias=alias, path=path, type=kind), type=kind, **fields)
        self.entries[_key(alias, path)] = content
        return content

    def add_file(
        self,
        url: str,
        *,
        size: int = 0,
        time: datetime = EPOCH,
        version_id: str = "",
    ) -> None:
        """Add a regular file, creating missing parent directories."""

        self._add(url, ContentType.FILE, size=size, time=time, version_id=version_id)

    def add_dir(self, url: str) -> None:
        self._add(url, ContentType.DIRECTORY)

    def add_entry(self, url: str, kind: ContentType) -> None:
        """Add an entry of any type, e.g. a symlink or special file."""

        self._add(url, kind)

    def fail_stat(self, url: str, error: TracedError) -> None:
        self.stat_errors[_key(*self.resolve_alias(url))] = error

    def fail_list_entry(self, url: str, error: TracedError) -> None:
        """Report ``error`` instead of the entry at ``url`` during listings."""

        self.list_errors[_key(*self.resolve_alias(url))] = error

    def fail_client(self, url: str, error: Optional[TracedError] = None) -> None:
        self.client_errors[_key(*self.resolve_alias(url))] = error or ClientInitError(
            "Unable to initialize client"
        )

    def children(self, key: str) -> List[Content]:
        """Return the direct children of the directory stored under ``key``."""

        prefix = f"{key}/" if key else ""
        found = []
        for child_key, content in self.entries.items():
            if child_key == key or not child_key.startswith(prefix):
                continue
            if "/" not in child_key[len(prefix):]:
                found.append(content)
        return sorted(found, key=lambda content: content.path)

    def operations(self, operation: str) -> List[str]:
        """Return the URLs recorded for ``operation``, in call order."""

        with self._lock:
            return [url for op, url in self.calls if op == operation]
