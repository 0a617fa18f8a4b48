# === NAVMAP v1 ===
# {
#   "module": "BucketCopy.CopyPlanning.clients",
#   "purpose": "Backend collaborator contracts (stat, list, directory test) and their fsspec implementation",
#   "sections": [
#     {"id": "client", "name": "Client", "anchor": "class-client", "kind": "class"},
#     {"id": "backend", "name": "Backend", "anchor": "class-backend", "kind": "class"},
#     {"id": "clientbackend", "name": "ClientBackend", "anchor": "class-clientbackend", "kind": "class"},
#     {"id": "fsspecclient", "name": "FsspecClient", "anchor": "class-fsspecclient", "kind": "class"},
#     {"id": "fsspecbackend", "name": "FsspecBackend", "anchor": "class-fsspecbackend", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Backend clients consumed by the classifier and the expanders.

The planning core only depends on the :class:`Backend` protocol.  This module
also ships :class:`FsspecBackend`, which reaches local paths and any fsspec
filesystem named in the alias table (``s3://``, ``memory://``, ...).  Listings
are produced lazily one directory at a time so arbitrarily large prefixes are
never materialised in full.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Mapping, Optional, Protocol, Sequence, Tuple

import fsspec
from fsspec.implementations.local import LocalFileSystem

from .aliases import AliasTable
from .cancellation import CancellationToken
from .errors import (
    ClientInitError,
    ListingError,
    ObjectMissingError,
    OperationCancelledError,
    SourceNotFoundError,
    TracedError,
    UnsupportedOperationError,
)
from .models import EPOCH, Content, ContentType, DirOpt, ListOptions, Location, as_utc

__all__ = [
    "Client",
    "Backend",
    "ClientBackend",
    "FsspecClient",
    "FsspecBackend",
]

logger = logging.getLogger(__name__)

EncKeys = Mapping[str, Sequence[str]]


class Client(Protocol):
    """Client bound to one source or target URL."""

    url: Location

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
        """Return the entry at :attr:`url`; raise :class:`TracedError` on failure."""

    def list(self, token: CancellationToken, options: ListOptions) -> Iterator[Content]:
        """Lazily enumerate entries under :attr:`url`; failures are embedded per entry."""


class Backend(Protocol):
    """Collaborators the planning core is injected with."""

    def resolve_alias(self, url: str) -> Tuple[str, str]:
        """Return ``(alias, backend-relative path)`` for ``url``."""

    def new_client(self, url: str) -> Client:
        """Return a client for ``url``; raise :class:`ClientInitError` on failure."""

    def stat(
        self,
        token: CancellationToken,
        url: str,
        version_id: str = "",
        follow_links: bool = False,
        enc_keys: Optional[EncKeys] = None,
        time_ref: Optional[datetime] = None,
        archive_mode: bool = False,
    ) -> Tuple[Location, Content]:
        """Stat one object."""

    def first_stat(
        self,
        token: CancellationToken,
        url: str,
        time_ref: Optional[datetime] = None,
        archive_mode: bool = False,
    ) -> Tuple[Location, Content]:
        """Return the first object found under ``url`` by a recursive listing."""

    def is_directory(
        self,
        token: CancellationToken,
        url: str,
        enc_keys: Optional[EncKeys] = None,
        time_ref: Optional[datetime] = None,
    ) -> bool:
        """Return ``True`` only when ``url`` exists and is a directory."""


class ClientBackend:
    """Implements stat, probe, and directory test on top of :meth:`new_client`."""

    def resolve_alias(self, url: str) -> Tuple[str, str]:  # pragma: no cover - abstract
        raise NotImplementedError

    def new_client(self, url: str) -> Client:  # pragma: no cover - abstract
        raise NotImplementedError

    def stat(
        self,
        token: CancellationToken,
        url: str,
        version_id: str = "",
        follow_links: bool = False,
        enc_keys: Optional[EncKeys] = None,
        time_ref: Optional[datetime] = None,
        archive_mode: bool = False,
    ) -> Tuple[Location, Content]:
        client = self.new_client(url)
        alias, _ = self.resolve_alias(url)
        try:
            content = client.stat(
                token,
                version_id=version_id,
                follow_links=follow_links,
                enc_keys=tuple((enc_keys or {}).get(alias, ())),
                time_ref=time_ref,
                archive_mode=archive_mode,
            )
        except TracedError as exc:
            raise exc.trace(url, operation="stat") from exc
        return client.url, content

    def first_stat(
        self,
        token: CancellationToken,
        url: str,
        time_ref: Optional[datetime] = None,
        archive_mode: bool = False,
    ) -> Tuple[Location, Content]:
        client = self.new_client(url)
        options = ListOptions(
            recursive=True, time_ref=time_ref, archive_mode=archive_mode, max_entries=1
        )
        entries = client.list(token, options)
        try:
            content = next(iter(entries), None)
        finally:
            close = getattr(entries, "close", None)
            if close is not None:
                close()
        if content is None:
            raise ObjectMissingError("Unable to find any object").trace(url, operation="probe")
        if content.error is not None:
            raise content.error.trace(url, operation="probe")
        return client.url, content

    def is_directory(
        self,
        token: CancellationToken,
        url: str,
        enc_keys: Optional[EncKeys] = None,
        time_ref: Optional[datetime] = None,
    ) -> bool:
        try:
            _, content = self.stat(token, url, enc_keys=enc_keys, time_ref=time_ref)
        except TracedError as exc:
            logger.debug("treating %s as not a directory: %s", url, exc)
            return False
        return content.type.is_dir


def _info_type(info: Mapping[str, Any]) -> ContentType:
    kind = str(info.get("type", "")).lower()
    if kind in {"directory", "dir", "bucket"}:
        return ContentType.DIRECTORY
    if kind == "file":
        return ContentType.FILE
    if kind in {"link", "symlink"}:
        return ContentType.SYMLINK
    return ContentType.OTHER


def _info_time(info: Mapping[str, Any]) -> datetime:
    for key in ("mtime", "LastModified", "last_modified", "modified", "updated", "created"):
        value = info.get(key)
        if value is None:
            continue
        if isinstance(value, datetime):
            return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(float(value), tz=timezone.utc)
        if isinstance(value, str):
            try:
                parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError:
                continue
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return EPOCH


def _info_version(info: Mapping[str, Any]) -> str:
    value = info.get("VersionId") or info.get("version_id") or ""
    return "" if value == "null" else str(value)


class FsspecClient:
    """:class:`Client` backed by an fsspec filesystem.

    ``root`` is the filesystem path the alias points at; entry paths are
    reported relative to it, in the same terms as :attr:`url`.
    """

    def __init__(self, url: Location, fs: "fsspec.AbstractFileSystem", root: str = "") -> None:
        self.url = url
        self.fs = fs
        self._root = root
        self._full_path = self._backend_path(url.path)

    def _backend_path(self, path: str) -> str:
        path = path.replace(self.url.separator, "/") if self.url.separator != "/" else path
        if self._root:
            joined = self._root.rstrip("/") + "/" + path.lstrip("/")
        else:
            joined = path
        stripped = self.fs._strip_protocol(joined) if joined else self.fs.root_marker
        return stripped.rstrip("/") or stripped

    def _location_for(self, name: str, kind: ContentType) -> Location:
        full = self.fs._strip_protocol(name).rstrip("/")
        remainder = full[len(self._full_path):] if full.startswith(self._full_path) else full
        remainder = remainder.lstrip("/")
        separator = self.url.separator
        base = self.url.path.rstrip(separator)
        if not remainder:
            path = self.url.path
        elif base:
            path = base + separator + remainder.replace("/", separator)
        else:
            path = remainder.replace("/", separator)
        return Location(alias=self.url.alias, path=path, separator=separator, type=kind)

    def _content(self, info: Mapping[str, Any]) -> Content:
        kind = _info_type(info)
        return Content(
            location=self._location_for(str(info.get("name", self._full_path)), kind),
            type=kind,
            size=int(info.get("size") or 0),
            time=_info_time(info),
            version_id=_info_version(info),
        )

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
        """Stat :attr:`url`.

        ``enc_keys`` are accepted for interface parity; fsspec filesystems that
        support server-side encryption take their keys from storage options.
        """

        if token.is_cancelled():
            raise OperationCancelledError("stat cancelled")
        if archive_mode:
            raise UnsupportedOperationError("archive mode is not supported by this backend")
        kwargs: Dict[str, Any] = {}
        if version_id:
            # s3fs and gcsfs expose version_aware; other filesystems ignore the kwarg.
            if not getattr(self.fs, "version_aware", False):
                raise UnsupportedOperationError(
                    f"version selection is not supported by {type(self.fs).__name__}"
                )
            kwargs["version_id"] = version_id
        try:
            info = self.fs.info(self._full_path, **kwargs)
        except FileNotFoundError as exc:
            raise SourceNotFoundError("Object does not exist") from exc
        except OSError as exc:
            raise SourceNotFoundError(f"Unable to stat: {exc}") from exc
        content = self._content(info)
        if time_ref is not None and content.time > as_utc(time_ref):
            raise SourceNotFoundError("Object did not exist at the reference time")
        return content

    def list(self, token: CancellationToken, options: ListOptions) -> Iterator[Content]:
        """Yield entries under :attr:`url` lazily, in per-directory name order."""

        if options.archive_mode:
            yield self._error(
                UnsupportedOperationError("archive mode is not supported by this backend")
            )
            return
        try:
            info = self.fs.info(self._full_path)
        except FileNotFoundError:
            yield self._error(ObjectMissingError("Object does not exist"))
            return
        except OSError as exc:
            yield self._error(ListingError(f"Unable to list: {exc}"))
            return

        emitted = 0
        for content in self._iter_entries(info, options):
            if token.is_cancelled():
                return
            if content.error is None and not self._visible(content, options):
                continue
            yield content
            emitted += 1
            if options.max_entries is not None and emitted >= options.max_entries:
                return

    def _iter_entries(self, info: Mapping[str, Any], options: ListOptions) -> Iterator[Content]:
        if _info_type(info) is not ContentType.DIRECTORY:
            yield self._content(info)
            return
        pending = [self._full_path]
        while pending:
            current = pending.pop()
            try:
                listing = self.fs.ls(current, detail=True)
            except OSError as exc:
                yield self._error(
                    ListingError(f"Unable to list: {exc}").trace(current, operation="list")
                )
                continue
            dirs: List[Mapping[str, Any]] = []
            files: List[Mapping[str, Any]] = []
            for entry in sorted(listing, key=lambda item: str(item.get("name", ""))):
                name = self.fs._strip_protocol(str(entry.get("name", ""))).rstrip("/")
                if name == current:
                    continue
                if _info_type(entry) is ContentType.DIRECTORY:
                    dirs.append(entry)
                else:
                    files.append(entry)
            if options.show_dirs is DirOpt.FIRST:
                for entry in dirs:
                    yield self._content(entry)
            for entry in files:
                yield self._content(entry)
            if options.show_dirs is DirOpt.LAST:
                for entry in dirs:
                    yield self._content(entry)
            if options.recursive:
                # Depth-first, in name order.
                pending.extend(
                    self.fs._strip_protocol(str(entry["name"])).rstrip("/")
                    for entry in reversed(dirs)
                )

    def _visible(self, content: Content, options: ListOptions) -> bool:
        if options.time_ref is not None and content.time > as_utc(options.time_ref):
            return False
        return True

    def _error(self, error: TracedError) -> Content:
        return Content.from_error(self.url, error)


class FsspecBackend(ClientBackend):
    """:class:`Backend` resolving aliases through an :class:`AliasTable`."""

    def __init__(self, aliases: Optional[AliasTable] = None) -> None:
        self.aliases = aliases or AliasTable()

    def resolve_alias(self, url: str) -> Tuple[str, str]:
        return self.aliases.resolve(url)

    def new_client(self, url: str) -> FsspecClient:
        alias, path = self.resolve_alias(url)
        if not alias:
            location = Location(alias="", path=path, separator=os.sep)
            return FsspecClient(location, LocalFileSystem())
        entry = self.aliases.entry(alias)
        try:
            fs, root = fsspec.core.url_to_fs(entry.url, **entry.storage_options)
        except (ImportError, ValueError, OSError) as exc:
            raise ClientInitError(f"Unable to initialize client for alias {alias}: {exc}").trace(
                url, operation="new_client"
            ) from exc
        return FsspecClient(Location(alias=alias, path=path, separator="/"), fs, root)
