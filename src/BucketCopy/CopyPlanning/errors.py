# === NAVMAP v1 ===
# {
#   "module": "BucketCopy.CopyPlanning.errors",
#   "purpose": "Define the traced exception hierarchy used across copy classification and job expansion",
#   "sections": [
#     {"id": "base", "name": "Base Exceptions", "anchor": "BAS", "kind": "api"},
#     {"id": "trace", "name": "Traced Errors", "anchor": "TRC", "kind": "api"},
#     {"id": "source", "name": "Source & Listing Errors", "anchor": "SRC", "kind": "api"},
#     {"id": "configuration", "name": "Configuration Errors", "anchor": "CFG", "kind": "api"}
#   ]
# }
# === /NAVMAP ===

"""Exception hierarchy shared across copy classification, expansion, and filtering.

Copy planning touches alias resolution, backend stat and listing calls, and
path rewriting.  Most failures are expected and frequent (a missing object, an
unreadable directory in the middle of a listing) so they travel through the job
stream as values rather than unwinding the generator that produced them.  Each
error therefore carries an ordered trace of the operations and URLs that led to
it, so callers can print a causal path instead of a bare message.

Only :class:`InvalidArgumentError` raised by the classifier is fatal to an
invocation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, TypeVar

__all__ = [
    "CopyPlanningError",
    "TraceEntry",
    "TracedError",
    "InvalidArgumentError",
    "SourceNotFoundError",
    "ObjectMissingError",
    "InvalidSourceError",
    "SourceIsDirectoryError",
    "ListingError",
    "ClientInitError",
    "UnsupportedOperationError",
    "OperationCancelledError",
    "UserConfigError",
    "ConfigError",
]

_E = TypeVar("_E", bound="TracedError")


class CopyPlanningError(RuntimeError):
    """Base exception for copy classification and job preparation failures."""


@dataclass(frozen=True)
class TraceEntry:
    """One hop in the causal path of a :class:`TracedError`."""

    operation: str
    locations: Tuple[str, ...] = ()

    def render(self) -> str:
        if not self.locations:
            return self.operation
        return f"{self.operation}({', '.join(self.locations)})"


class TracedError(CopyPlanningError):
    """Error value carrying an ordered trace of (operation, locations) entries.

    ``trace`` never mutates the receiver; it returns a copy with one more entry
    so the same error can be shared safely between pipeline stages.

    Examples:
        >>> err = ObjectMissingError("object does not exist").trace("play/bucket/a.txt")
        >>> err.entries[0].locations
        ('play/bucket/a.txt',)
    """

    def __init__(self, message: str, *, entries: Tuple[TraceEntry, ...] = ()) -> None:
        super().__init__(message)
        self.message = message
        self.entries = tuple(entries)

    def trace(self: _E, *locations: str, operation: str = "trace") -> _E:
        """Return a copy of this error with ``locations`` appended to the trace."""

        clone = self._copy()
        clone.entries = self.entries + (TraceEntry(operation, tuple(locations)),)
        return clone

    def _copy(self: _E) -> _E:
        clone = self.__class__.__new__(self.__class__)
        clone.__dict__.update(self.__dict__)
        clone.args = self.args
        clone.__cause__ = self.__cause__
        return clone

    @property
    def locations(self) -> Tuple[str, ...]:
        """Every location named in the trace, oldest first, without duplicates."""

        seen: list[str] = []
        for entry in self.entries:
            for location in entry.locations:
                if location not in seen:
                    seen.append(location)
        return tuple(seen)

    def __str__(self) -> str:
        if not self.entries:
            return self.message
        path = " <- ".join(entry.render() for entry in reversed(self.entries))
        return f"{self.message} [{path}]"


class InvalidArgumentError(TracedError):
    """Raised when an invocation matches none of the four copy shapes."""


class SourceNotFoundError(TracedError):
    """Raised when a source cannot be stat'ed (missing object, access denied)."""


class ObjectMissingError(SourceNotFoundError):
    """Raised when a recursive probe finds no object under a prefix."""


class InvalidSourceError(TracedError):
    """Raised when a source exists but is not a regular file."""

    def __init__(self, url: str, *, entries: Tuple[TraceEntry, ...] = ()) -> None:
        super().__init__(f"Invalid source {url}.", entries=entries)
        self.url = url


class SourceIsDirectoryError(InvalidSourceError):
    """Raised when a single-file copy into a directory names a directory source."""

    def __init__(self, url: str, *, entries: Tuple[TraceEntry, ...] = ()) -> None:
        TracedError.__init__(
            self,
            f"Source {url} is a folder. Use --recursive to copy folders.",
            entries=entries,
        )
        self.url = url


class ListingError(TracedError):
    """Raised for one failing entry inside an otherwise successful listing."""


class ClientInitError(TracedError):
    """Raised when a backend client cannot be constructed for a URL."""


class UnsupportedOperationError(TracedError):
    """Raised when a backend cannot honour a request option."""


class OperationCancelledError(TracedError):
    """Raised by backend calls that observe a cancelled token."""


class UserConfigError(CopyPlanningError):
    """Raised when CLI arguments or YAML alias configuration inputs are invalid."""


# Name used for alias file failures.
ConfigError = UserConfigError
