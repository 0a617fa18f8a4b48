# === NAVMAP v1 ===
# {
#   "module": "BucketCopy.CopyPlanning",
#   "purpose": "Package initialization for BucketCopy.CopyPlanning",
#   "sections": [
#     {"id": "getattr", "name": "__getattr__", "anchor": "function-getattr", "kind": "function"},
#     {"id": "dir", "name": "__dir__", "anchor": "function-dir", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Public API for BucketCopy copy planning.

This facade exposes the job-preparation stage of a bulk copy: classify an
invocation into one of four copy shapes, expand it into single-file copy jobs,
and stream those jobs through a time filter to the transfer stage.
"""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any, Dict, Tuple

__version__ = "0.1.0"

_EXPORTS: Dict[str, Tuple[str, str]] = {
    "prepare_copy_jobs": (".pipeline", "prepare_copy_jobs"),
    "CopyJobStream": (".pipeline", "CopyJobStream"),
    "guess_copy_type": (".classify", "guess_copy_type"),
    "CancellationToken": (".cancellation", "CancellationToken"),
    "CopyJob": (".models", "CopyJob"),
    "CopyType": (".models", "CopyType"),
    "Content": (".models", "Content"),
    "Location": (".models", "Location"),
    "RequestOptions": (".models", "RequestOptions"),
    "Backend": (".clients", "Backend"),
    "FsspecBackend": (".clients", "FsspecBackend"),
    "AliasTable": (".aliases", "AliasTable"),
    "TracedError": (".errors", "TracedError"),
    "InvalidArgumentError": (".errors", "InvalidArgumentError"),
}

__all__ = ["__version__", *_EXPORTS]

if TYPE_CHECKING:  # pragma: no cover - import for static analysis only
    from .aliases import AliasTable
    from .cancellation import CancellationToken
    from .classify import guess_copy_type
    from .clients import Backend, FsspecBackend
    from .errors import InvalidArgumentError, TracedError
    from .models import Content, CopyJob, CopyType, Location, RequestOptions
    from .pipeline import CopyJobStream, prepare_copy_jobs


def __getattr__(name: str) -> Any:
    """Lazily import API exports so the CLI can import ``__version__`` cheaply."""

    target = _EXPORTS.get(name)
    if target is None:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
    module = import_module(target[0], __name__)
    value = getattr(module, target[1])
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    """Expose lazily-populated attributes in ``dir()`` results."""

    return sorted(set(globals()) | set(_EXPORTS))
