# === NAVMAP v1 ===
# {
#   "module": "BucketCopy.CopyPlanning.paths",
#   "purpose": "Forward-slash path helpers and the target rewriting rules for file-into-directory and recursive copies",
#   "sections": [
#     {"id": "to-slash", "name": "to_slash", "anchor": "function-to-slash", "kind": "function"},
#     {"id": "join-path", "name": "join_path", "anchor": "function-join-path", "kind": "function"},
#     {"id": "base-name", "name": "base_name", "anchor": "function-base-name", "kind": "function"},
#     {"id": "file-into-directory", "name": "file_into_directory", "anchor": "function-file-into-directory", "kind": "function"},
#     {"id": "target-suffix", "name": "target_suffix", "anchor": "function-target-suffix", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Path rewriting helpers.

Target paths are always forward-slash normalized regardless of the host's
path conventions, so a copy planned on Windows names the same object keys as
one planned on Linux.
"""

from __future__ import annotations

import posixpath

__all__ = [
    "SUFFIX_STRIP_MIN_INDEX",
    "to_slash",
    "join_path",
    "base_name",
    "file_into_directory",
    "target_suffix",
]

# A source whose last separator sits at index 0 or 1 ("/bucket", "a/b")
# or that has no separator at all keeps the listed path verbatim.
SUFFIX_STRIP_MIN_INDEX = 1


def to_slash(path: str, separator: str = "/") -> str:
    """Replace ``separator`` (and backslashes) with forward slashes."""

    if separator != "/":
        path = path.replace(separator, "/")
    return path.replace("\\", "/")


def join_path(base: str, suffix: str) -> str:
    """Join ``suffix`` onto ``base`` with exactly one forward slash between them.

    Examples:
        >>> join_path("bucket2/out", "/dir1/sub/file.txt")
        'bucket2/out/dir1/sub/file.txt'
        >>> join_path("bucket/", "dir/a.txt")
        'bucket/dir/a.txt'
    """

    base = to_slash(base)
    suffix = to_slash(suffix).lstrip("/")
    if base.endswith("/"):
        return base + suffix
    return f"{base}/{suffix}"


def base_name(path: str, separator: str = "/") -> str:
    """Return the last non-empty component of ``path``."""

    normalized = to_slash(path, separator).rstrip("/")
    if not normalized:
        return "/"
    return posixpath.basename(normalized)


def file_into_directory(directory: str, source_path: str, separator: str = "/") -> str:
    """Return the target path for copying ``source_path`` into ``directory``.

    Examples:
        >>> file_into_directory("d/e", "a/b/c.txt")
        'd/e/c.txt'
    """

    joined = posixpath.join(to_slash(directory), base_name(source_path, separator))
    return posixpath.normpath(joined)


def target_suffix(source_path: str, separator: str, entry_path: str) -> str:
    """Return the part of ``entry_path`` that is recreated under the target.

    ``source_path`` is the alias-stripped path of the source argument itself,
    not the listing root and not the entry.  Everything up to (excluding) its
    last separator is trimmed from ``entry_path`` so the last component of the
    source argument is kept; a trailing separator on the source argument is
    ignored.  When that separator sits at an index of
    ``SUFFIX_STRIP_MIN_INDEX`` or lower, ``entry_path`` is returned unchanged.

    Examples:
        >>> target_suffix("bucket/dir1", "/", "bucket/dir1/sub/file.txt")
        '/dir1/sub/file.txt'
        >>> target_suffix("bucket", "/", "bucket/file.txt")
        'bucket/file.txt'
    """

    suffix = to_slash(entry_path, separator)
    source_path = source_path.rstrip(separator) or source_path
    index = source_path.rfind(separator)
    if index > SUFFIX_STRIP_MIN_INDEX:
        prefix = to_slash(source_path[:index], separator)
        if suffix.startswith(prefix):
            suffix = suffix[len(prefix):]
    return suffix
