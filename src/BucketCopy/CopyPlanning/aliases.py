# === NAVMAP v1 ===
# {
#   "module": "BucketCopy.CopyPlanning.aliases",
#   "purpose": "Load the alias table from YAML and resolve aliased URLs to backend-relative paths",
#   "sections": [
#     {"id": "aliasentry", "name": "AliasEntry", "anchor": "class-aliasentry", "kind": "class"},
#     {"id": "aliasconfig", "name": "AliasConfig", "anchor": "class-aliasconfig", "kind": "class"},
#     {"id": "load-alias-config", "name": "load_alias_config", "anchor": "function-load-alias-config", "kind": "function"},
#     {"id": "aliastable", "name": "AliasTable", "anchor": "class-aliastable", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Alias table for aliased URLs.

An alias is the first component of a URL such as ``play/bucket/key``; it names
an fsspec root URL plus the storage options used to reach it.  A URL whose first
component is not a configured alias is a local filesystem path.

Example ``aliases.yaml``::

    aliases:
      play:
        url: s3://
        storage_options:
          anon: true
      scratch:
        url: memory://scratch
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import UserConfigError

__all__ = ["AliasEntry", "AliasConfig", "AliasTable", "load_alias_config"]

logger = logging.getLogger(__name__)


class AliasEntry(BaseModel):
    """Backend endpoint bound to an alias."""

    url: str = Field(description="fsspec root URL, e.g. s3:// or memory://scratch")
    storage_options: Dict[str, Any] = Field(default_factory=dict)

    model_config = {"extra": "forbid", "frozen": True}


class AliasConfig(BaseModel):
    aliases: Dict[str, AliasEntry] = Field(default_factory=dict)

    @field_validator("aliases")
    @classmethod
    def validate_names(cls, value: Dict[str, AliasEntry]) -> Dict[str, AliasEntry]:
        for name in value:
            if not name or "/" in name or "\\" in name:
                raise ValueError(f"invalid alias name {name!r}")
        return value

    model_config = {"extra": "forbid"}


def load_alias_config(path: Optional[Path]) -> AliasConfig:
    """Parse ``path`` into an :class:`AliasConfig`; a missing file yields no aliases.

    Raises:
        UserConfigError: when the file is not valid YAML or fails validation.
    """

    if path is None or not Path(path).exists():
        logger.debug("alias file not found, only local paths are addressable: %s", path)
        return AliasConfig()
    try:
        raw = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise UserConfigError(f"Invalid YAML in alias file {path}: {exc}") from exc
    if not isinstance(raw, Mapping):
        raise UserConfigError(f"Alias file {path} must contain a mapping")
    try:
        return AliasConfig.model_validate(dict(raw))
    except PydanticValidationError as exc:
        raise UserConfigError(f"Invalid alias file {path}: {exc}") from exc


class AliasTable:
    """Read-only lookup from alias names to backend endpoints."""

    def __init__(self, config: Optional[AliasConfig] = None) -> None:
        self._aliases: Dict[str, AliasEntry] = dict((config or AliasConfig()).aliases)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str]) -> "AliasTable":
        """Build a table from ``{alias: url}`` pairs without storage options."""

        entries = {name: AliasEntry(url=url) for name, url in mapping.items()}
        return cls(AliasConfig(aliases=entries))

    def __contains__(self, alias: object) -> bool:
        return alias in self._aliases

    def names(self) -> Tuple[str, ...]:
        return tuple(sorted(self._aliases))

    def entry(self, alias: str) -> AliasEntry:
        return self._aliases[alias]

    def resolve(self, url: str) -> Tuple[str, str]:
        """Split ``url`` into ``(alias, backend-relative path)``.

        Local paths resolve to an empty alias and are returned unchanged.

        Examples:
            >>> AliasTable.from_mapping({"play": "memory://"}).resolve("play/bucket/a.txt")
            ('play', 'bucket/a.txt')
            >>> AliasTable().resolve("dir/a.txt")
            ('', 'dir/a.txt')
        """

        head, sep, rest = url.replace("\\", "/").partition("/")
        if head in self._aliases:
            return head, rest if sep else ""
        return "", url
