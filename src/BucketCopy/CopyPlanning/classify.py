# === NAVMAP v1 ===
# {
#   "module": "BucketCopy.CopyPlanning.classify",
#   "purpose": "Decide which of the four copy shapes an invocation has",
#   "sections": [
#     {"id": "guess-copy-type", "name": "guess_copy_type", "anchor": "function-guess-copy-type", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Copy shape classification.

Every valid invocation reduces to repeated single-file copies (type A)::

    A: copy(f, f)         -> copy(f, f)
    B: copy(f, d)         -> copy(f, d/f)      -> A
    C: copy(d1..., d2)    -> []copy(f, d2/d1/f) -> []A
    D: copy([](f|d)..., d) -> []C

Invalid shapes are ``copy(d, f)``, ``copy(d..., f)`` and ``copy([](f|d)..., f)``.
Classification probes the backend once so that the expanders can report precise
failure causes.
"""

from __future__ import annotations

import logging

from .cancellation import CancellationToken
from .clients import Backend
from .errors import InvalidArgumentError, TracedError
from .models import Classification, CopyType, RequestOptions

__all__ = ["guess_copy_type"]

logger = logging.getLogger(__name__)


def guess_copy_type(
    token: CancellationToken, options: RequestOptions, backend: Backend
) -> Classification:
    """Return the classification of ``options``.

    Raises:
        TracedError: the probe of a single source failed.
        InvalidArgumentError: several sources were given and the target is not
            an existing directory.
    """

    if len(options.source_urls) == 1:
        source_url = options.source_urls[0]
        try:
            if not options.recursive:
                _, source = backend.stat(
                    token,
                    source_url,
                    version_id=options.version_id,
                    follow_links=False,
                    enc_keys=options.enc_keys,
                    time_ref=options.time_ref,
                    archive_mode=options.archive_mode,
                )
            else:
                _, source = backend.first_stat(
                    token,
                    source_url,
                    time_ref=options.time_ref,
                    archive_mode=options.archive_mode,
                )
        except TracedError as exc:
            raise exc.trace(source_url, operation="classify") from exc

        # Recursion wins even over a literal single file.
        if source.type.is_dir or options.recursive:
            return Classification(CopyType.C)

        if backend.is_directory(token, options.target_url, options.enc_keys, options.time_ref):
            return Classification(CopyType.B, source.version_id)
        return Classification(CopyType.A, source.version_id)

    if backend.is_directory(token, options.target_url, options.enc_keys, options.time_ref):
        return Classification(CopyType.D)

    logger.debug(
        "target is not an existing directory for a multi-source copy",
        extra={"stage": "classify", "extra_fields": {"target": options.target_url}},
    )
    raise InvalidArgumentError(
        f"Invalid arguments: target {options.target_url} must be an existing directory "
        "when copying multiple sources"
    ).trace(*options.source_urls, options.target_url, operation="classify")
