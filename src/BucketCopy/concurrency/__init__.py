# === NAVMAP v1 ===
# {
#   "module": "BucketCopy.concurrency.__init__",
#   "purpose": "Concurrency helpers shared across BucketCopy components.",
#   "sections": []
# }
# === /NAVMAP ===

"""
Concurrency helpers shared across BucketCopy components.

Exposes :func:`create_executor`, which maps an execution policy onto a pool
implementation so callers never construct pools directly.
"""

from .executors import create_executor

__all__ = ["create_executor"]
