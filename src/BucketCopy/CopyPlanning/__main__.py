# === NAVMAP v1 ===
# {
#   "module": "BucketCopy.CopyPlanning.__main__",
#   "purpose": "Entry point for CLI invocation via python -m.",
#   "sections": []
# }
# === /NAVMAP ===

"""Entry point for CLI invocation via python -m."""

from BucketCopy.CopyPlanning.cli import app

if __name__ == "__main__":
    app()
