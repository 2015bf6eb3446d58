"""
Local archive builder.

Packages the staging tree into the final restore archive.
"""

from .builder import ArchiveBuilder

__all__ = ["ArchiveBuilder"]
