"""
Remote archive access.

This package handles:
1. Random-access reads of a remote resource through HTTP range requests
2. Parsing the central directory of a remote ZIP archive
3. Streaming a single member's decompressed bytes to a local sink
"""

from .range_reader import HttpRangeReader
from .remote_archive import RemoteArchive, RemoteArchiveEntry, RemoteArchiveIndex

__all__ = ["HttpRangeReader", "RemoteArchive", "RemoteArchiveEntry", "RemoteArchiveIndex"]
