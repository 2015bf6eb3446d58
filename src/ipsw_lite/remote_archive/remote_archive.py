"""
Partial reads of a remote ZIP archive.

Only the central directory and the data region of the requested member are fetched;
the rest of the archive never crosses the network.
"""

import contextlib
import io
import logging
import threading
import zipfile
import zlib
from dataclasses import dataclass, field
from typing import BinaryIO, Iterator, List, Optional

import httpx

from ipsw_lite.ipsw_lite_config import DEFAULT_BUFFER_SIZE, DEFAULT_TIMEOUT
from ipsw_lite.ipsw_lite_exceptions import (
    CorruptArchive,
    FetchCancelled,
    MemberNotFound,
)
from ipsw_lite.ipsw_lite_logger import IpswLiteLogger
from ipsw_lite.remote_archive.range_reader import HttpRangeReader

ZIP_FLAG_ENCRYPTED = 0x1


@dataclass(frozen=True)
class RemoteArchiveEntry:
    """One member as recorded in the remote archive's central directory."""

    name: str
    header_offset: int
    compressed_size: int
    uncompressed_size: int
    compression_method: int
    crc32: int
    zip_info: zipfile.ZipInfo = field(repr=False, compare=False)

    @classmethod
    def from_zip_info(cls, info: zipfile.ZipInfo) -> "RemoteArchiveEntry":
        return cls(
            name=info.filename,
            header_offset=info.header_offset,
            compressed_size=info.compress_size,
            uncompressed_size=info.file_size,
            compression_method=info.compress_type,
            crc32=info.CRC,
            zip_info=info,
        )


class RemoteArchiveIndex:
    """
    Parsed central directory of a remote archive, in directory order.
    """

    def __init__(self, entries: List[RemoteArchiveEntry]):
        self.entries = entries

    @classmethod
    def from_zipfile(cls, zf: zipfile.ZipFile) -> "RemoteArchiveIndex":
        return cls([RemoteArchiveEntry.from_zip_info(info) for info in zf.infolist()])

    def find(self, name: str) -> Optional[RemoteArchiveEntry]:
        """Return the first entry whose name equals `name` exactly, or None."""
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None

    def names(self) -> List[str]:
        return [entry.name for entry in self.entries]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[RemoteArchiveEntry]:
        return iter(self.entries)


class RemoteArchive:
    """
    A ZIP archive addressed by URL.

    Each operation opens its own HttpRangeReader, so one RemoteArchive may be shared
    between threads.

    Args:
        url: Absolute URL of the archive
        logger: Logger for progress messages
        buffer_size: Chunk size used when copying a member to its sink
        timeout: Per-request deadline in seconds
        transport: Optional custom transport (useful for testing)
    """

    def __init__(
        self,
        url: str,
        logger: IpswLiteLogger,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.url = url
        self.logger = logger
        self.buffer_size = buffer_size
        self.timeout = timeout
        self.transport = transport

    @contextlib.contextmanager
    def _open(self) -> Iterator[zipfile.ZipFile]:
        reader = HttpRangeReader(
            self.url, self.logger, timeout=self.timeout, transport=self.transport
        )
        buffered = io.BufferedReader(reader, buffer_size=self.buffer_size)
        try:
            try:
                zf = zipfile.ZipFile(buffered)
            except (zipfile.BadZipFile, EOFError, ValueError) as e:
                raise CorruptArchive(
                    f"Unable to read central directory of {self.url}: {e}"
                ) from e
            with zf:
                yield zf
        finally:
            buffered.close()

    def index(self) -> RemoteArchiveIndex:
        """
        Fetch and parse the archive's central directory.
        """
        with self._open() as zf:
            index = RemoteArchiveIndex.from_zipfile(zf)
        self.logger.log(f"{self.url} lists {len(index)} entries", logging.DEBUG)
        return index

    def fetch(
        self,
        member_name: str,
        sink: BinaryIO,
        cancel_event: Optional[threading.Event] = None,
    ) -> int:
        """
        Stream the decompressed bytes of one member into `sink`.

        Nothing is written to `sink` unless the member exists.

        Args:
            member_name: Exact name of the member in the central directory
            sink: Writable binary file object
            cancel_event: When set, the copy stops before its next chunk

        Returns:
            Number of bytes written, always the member's uncompressed size

        Raises:
            TransportError: On network failure
            CorruptArchive: If the directory or the member's data is unreadable
            MemberNotFound: If no entry is named `member_name`
            FetchCancelled: If `cancel_event` was set before the copy finished
        """
        with self._open() as zf:
            index = RemoteArchiveIndex.from_zipfile(zf)
            self.logger.log(f"{self.url} lists {len(index)} entries", logging.DEBUG)

            entry = index.find(member_name)
            if entry is None:
                raise MemberNotFound(member_name, self.url)

            return self._copy_entry(zf, entry, sink, cancel_event)

    def read_member(self, member_name: str) -> bytes:
        """Fetch one member fully into memory."""
        buffer = io.BytesIO()
        self.fetch(member_name, buffer)
        return buffer.getvalue()

    def _copy_entry(
        self,
        zf: zipfile.ZipFile,
        entry: RemoteArchiveEntry,
        sink: BinaryIO,
        cancel_event: Optional[threading.Event] = None,
    ) -> int:
        """
        Copy exactly entry.uncompressed_size bytes, never asking the member stream for
        more than remain.
        """
        if entry.zip_info.flag_bits & ZIP_FLAG_ENCRYPTED:
            raise CorruptArchive(f"{entry.name} is encrypted")

        filesize = entry.uncompressed_size
        downloaded = 0
        try:
            with zf.open(entry.zip_info, "r") as member:
                while downloaded < filesize:
                    if cancel_event is not None and cancel_event.is_set():
                        raise FetchCancelled(
                            f"Cancelled {entry.name} after {downloaded} of {filesize} bytes"
                        )
                    chunk = member.read(min(self.buffer_size, filesize - downloaded))
                    if not chunk:
                        raise CorruptArchive(
                            f"{entry.name} ended after {downloaded} of {filesize} bytes"
                        )
                    sink.write(chunk)
                    downloaded += len(chunk)
        except (zipfile.BadZipFile, zlib.error, EOFError) as e:
            raise CorruptArchive(f"Unable to decompress {entry.name}: {e}") from e
        except NotImplementedError as e:
            raise CorruptArchive(
                f"{entry.name} uses unsupported compression method {entry.compression_method}"
            ) from e

        return downloaded
