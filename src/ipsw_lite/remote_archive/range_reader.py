"""
Random-access reader over HTTP byte ranges.

HttpRangeReader exposes a remote resource as a seekable, read-only raw stream, so that
it can be handed to anything expecting a file object (zipfile in particular).
"""

import io
import logging
import re
from typing import Optional

import httpx

from ipsw_lite.ipsw_lite_config import DEFAULT_TIMEOUT
from ipsw_lite.ipsw_lite_exceptions import TransportError
from ipsw_lite.ipsw_lite_logger import IpswLiteLogger

CONTENT_RANGE_RE = re.compile(r"^bytes\s+(\d+)-(\d+)/(\d+|\*)$")

# Range arithmetic is meaningless on a content-encoded body.
DEFAULT_HEADERS = {"Accept-Encoding": "identity"}


class HttpRangeReader(io.RawIOBase):
    """
    Seekable raw stream over a remote resource.

    Every read turns into a single GET with a Range header covering exactly the
    requested span. Wrap in io.BufferedReader to coalesce small reads.

    Args:
        url: Absolute URL of the resource
        logger: Logger for request tracing
        timeout: Per-request deadline in seconds
        transport: Optional custom transport (useful for testing)
    """

    def __init__(
        self,
        url: str,
        logger: IpswLiteLogger,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        super().__init__()
        self.url = url
        self.logger = logger
        self._client = httpx.Client(
            headers=DEFAULT_HEADERS,
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )
        self._position = 0
        self._length: Optional[int] = None

    @property
    def length(self) -> int:
        """Total size of the remote resource in bytes."""
        if self._length is None:
            self._length = self._fetch_length()
        return self._length

    def _fetch_length(self) -> int:
        try:
            response = self._client.head(self.url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise TransportError(f"Unable to query {self.url}: {e}") from e

        content_length = response.headers.get("content-length")
        if content_length is not None and content_length.isdigit():
            self.logger.log(f"{self.url} is {content_length} bytes", logging.DEBUG)
            return int(content_length)

        # Some servers omit Content-Length on HEAD; ask for a single byte instead.
        try:
            with self._client.stream("GET", self.url, headers={"Range": "bytes=0-0"}) as response:
                response.raise_for_status()
                content_range = response.headers.get("content-range", "")
        except httpx.HTTPError as e:
            raise TransportError(f"Unable to query {self.url}: {e}") from e

        match = CONTENT_RANGE_RE.match(content_range.strip())
        if response.status_code != 206 or match is None or match.group(3) == "*":
            raise TransportError(f"Unable to determine the size of {self.url}")
        return int(match.group(3))

    def read_range(self, start: int, end: int) -> bytes:
        """
        Read bytes start..end (inclusive) of the resource.

        Raises:
            TransportError: On network failure, a non-range response or a short body
        """
        expected = end - start + 1
        whole_resource = start == 0 and end == self.length - 1
        self.logger.log(f"Requesting bytes {start}-{end} of {self.url}", logging.DEBUG)

        try:
            with self._client.stream(
                "GET", self.url, headers={"Range": f"bytes={start}-{end}"}
            ) as response:
                response.raise_for_status()
                if response.status_code != 206 and not (
                    response.status_code == 200 and whole_resource
                ):
                    raise TransportError(
                        f"{self.url} does not support range requests "
                        f"(status {response.status_code})"
                    )
                data = response.read()
        except httpx.HTTPError as e:
            raise TransportError(f"Unable to read bytes {start}-{end} of {self.url}: {e}") from e

        if len(data) != expected:
            raise TransportError(
                f"Short read from {self.url}: expected {expected} bytes, got {len(data)}"
            )
        return data

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        return self._position

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        if whence == io.SEEK_SET:
            position = offset
        elif whence == io.SEEK_CUR:
            position = self._position + offset
        elif whence == io.SEEK_END:
            position = self.length + offset
        else:
            raise ValueError(f"Invalid whence: {whence}")

        if position < 0:
            raise ValueError(f"Negative seek position {position}")
        self._position = position
        return self._position

    def readinto(self, buffer) -> int:
        size = len(buffer)
        if size == 0 or self._position >= self.length:
            return 0

        end = min(self._position + size, self.length) - 1
        data = self.read_range(self._position, end)
        buffer[: len(data)] = data
        self._position += len(data)
        return len(data)

    def close(self) -> None:
        if not self.closed:
            self._client.close()
        super().close()
