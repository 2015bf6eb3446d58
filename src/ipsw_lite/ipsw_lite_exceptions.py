"""
Exceptions raised by ipsw_lite.

Every failure is fatal to a run; the CLI is the only place they are caught.
"""


class IpswLiteException(Exception):
    """
    Base class for all ipsw_lite errors.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(IpswLiteException):
    """Raised when the run configuration is incomplete or invalid."""


class NotSupported(IpswLiteException):
    """Raised when the target identifier is absent from the build manifest."""

    def __init__(self, identifier: str):
        super().__init__(f"The IPSW specified does not support this device ({identifier})")
        self.identifier = identifier


class InvalidManifest(IpswLiteException):
    """Raised when the build manifest cannot be decoded."""


class TransportError(IpswLiteException):
    """Raised on network failures while reading remote data."""


class LookupFailed(TransportError):
    """Raised when the firmware lookup service cannot resolve a download URL."""


class CorruptArchive(IpswLiteException):
    """Raised when the remote archive's structure or compressed data is unreadable."""


class MemberNotFound(IpswLiteException):
    """Raised when a required member is absent from the remote archive."""

    def __init__(self, member_name: str, url: str):
        super().__init__(f"File {member_name} not found in {url}")
        self.member_name = member_name
        self.url = url


class LocalIOError(IpswLiteException):
    """Raised on local filesystem failures while staging or packaging."""


class ArchiveWriteError(IpswLiteException):
    """Raised when the output archive structure cannot be written."""


class FetchCancelled(IpswLiteException):
    """Raised when a fetch is abandoned because another fetch of the same run failed."""
