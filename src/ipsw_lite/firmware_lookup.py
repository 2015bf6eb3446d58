"""
Resolves a device and build ID to an IPSW download URL through a lookup service.

The default endpoint follows the ipsw.me v4 API:
GET https://api.ipsw.me/v4/ipsw/{device}/{build_id} -> {"url": "...", ...}
"""

import logging
from typing import Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from ipsw_lite.ipsw_lite_config import DEFAULT_LOOKUP_URL, DEFAULT_TIMEOUT
from ipsw_lite.ipsw_lite_exceptions import LookupFailed
from ipsw_lite.ipsw_lite_logger import IpswLiteLogger


class FirmwareRecord(BaseModel):
    """Firmware description returned by the lookup service."""

    url: str = Field(..., description="Download URL of the IPSW")
    identifier: Optional[str] = None
    build_id: Optional[str] = Field(None, alias="buildid")
    version: Optional[str] = None
    filesize: Optional[int] = None

    class Config:
        extra = "allow"
        populate_by_name = True


class FirmwareLookup:
    """
    Client for the firmware lookup service.

    Args:
        logger: Logger for progress messages
        lookup_url: URL template with {device} and {build_id} placeholders
        timeout: Per-request deadline in seconds
        transport: Optional custom transport (useful for testing)
    """

    def __init__(
        self,
        logger: IpswLiteLogger,
        lookup_url: str = DEFAULT_LOOKUP_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.logger = logger
        self.lookup_url = lookup_url
        self.timeout = timeout
        self.transport = transport

    def lookup(self, device: str, build_id: str) -> FirmwareRecord:
        """
        Fetch the firmware record for a device and build.

        Raises:
            LookupFailed: On network errors, error statuses or an unexpected body
        """
        url = self.lookup_url.format(device=device, build_id=build_id)
        self.logger.log(f"Looking up {device} build {build_id} at {url}", logging.INFO)

        try:
            with httpx.Client(
                timeout=self.timeout, follow_redirects=True, transport=self.transport
            ) as client:
                response = client.get(url, headers={"Accept": "application/json"})
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            raise LookupFailed(f"Unable to look up {device} build {build_id}: {e}") from e
        except ValueError as e:
            raise LookupFailed(
                f"Lookup service returned invalid JSON for {device} build {build_id}"
            ) from e

        try:
            return FirmwareRecord.model_validate(payload)
        except ValidationError as e:
            raise LookupFailed(
                f"Lookup service returned no URL for {device} build {build_id}: {e}"
            ) from e

    def resolve_url(self, device: str, build_id: str) -> str:
        """Get the IPSW download URL for a device and build."""
        record = self.lookup(device, build_id)
        self.logger.log(f"Resolved {device} build {build_id} to {record.url}", logging.INFO)
        return record.url
