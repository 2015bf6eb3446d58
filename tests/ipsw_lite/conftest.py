"""
Shared fixtures: in-memory ZIP archives served over httpx.MockTransport with Range support.
"""

import io
import plistlib
import re
import zipfile
from typing import Dict, List, Optional, Tuple

import httpx
import pytest

from ipsw_lite.ipsw_lite_logger import IpswLiteLogger

RANGE_RE = re.compile(r"^bytes=(\d+)-(\d+)$")

ARCHIVE_URL = "https://firmware.example.test/iPhone4,1_6.1.3_10B329_Restore.ipsw"


def make_zip(
    members: Dict[str, bytes], compression: int = zipfile.ZIP_DEFLATED
) -> bytes:
    """Build a ZIP archive in memory."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=compression) as zf:
        for name, data in members.items():
            zf.writestr(name, data)
    return buffer.getvalue()


class RangeServer:
    """
    Serves a single resource, honoring Range headers, and records what was asked for.
    """

    def __init__(
        self,
        data: bytes,
        support_ranges: bool = True,
        head_content_length: bool = True,
        status_code: int = 200,
    ):
        self.data = data
        self.support_ranges = support_ranges
        self.head_content_length = head_content_length
        self.status_code = status_code
        self.requests: List[Tuple[str, Optional[str]]] = []
        self.bytes_served = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        range_header = request.headers.get("range")
        self.requests.append((request.method, range_header))

        if self.status_code != 200:
            return httpx.Response(self.status_code)

        if request.method == "HEAD":
            headers = {"Accept-Ranges": "bytes"}
            if self.head_content_length:
                headers["Content-Length"] = str(len(self.data))
            return httpx.Response(200, headers=headers)

        match = RANGE_RE.match(range_header or "")
        if self.support_ranges and match:
            start, end = int(match.group(1)), int(match.group(2))
            if start >= len(self.data):
                return httpx.Response(416)
            end = min(end, len(self.data) - 1)
            body = self.data[start : end + 1]
            self.bytes_served += len(body)
            return httpx.Response(
                206,
                content=body,
                headers={"Content-Range": f"bytes {start}-{end}/{len(self.data)}"},
            )

        self.bytes_served += len(self.data)
        return httpx.Response(200, content=self.data)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def manifest_plist(
    supported_product_types: List[str],
    manifests: List[Dict[str, str]],
    product_version: str = "6.1.3",
    product_build_version: str = "10B329",
) -> bytes:
    """Build a BuildManifest.plist with one identity per manifest mapping."""
    return plistlib.dumps(
        {
            "ProductVersion": product_version,
            "ProductBuildVersion": product_build_version,
            "SupportedProductTypes": supported_product_types,
            "BuildIdentities": [
                {
                    "Info": {"BuildNumber": product_build_version, "DeviceClass": "n94ap"},
                    "Manifest": {
                        name: {"Info": {"Path": path}, "Digest": b"\x00\x01"}
                        for name, path in manifest.items()
                    },
                }
                for manifest in manifests
            ],
        }
    )


@pytest.fixture
def logger():
    return IpswLiteLogger()


@pytest.fixture
def ipsw_members():
    """Contents of a small fake IPSW supporting iPhone4,1 and iPhone3,1."""
    return {
        "BuildManifest.plist": manifest_plist(
            ["iPhone4,1", "iPhone3,1"],
            [
                {
                    "KernelCache": "kernelcache.release.n94",
                    "RestoreRamDisk": "048-2441-005.dmg",
                    "LLB": "Firmware/all_flash/all_flash.n94ap.production/LLB.n94ap.RELEASE.img3",
                    "Unused": "",
                },
                {"KernelCache": "kernelcache.release.n90"},
            ],
        ),
        "Restore.plist": b"<plist>restore</plist>" * 10,
        "kernelcache.release.n94": b"n94 kernel " * 5000,
        "kernelcache.release.n90": b"n90 kernel " * 5000,
        "048-2441-005.dmg": bytes(range(256)) * 400,
        "Firmware/all_flash/all_flash.n94ap.production/LLB.n94ap.RELEASE.img3": b"llb" * 100,
        "Firmware/all_flash/all_flash.n90ap.production/LLB.n90ap.RELEASE.img3": b"llb90" * 100,
    }


@pytest.fixture
def ipsw_server(ipsw_members):
    return RangeServer(make_zip(ipsw_members))
