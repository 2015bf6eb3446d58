"""
Builds a Restore Lite IPSW: fetch the build manifest out of a remote IPSW, pick the
build identity for the target device, stage only its files and repackage them.
"""

import logging
import os
from typing import Optional

import httpx

from ipsw_lite.archive_builder import ArchiveBuilder
from ipsw_lite.build_manifest_models import (
    BUILD_MANIFEST_PATH,
    BuildManifest,
    required_files,
    restore_lite_filename,
    select_build_identity,
)
from ipsw_lite.firmware_lookup import FirmwareLookup
from ipsw_lite.ipsw_lite_config import IpswLiteConfig
from ipsw_lite.ipsw_lite_exceptions import IpswLiteException, LocalIOError
from ipsw_lite.ipsw_lite_logger import IpswLiteLogger
from ipsw_lite.remote_archive import RemoteArchive
from ipsw_lite.staging import StagingFetcher


class IpswLite:
    """
    Runs the whole Restore Lite pipeline for one configuration.

    Example usage:
    ```python
    config = IpswLiteConfig(identifier="iPhone4,1", url="https://.../iPhone4,1_6.1.3_10B329_Restore.ipsw")
    output_path = IpswLite(config, IpswLiteLogger()).run()
    ```
    """

    def __init__(
        self,
        config: IpswLiteConfig,
        logger: IpswLiteLogger,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.config = config
        self.logger = logger
        self.transport = transport

    def resolve_url(self) -> str:
        """The IPSW URL, looked up from device and build ID when none was given."""
        if self.config.url:
            return self.config.url

        lookup = FirmwareLookup(
            self.logger,
            lookup_url=self.config.lookup_url,
            timeout=self.config.timeout,
            transport=self.transport,
        )
        return lookup.resolve_url(self.config.device, self.config.build_id)

    def fetch_build_manifest(self, url: str) -> BuildManifest:
        """Read BuildManifest.plist out of the remote IPSW and decode it."""
        archive = RemoteArchive(
            url,
            self.logger,
            buffer_size=self.config.buffer_size,
            timeout=self.config.timeout,
            transport=self.transport,
        )
        self.logger.log(f"Fetching {BUILD_MANIFEST_PATH} from {url}", logging.INFO)
        return BuildManifest.from_plist_bytes(archive.read_member(BUILD_MANIFEST_PATH))

    def run(self) -> str:
        """
        Build the Restore Lite archive.

        Returns:
            Path of the written archive

        Raises:
            IpswLiteException: On any failure; no output archive is left behind by a
                failed build
        """
        self.config.validate()

        url = self.resolve_url()
        build_manifest = self.fetch_build_manifest(url)

        identity, index = select_build_identity(build_manifest, self.config.identifier)
        self.logger.log(
            f"Using build identity {index} for {self.config.identifier} "
            f"({build_manifest.product_version} {build_manifest.product_build_version})",
            logging.INFO,
        )

        staging_root = self.config.staging_dir
        try:
            os.makedirs(staging_root, mode=0o700, exist_ok=True)
        except OSError as e:
            raise LocalIOError(f"Could not create temp dir: {staging_root}, err: {e}") from e

        fetcher = StagingFetcher(
            self.logger,
            buffer_size=self.config.buffer_size,
            timeout=self.config.timeout,
            workers=self.config.workers,
            transport=self.transport,
        )
        plans = fetcher.stage(url, required_files(identity), staging_root)
        summary = fetcher.get_staging_summary(plans)
        self.logger.log(
            f"Staging summary: {summary['completed']} completed, "
            f"{summary['bytes']} bytes",
            logging.INFO,
        )

        output_path = os.path.join(
            self.config.output_dir,
            restore_lite_filename(
                self.config.identifier, build_manifest, self.config.archive_extension
            ),
        )

        self.logger.log("Building IPSW file...", logging.INFO)
        builder = ArchiveBuilder(self.logger, buffer_size=self.config.buffer_size)
        try:
            builder.build(staging_root, output_path, base_name="")
        except IpswLiteException:
            self._discard(output_path)
            raise

        return output_path

    def _discard(self, output_path: str) -> None:
        try:
            os.remove(output_path)
        except FileNotFoundError:
            return
        except OSError as e:
            self.logger.log(f"Unable to remove partial archive {output_path}: {e}", logging.WARNING)
            return
        self.logger.log(f"Removed partial archive {output_path}", logging.INFO)
