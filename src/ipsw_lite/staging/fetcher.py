"""
Staging fetcher implementation.

Fetches every required file out of a remote IPSW into a local directory tree that
mirrors the paths recorded in the build manifest.
"""

import logging
import pathlib
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional

import httpx

from ipsw_lite.ipsw_lite_config import DEFAULT_BUFFER_SIZE, DEFAULT_TIMEOUT
from ipsw_lite.ipsw_lite_exceptions import (
    FetchCancelled,
    IpswLiteException,
    LocalIOError,
)
from ipsw_lite.ipsw_lite_logger import IpswLiteLogger
from ipsw_lite.remote_archive import RemoteArchive
from ipsw_lite.staging.staging_plan import StagingPlan, StagingStatus


class StagingFetcher:
    """
    Fetches required files into a staging root.

    Files are fetched one at a time, or on a pool of `workers` threads. Either way the
    first failure aborts the whole operation and is raised to the caller.
    """

    def __init__(
        self,
        logger: IpswLiteLogger,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        timeout: float = DEFAULT_TIMEOUT,
        workers: int = 1,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the staging fetcher.

        Args:
            logger: Logger for progress and error messages
            buffer_size: Copy chunk size for each fetch
            timeout: Per-request deadline in seconds
            workers: Number of concurrent fetches
            transport: Optional custom transport (useful for testing)
        """
        self.logger = logger
        self.buffer_size = buffer_size
        self.timeout = timeout
        self.workers = workers
        self.transport = transport

    def create_staging_plans(
        self, files: Dict[str, str], staging_root: str
    ) -> List[StagingPlan]:
        """
        Create one staging plan per distinct file with a non-empty path.

        Components referencing the same path share a plan, so every destination is
        written by exactly one plan.

        Args:
            files: Component names mapped to paths inside the IPSW
            staging_root: Local directory the files are staged under

        Raises:
            LocalIOError: If a path would land outside the staging root, or two
                different paths would land on the same file
        """
        root = pathlib.Path(staging_root)
        plans: Dict[pathlib.PurePosixPath, StagingPlan] = {}
        for component_name, archive_path in files.items():
            if not archive_path:
                continue

            relative = self._relative_destination(archive_path)
            plan = plans.get(relative)
            if plan is None:
                plans[relative] = StagingPlan(
                    component_names=[component_name],
                    archive_path=archive_path,
                    destination_path=root / relative,
                )
            elif plan.archive_path == archive_path:
                plan.component_names.append(component_name)
            else:
                raise LocalIOError(
                    f"{archive_path} and {plan.archive_path} would both be staged to {relative}"
                )
        return list(plans.values())

    @staticmethod
    def _relative_destination(archive_path: str) -> pathlib.PurePosixPath:
        relative = pathlib.PurePosixPath(archive_path)
        if relative.is_absolute() or ".." in relative.parts:
            raise LocalIOError(f"Refusing to stage {archive_path} outside the staging root")
        return relative

    def stage(
        self, url: str, files: Dict[str, str], staging_root: str
    ) -> List[StagingPlan]:
        """
        Fetch all required files from the IPSW at `url` into `staging_root`.

        Re-staging into the same root overwrites earlier files. With more than one
        worker, the first failure stops the fetches still running at their next chunk.

        Returns:
            The executed staging plans, all completed

        Raises:
            IpswLiteException: The first failure encountered
        """
        plans = self.create_staging_plans(files, staging_root)
        archive = RemoteArchive(
            url,
            self.logger,
            buffer_size=self.buffer_size,
            timeout=self.timeout,
            transport=self.transport,
        )

        self.logger.log(
            f"Staging {len(plans)} files into {staging_root}",
            logging.INFO,
        )

        if self.workers <= 1:
            for plan in plans:
                self.stage_file(archive, plan)
            return plans

        cancel_event = threading.Event()
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = [
                executor.submit(self.stage_file, archive, plan, cancel_event)
                for plan in plans
            ]
            try:
                for future in as_completed(futures):
                    future.result()
            except BaseException:
                cancel_event.set()
                for future in futures:
                    future.cancel()
                raise

        return plans

    def stage_file(
        self,
        archive: RemoteArchive,
        plan: StagingPlan,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        """
        Fetch a single file, creating its parent directories as needed.

        Raises:
            LocalIOError: If the destination cannot be created or written
            FetchCancelled: If `cancel_event` is set before the file is complete
            IpswLiteException: If the fetch itself fails
        """
        if cancel_event is not None and cancel_event.is_set():
            plan.status = StagingStatus.CANCELLED
            raise FetchCancelled(f"Cancelled {plan.archive_path} before it started")

        self.logger.log(
            f"Downloading file: {plan.component_name} to {plan.archive_path}",
            logging.INFO,
        )
        plan.status = StagingStatus.IN_PROGRESS

        try:
            plan.destination_path.parent.mkdir(parents=True, exist_ok=True)
            with open(plan.destination_path, "wb") as sink:
                plan.bytes_written = archive.fetch(plan.archive_path, sink, cancel_event)
        except OSError as e:
            self._mark_failed(plan, str(e))
            raise LocalIOError(
                f"Unable to write {plan.destination_path}, err: {e}"
            ) from e
        except FetchCancelled:
            plan.status = StagingStatus.CANCELLED
            self.logger.log(f"Cancelled {plan.archive_path}", logging.INFO)
            raise
        except IpswLiteException as e:
            self._mark_failed(plan, e.message)
            raise

        plan.status = StagingStatus.COMPLETED
        self.logger.log(
            f"Staged {plan.archive_path} ({plan.bytes_written} bytes)",
            logging.DEBUG,
        )

    def _mark_failed(self, plan: StagingPlan, error: str) -> None:
        plan.status = StagingStatus.FAILED
        plan.error_message = f"Unable to download file {plan.archive_path}, err: {error}"
        self.logger.log(plan.error_message, logging.ERROR)

    @staticmethod
    def get_staging_summary(plans: List[StagingPlan]) -> dict:
        """
        Get a summary of staging results.

        Returns:
            Dictionary with counts per status and staged bytes
        """
        completed = sum(1 for plan in plans if plan.status == StagingStatus.COMPLETED)
        failed = sum(1 for plan in plans if plan.status == StagingStatus.FAILED)
        pending = sum(1 for plan in plans if plan.status == StagingStatus.PENDING)
        cancelled = sum(1 for plan in plans if plan.status == StagingStatus.CANCELLED)

        return {
            "completed": completed,
            "failed": failed,
            "pending": pending,
            "cancelled": cancelled,
            "total": len(plans),
            "bytes": sum(plan.bytes_written for plan in plans),
        }
