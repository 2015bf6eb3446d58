"""
Staging plans.

A StagingPlan captures one file to stage: the components that reference it, its path
inside the IPSW, and where it lands locally. Components sharing a path share a plan.
"""

import pathlib
from typing import List, Optional


class StagingStatus:
    """Enumeration of staging statuses."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class StagingPlan:
    """
    A plan to stage a single file.
    """

    def __init__(
            self,
            component_names: List[str],
            archive_path: str,
            destination_path: pathlib.Path,
            status: str = StagingStatus.PENDING,
    ):
        """
        Initialize a staging plan.

        Args:
            component_names: Build identity components using the file, e.g. ["KernelCache"]
            archive_path: Member name inside the remote IPSW
            destination_path: Local file the member is written to
            status: Current staging status
        """
        self.component_names = component_names
        self.archive_path = archive_path
        self.destination_path = destination_path
        self.status = status
        self.bytes_written = 0
        self.error_message: Optional[str] = None

    @property
    def component_name(self) -> str:
        return ", ".join(self.component_names)

    def is_staged(self) -> bool:
        """Check if the file has been successfully staged."""
        return self.status == StagingStatus.COMPLETED

    def __repr__(self) -> str:
        return (
            f"StagingPlan(components={self.component_name}, "
            f"status={self.status}, path={self.archive_path})"
        )
