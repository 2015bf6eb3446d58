"""
Staging of required files.

This package handles:
1. Planning where each required file lands under the staging root
2. Fetching each file out of the remote IPSW
3. Tracking per-file status and reporting a summary
"""

from .staging_plan import StagingPlan, StagingStatus
from .fetcher import StagingFetcher

__all__ = ["StagingFetcher", "StagingPlan", "StagingStatus"]
