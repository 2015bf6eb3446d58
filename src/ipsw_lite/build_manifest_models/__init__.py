"""
Build manifest models.

This package provides Pydantic data models for parsing a firmware BuildManifest.plist
and selecting the files a given product type needs to restore.
"""

from .build_manifest import (
    BuildManifest,
    BuildIdentity,
    BuildIdentityInfo,
    ManifestEntry,
    ManifestInfo,
    BUILD_MANIFEST_PATH,
    RESTORE_PATH,
    select_build_identity,
    required_files,
    restore_lite_filename,
)

__all__ = [
    "BuildManifest",
    "BuildIdentity",
    "BuildIdentityInfo",
    "ManifestEntry",
    "ManifestInfo",
    "BUILD_MANIFEST_PATH",
    "RESTORE_PATH",
    "select_build_identity",
    "required_files",
    "restore_lite_filename",
]
