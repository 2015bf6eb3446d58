"""
Pydantic data models for BuildManifest.plist.

A build manifest lists the product types an IPSW supports and, for each of them, a
build identity mapping logical component names (KernelCache, RestoreRamDisk, ...) to
file paths inside the IPSW.

Structure (only the parts we consume):
{
  "ProductVersion": "6.1.3",
  "ProductBuildVersion": "10B329",
  "SupportedProductTypes": ["iPhone4,1", ...],
  "BuildIdentities": [
    {
      "Info": {"BuildNumber": "...", "BuildTrain": "...", "DeviceClass": "..."},
      "Manifest": {
        "KernelCache": {"Info": {"Path": "kernelcache.release.n94"}, ...},
        ...
      }
    },
    ...
  ]
}
"""

import plistlib
from typing import Any, Dict, List, Optional, Tuple
from xml.parsers.expat import ExpatError

from pydantic import BaseModel, Field, model_validator

from ipsw_lite.ipsw_lite_exceptions import InvalidManifest, NotSupported

BUILD_MANIFEST_PATH = "BuildManifest.plist"
RESTORE_PATH = "Restore.plist"


class ManifestInfo(BaseModel):
    """Info block of a manifest entry."""

    path: str = Field("", alias="Path", description="Path of the file inside the IPSW")

    class Config:
        extra = "allow"
        populate_by_name = True


class ManifestEntry(BaseModel):
    """
    A single component of a build identity.

    Wraps the path of the component inside the IPSW. An empty path marks a component
    that has no file to download.
    """

    info: ManifestInfo = Field(default_factory=ManifestInfo, alias="Info")

    class Config:
        extra = "allow"
        populate_by_name = True

    @model_validator(mode="before")
    @classmethod
    def lift_bare_path(cls, data: Any) -> Any:
        """Accept the short form {"Path": ...} alongside {"Info": {"Path": ...}}."""
        if isinstance(data, dict) and "Path" in data and "Info" not in data:
            data = dict(data)
            data["Info"] = {"Path": data.pop("Path")}
        return data

    @property
    def path(self) -> str:
        return self.info.path

    @classmethod
    def for_path(cls, path: str) -> "ManifestEntry":
        return cls(Info=ManifestInfo(Path=path))


class BuildIdentityInfo(BaseModel):
    """Metadata describing a build identity."""

    build_number: Optional[str] = Field(None, alias="BuildNumber")
    build_train: Optional[str] = Field(None, alias="BuildTrain")
    device_class: Optional[str] = Field(None, alias="DeviceClass")

    class Config:
        extra = "allow"
        populate_by_name = True


class BuildIdentity(BaseModel):
    """
    One buildable configuration of the IPSW.
    """

    info: BuildIdentityInfo = Field(default_factory=BuildIdentityInfo, alias="Info")
    manifest: Dict[str, ManifestEntry] = Field(default_factory=dict, alias="Manifest")

    class Config:
        extra = "allow"
        populate_by_name = True


class BuildManifest(BaseModel):
    """
    Complete build manifest.

    SupportedProductTypes and BuildIdentities are index-aligned: the identity at index i
    applies to SupportedProductTypes[i].
    """

    build_identities: List[BuildIdentity] = Field(default_factory=list, alias="BuildIdentities")
    supported_product_types: List[str] = Field(
        default_factory=list, alias="SupportedProductTypes"
    )
    product_version: str = Field("", alias="ProductVersion")
    product_build_version: str = Field("", alias="ProductBuildVersion")

    class Config:
        extra = "allow"
        populate_by_name = True

    @classmethod
    def from_plist_bytes(cls, data: bytes) -> "BuildManifest":
        """
        Decode a BuildManifest.plist (XML or binary) into a BuildManifest.

        Raises:
            InvalidManifest: If the bytes are not a plist or do not match the model
        """
        try:
            decoded = plistlib.loads(data)
        except (plistlib.InvalidFileException, ExpatError, ValueError) as e:
            raise InvalidManifest(f"Unable to read BuildManifest, err: {e}") from e

        if not isinstance(decoded, dict):
            raise InvalidManifest("Unable to read BuildManifest, err: top level is not a dictionary")

        try:
            return cls.model_validate(decoded)
        except ValueError as e:
            raise InvalidManifest(f"Unable to read BuildManifest, err: {e}") from e


def select_build_identity(
    build_manifest: BuildManifest, identifier: str
) -> Tuple[BuildIdentity, int]:
    """
    Find the build identity for a product type.

    Every SupportedProductTypes entry is compared for exact equality; when the
    identifier appears more than once the last match wins.

    Returns:
        The matching BuildIdentity and its index

    Raises:
        NotSupported: If the identifier is not a supported product type
        InvalidManifest: If the matching index has no build identity
    """
    product_index = -1
    for index, product_type in enumerate(build_manifest.supported_product_types):
        if product_type == identifier:
            product_index = index

    if product_index == -1:
        raise NotSupported(identifier)

    if product_index >= len(build_manifest.build_identities):
        raise InvalidManifest(
            f"BuildManifest has no build identity at index {product_index} for {identifier}"
        )

    return build_manifest.build_identities[product_index], product_index


def required_files(
    identity: BuildIdentity,
    build_manifest_path: str = BUILD_MANIFEST_PATH,
    restore_path: str = RESTORE_PATH,
) -> Dict[str, str]:
    """
    Get the files needed to restore a build identity.

    The identity's manifest is merged with the BuildManifest and Restore entries,
    which replace any existing keys of the same name. Components with an empty
    path are left out. The identity itself is not modified.

    Returns:
        Dictionary mapping component names to paths inside the IPSW
    """
    entries: Dict[str, ManifestEntry] = dict(identity.manifest)
    entries["BuildManifest"] = ManifestEntry.for_path(build_manifest_path)
    entries["Restore"] = ManifestEntry.for_path(restore_path)

    return {name: entry.path for name, entry in entries.items() if entry.path}


def restore_lite_filename(
    identifier: str, build_manifest: BuildManifest, extension: str = "ipsw"
) -> str:
    """Name of the output archive, e.g. iPhone4,1_6.1.3_10B329_Restore_Lite.ipsw."""
    return (
        f"{identifier}_{build_manifest.product_version}_"
        f"{build_manifest.product_build_version}_Restore_Lite.{extension}"
    )
