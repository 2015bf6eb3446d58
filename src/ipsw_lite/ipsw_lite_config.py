"""
Configuration parameters for an ipsw_lite run.

The configuration is built once at process start (from the CLI, a TOML file, or both)
and passed explicitly into the core components.
"""

import dataclasses
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

try:
    import tomllib
except ModuleNotFoundError:
    # Python < 3.11
    import tomli as tomllib

from ipsw_lite.ipsw_lite_exceptions import ConfigurationError

DEFAULT_BUFFER_SIZE = 128 * 1024
DEFAULT_TIMEOUT = 30.0
DEFAULT_LOOKUP_URL = "https://api.ipsw.me/v4/ipsw/{device}/{build_id}"

# Accepted value types per field; None is allowed only where the field is Optional.
FIELD_TYPES = {
    "identifier": (str,),
    "url": (str, type(None)),
    "device": (str, type(None)),
    "build_id": (str, type(None)),
    "staging_dir": (str,),
    "output_dir": (str,),
    "buffer_size": (int,),
    "timeout": (int, float),
    "workers": (int,),
    "lookup_url": (str,),
    "archive_extension": (str,),
}

CONFIG_TOML_SCHEMA = """
# ipsw_lite configuration

[ipsw_lite]
# Product type to build a restore archive for (required)
identifier = "iPhone4,1"

# Either a direct URL to the IPSW ...
url = "https://example.com/iPhone4,1_6.1.3_10B329_Restore.ipsw"

# ... or a device / build pair resolved through the lookup service
# device = "iPhone4,1"
# build_id = "10B329"

# Optional settings
# staging_dir = "tmp"
# output_dir = "."
# buffer_size = 131072
# timeout = 30.0
# workers = 1
# lookup_url = "https://api.ipsw.me/v4/ipsw/{device}/{build_id}"
# archive_extension = "ipsw"
"""


@dataclass
class IpswLiteConfig:
    """
    Configuration parameters
    """

    identifier: str
    url: Optional[str] = None
    device: Optional[str] = None
    build_id: Optional[str] = None
    staging_dir: str = "tmp"
    output_dir: str = "."
    buffer_size: int = DEFAULT_BUFFER_SIZE
    timeout: float = DEFAULT_TIMEOUT
    workers: int = 1
    lookup_url: str = DEFAULT_LOOKUP_URL
    archive_extension: str = "ipsw"

    @classmethod
    def from_dict(cls, env: Dict[str, Any]) -> "IpswLiteConfig":
        """
        Create an IpswLiteConfig instance from a dictionary.

        Raises:
            ConfigurationError: If the dictionary holds unknown keys, lacks an identifier
                or has a value of the wrong type
        """
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(env) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")
        if "identifier" not in env:
            raise ConfigurationError("Configuration is missing 'identifier'")
        for key, value in env.items():
            expected = FIELD_TYPES[key]
            if isinstance(value, bool) or not isinstance(value, expected):
                names = " or ".join("null" if t is type(None) else t.__name__ for t in expected)
                raise ConfigurationError(
                    f"Configuration key '{key}' must be {names}, got {type(value).__name__}"
                )
        return cls(**env)

    @classmethod
    def from_toml(
        cls, path: str, overrides: Optional[Dict[str, Any]] = None
    ) -> "IpswLiteConfig":
        """
        Load the [ipsw_lite] table of a TOML file, applying non-None overrides on top.
        """
        try:
            with open(path, "rb") as f:
                toml_dict = tomllib.load(f)
        except OSError as e:
            raise ConfigurationError(f"Unable to read config file {path}: {e}") from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid config file {path}: {e}") from e

        section = toml_dict.get("ipsw_lite", {})
        if not isinstance(section, dict):
            raise ConfigurationError(f"[ipsw_lite] in {path} must be a table")

        values = dict(section)
        for key, value in (overrides or {}).items():
            if value is not None:
                values[key] = value
        return cls.from_dict(values)

    def validate(self) -> None:
        """
        Check that the configuration describes a runnable job.

        Raises:
            ConfigurationError: On the first problem found
        """
        if not self.identifier:
            raise ConfigurationError("Invalid identifier specified.")
        if not self.url and not (self.device and self.build_id):
            raise ConfigurationError(
                "Either a URL or a device and build ID pair must be specified."
            )
        if self.url and not self.url.startswith(("http://", "https://")):
            raise ConfigurationError(f"Invalid URL specified: {self.url}")
        if self.buffer_size <= 0:
            raise ConfigurationError("buffer_size must be positive")
        if self.timeout <= 0:
            raise ConfigurationError("timeout must be positive")
        if self.workers < 1:
            raise ConfigurationError("workers must be at least 1")

        output_dir = os.path.realpath(self.output_dir)
        staging_dir = os.path.realpath(self.staging_dir)
        if os.path.commonpath([output_dir, staging_dir]) == staging_dir:
            raise ConfigurationError(
                f"output_dir {self.output_dir} must not be inside staging_dir {self.staging_dir}"
            )
