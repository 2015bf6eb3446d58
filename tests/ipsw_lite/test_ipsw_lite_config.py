"""
Tests for IpswLiteConfig.
"""

import pytest

from ipsw_lite.ipsw_lite_config import DEFAULT_BUFFER_SIZE, IpswLiteConfig
from ipsw_lite.ipsw_lite_exceptions import ConfigurationError


class TestIpswLiteConfig:
    """Tests for IpswLiteConfig."""

    def test_defaults(self):
        """Unset fields take their documented defaults."""
        config = IpswLiteConfig.from_dict({"identifier": "iPhone4,1", "url": "https://x.test/a.ipsw"})

        assert config.staging_dir == "tmp"
        assert config.output_dir == "."
        assert config.buffer_size == DEFAULT_BUFFER_SIZE == 128 * 1024
        assert config.timeout == 30.0
        assert config.workers == 1
        config.validate()

    def test_unknown_keys(self):
        """Unknown keys are refused."""
        with pytest.raises(ConfigurationError):
            IpswLiteConfig.from_dict({"identifier": "iPhone4,1", "colour": "blue"})

    def test_missing_identifier(self):
        """A config without an identifier is refused."""
        with pytest.raises(ConfigurationError):
            IpswLiteConfig.from_dict({"url": "https://x.test/a.ipsw"})

    def test_from_toml_with_overrides(self, tmp_path):
        """Non-None overrides replace values from the file."""
        path = tmp_path / "ipsw_lite.toml"
        path.write_text(
            "[ipsw_lite]\n"
            'identifier = "iPhone3,1"\n'
            'url = "https://x.test/a.ipsw"\n'
            "workers = 2\n"
            'staging_dir = "stage"\n'
        )

        config = IpswLiteConfig.from_toml(
            str(path), {"identifier": "iPhone4,1", "workers": None, "timeout": 5.0}
        )

        assert config.identifier == "iPhone4,1"
        assert config.url == "https://x.test/a.ipsw"
        assert config.workers == 2
        assert config.staging_dir == "stage"
        assert config.timeout == 5.0

    def test_from_toml_invalid(self, tmp_path):
        """Malformed TOML raises ConfigurationError."""
        path = tmp_path / "ipsw_lite.toml"
        path.write_text("[ipsw_lite\nidentifier = ")
        with pytest.raises(ConfigurationError):
            IpswLiteConfig.from_toml(str(path))

    def test_from_toml_missing_file(self, tmp_path):
        """A missing config file raises ConfigurationError."""
        with pytest.raises(ConfigurationError):
            IpswLiteConfig.from_toml(str(tmp_path / "missing.toml"))

    @pytest.mark.parametrize(
        "values",
        [
            {"identifier": ""},
            {"identifier": "iPhone4,1", "url": None},
            {"identifier": "iPhone4,1", "url": None, "device": "iPhone4,1"},
            {"identifier": "iPhone4,1", "url": "ftp://x.test/a.ipsw"},
            {"identifier": "iPhone4,1", "buffer_size": 0},
            {"identifier": "iPhone4,1", "timeout": 0},
            {"identifier": "iPhone4,1", "workers": 0},
        ],
    )
    def test_validate_rejects(self, values):
        """Each unrunnable config is refused by validate."""
        values = dict({"url": "https://x.test/a.ipsw"}, **values)
        with pytest.raises(ConfigurationError):
            IpswLiteConfig.from_dict(values).validate()

    def test_validate_accepts_lookup_pair(self):
        """A device and build ID pair stands in for a URL."""
        IpswLiteConfig(identifier="iPhone4,1", device="iPhone4,1", build_id="10B329").validate()

    @pytest.mark.parametrize(
        "key, value",
        [
            ("workers", "4"),
            ("workers", True),
            ("buffer_size", 1.5),
            ("timeout", "30"),
            ("url", 5),
            ("identifier", None),
            ("staging_dir", ["tmp"]),
        ],
    )
    def test_from_dict_rejects_wrong_types(self, key, value):
        """Values of the wrong type are reported as configuration errors."""
        values = {"identifier": "iPhone4,1", "url": "https://x.test/a.ipsw", key: value}
        with pytest.raises(ConfigurationError) as exc_info:
            IpswLiteConfig.from_dict(values)

        assert key in exc_info.value.message

    def test_from_dict_accepts_integer_timeout(self):
        """An integer timeout is as good as a float one."""
        config = IpswLiteConfig.from_dict({"identifier": "iPhone4,1", "timeout": 5, "url": None})
        assert config.timeout == 5

    def test_from_toml_wrong_type(self, tmp_path):
        """A quoted number in the TOML file is rejected before validation."""
        path = tmp_path / "ipsw_lite.toml"
        path.write_text('[ipsw_lite]\nidentifier = "iPhone4,1"\nworkers = "4"\n')
        with pytest.raises(ConfigurationError):
            IpswLiteConfig.from_toml(str(path))

    @pytest.mark.parametrize("output_subdir", ["stage", "stage/out", "stage/a/../b"])
    def test_validate_rejects_output_inside_staging(self, tmp_path, output_subdir):
        """The output archive may not be written into the tree being archived."""
        config = IpswLiteConfig(
            identifier="iPhone4,1",
            url="https://x.test/a.ipsw",
            staging_dir=str(tmp_path / "stage"),
            output_dir=str(tmp_path / output_subdir),
        )
        with pytest.raises(ConfigurationError):
            config.validate()

    def test_validate_accepts_staging_inside_output(self, tmp_path):
        """Staging below the output directory is the usual layout."""
        IpswLiteConfig(
            identifier="iPhone4,1",
            url="https://x.test/a.ipsw",
            staging_dir=str(tmp_path / "tmp"),
            output_dir=str(tmp_path),
        ).validate()

    def test_validate_rejects_staging_symlinked_to_output(self, tmp_path):
        """A staging dir that resolves to the output dir is rejected too."""
        (tmp_path / "out").mkdir()
        (tmp_path / "stage").symlink_to(tmp_path / "out", target_is_directory=True)
        config = IpswLiteConfig(
            identifier="iPhone4,1",
            url="https://x.test/a.ipsw",
            staging_dir=str(tmp_path / "stage"),
            output_dir=str(tmp_path / "out"),
        )
        with pytest.raises(ConfigurationError):
            config.validate()
