"""Tests for version information module."""

from shared import __version__ as exported_version
from shared.version import __version__


class TestVersion:
    """Tests for version string."""

    def test_version_is_string(self):
        assert isinstance(__version__, str)

    def test_version_is_valid_semver(self):
        """Version should be valid semver."""
        base = __version__.split("-")[0]
        parts = base.split(".")

        assert len(parts) >= 2, "Version should have at least major.minor"
        for part in parts:
            assert part.isdigit(), f"Version part '{part}' should be numeric"

    def test_exported_from_package(self):
        assert exported_version == __version__
