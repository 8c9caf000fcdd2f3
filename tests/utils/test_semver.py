"""Tests for semver utilities."""

import pytest
from module_registry.utils import semver
from module_registry.utils.semver import Version


class TestSemver:
    """Test version parsing and precedence."""

    def test_parse_version(self):
        """Should parse version string."""
        v = semver.parse("1.2.3")
        assert v.segments == (1, 2, 3)
        assert v.prerelease == ""
        assert v.metadata == ""
        assert str(v) == "1.2.3"

    def test_parse_version_with_prerelease(self):
        """Should parse version with prerelease."""
        v = semver.parse("1.2.3-alpha.1")
        assert v.segments == (1, 2, 3)
        assert v.prerelease == "alpha.1"
        assert str(v) == "1.2.3-alpha.1"

    def test_parse_prerelease_without_dash(self):
        v = semver.parse("1.2.3beta")
        assert v.prerelease == "beta"
        assert str(v) == "1.2.3-beta"

    def test_parse_metadata(self):
        v = semver.parse("1.0.0+build.7")
        assert v.metadata == "build.7"
        assert str(v) == "1.0.0+build.7"

    def test_parse_pads_segments(self):
        """Short versions render with three segments."""
        assert str(semver.parse("1")) == "1.0.0"
        assert str(semver.parse("1.2")) == "1.2.0"
        assert str(semver.parse("1.2.3.4")) == "1.2.3.4"

    def test_parse_leading_v(self):
        v = semver.parse("v2.0.0")
        assert str(v) == "2.0.0"
        assert v.original == "v2.0.0"

    @pytest.mark.parametrize("text", ["invalid", "", "1.", ".1", "1..2", "1.0.0+", "x1.0.0", "1.0.0 "])
    def test_parse_invalid_version(self, text):
        """Should raise ValueError for invalid version."""
        with pytest.raises(ValueError):
            semver.parse(text)

    def test_try_parse(self):
        assert semver.try_parse("nope") is None
        assert semver.try_parse("1.0.0") == Version((1, 0, 0))

    def test_equality_ignores_trailing_zeros_and_metadata(self):
        assert semver.parse("1.0") == semver.parse("1.0.0")
        assert semver.parse("1.0.0+abc") == semver.parse("1.0.0")
        assert semver.parse("1.0.0.0") == semver.parse("1.0.0")
        assert hash(semver.parse("1.0")) == hash(semver.parse("1.0.0+abc"))

    def test_equality_with_numeric_prerelease_leading_zero(self):
        assert semver.parse("1.0.0-01") == semver.parse("1.0.0-1")
        assert hash(semver.parse("1.0.0-01")) == hash(semver.parse("1.0.0-1"))

    def test_segment_ordering_is_numeric(self):
        assert semver.parse("1.10.0") > semver.parse("1.9.0")
        assert semver.parse("2.0.0") > semver.parse("1.99.99")
        assert semver.parse("1.2.3.1") > semver.parse("1.2.3")

    def test_release_outranks_prerelease(self):
        assert semver.parse("1.0.0") > semver.parse("1.0.0-rc.1")
        assert semver.parse("1.0.0-rc.1") > semver.parse("0.9.9")

    def test_prerelease_precedence(self):
        """Follows the semver 2.0.0 example ordering."""
        ordered = [
            "1.0.0-alpha",
            "1.0.0-alpha.1",
            "1.0.0-alpha.beta",
            "1.0.0-beta",
            "1.0.0-beta.2",
            "1.0.0-beta.11",
            "1.0.0-rc.1",
            "1.0.0",
        ]
        versions = [semver.parse(v) for v in ordered]
        assert sorted(reversed(versions)) == versions
        for lower, higher in zip(versions, versions[1:]):
            assert lower < higher
            assert lower != higher

    def test_compare_with_other_types(self):
        assert semver.parse("1.0.0") != "1.0.0"
        with pytest.raises(TypeError):
            semver.parse("1.0.0") < "1.0.0"
