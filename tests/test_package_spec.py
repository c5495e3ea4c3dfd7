"""
Tests for package specifications, normalization and de-duplication.
"""

from pathlib import Path

import pytest

from gitpack.core.exceptions import ConflictError, SpecError
from gitpack.core.packages.models import PackageSpec, VersionRange, derive_name
from gitpack.core.packages.spec import normalize_spec, resolve_package, resolve_packages

ROOT = Path("/pkgs")


class TestDeriveName:
    @pytest.mark.parametrize(
        "source, name",
        [
            ("https://github.com/user/plugin", "plugin"),
            ("https://github.com/user/plugin.git", "plugin"),
            ("https://github.com/user/plugin/", "plugin"),
            ("git@github.com:user/plugin.git", "plugin"),
            ("file:///srv/repos/plugin.git", "plugin"),
        ],
    )
    def test_last_segment_without_git_suffix(self, source, name):
        assert derive_name(source) == name


class TestNormalizeSpec:
    def test_string_is_source(self):
        spec = normalize_spec("https://github.com/user/plugin")

        assert spec.source == "https://github.com/user/plugin"
        assert spec.name == "plugin"
        assert spec.version is None

    def test_mapping_with_explicit_name_and_branch(self):
        spec = normalize_spec({"source": "https://x/y", "name": "other", "version": "dev"})

        assert spec.name == "other"
        assert spec.version == "dev"

    def test_mapping_with_range(self):
        spec = normalize_spec({"source": "https://x/y", "version": {"range": "^1.2"}})

        assert isinstance(spec.version, VersionRange)
        assert str(spec.version) == "^1.2"

    def test_spec_passes_through(self):
        spec = PackageSpec(source="https://x/y")

        assert normalize_spec(spec) is spec

    @pytest.mark.parametrize(
        "data",
        [
            {"source": ""},
            {"source": "https://x/y", "name": ".."},
            {"source": "https://x/y", "name": "a/b"},
            {"source": "https://x/y", "version": ""},
            {"source": "https://x/y", "version": {"range": "not a range!"}},
            {"name": "missing-source"},
        ],
    )
    def test_invalid_specs_raise_spec_error(self, data):
        with pytest.raises(SpecError):
            normalize_spec(data)

    def test_wrong_type_raises_spec_error(self):
        with pytest.raises(SpecError):
            normalize_spec(42)

    def test_to_dict_round_trips_through_normalize(self):
        spec = normalize_spec({"source": "https://x/y", "version": {"range": ">=1.0.0 <2.0.0"}})

        assert normalize_spec(spec.to_dict()) == spec


class TestResolvePackages:
    def test_path_is_under_root(self):
        assert resolve_package("https://x/plugin", ROOT).path == ROOT / "plugin"

    def test_duplicates_keep_first_position(self):
        packages = resolve_packages(
            ["https://x/a", "https://x/b", {"source": "https://x/a"}], ROOT
        )

        assert [p.name for p in packages] == ["a", "b"]

    def test_unset_version_adopts_later_version(self):
        packages = resolve_packages(
            ["https://x/a", {"source": "https://x/a", "version": "dev"}], ROOT
        )

        assert len(packages) == 1
        assert packages[0].spec.version == "dev"

    def test_later_unset_version_adopts_earlier_version(self):
        packages = resolve_packages(
            [{"source": "https://x/a", "version": "dev"}, "https://x/a"], ROOT
        )

        assert packages[0].spec.version == "dev"

    def test_conflicting_source(self):
        with pytest.raises(ConflictError) as exc_info:
            resolve_packages(["https://x/a", "https://y/a"], ROOT)

        assert exc_info.value.field == "source"
        assert str(exc_info.value) == "Conflicting `source` for `a`:\nhttps://x/a\nhttps://y/a"

    def test_conflicting_version(self):
        with pytest.raises(ConflictError) as exc_info:
            resolve_packages(
                [
                    {"source": "https://x/a", "version": "main"},
                    {"source": "https://x/a", "version": {"range": "1.x"}},
                ],
                ROOT,
            )

        assert exc_info.value.field == "version"
        assert "main" in str(exc_info.value)
        assert "1.x" in str(exc_info.value)
