"""
Unit tests for configuration loading.

Tests multi-layer config merging, manifest concatenation, environment
variable overrides, caching, and manifest editing.
"""

import json
import logging
import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from gitpack.core.config import (
    add_package_to_project_config,
    clear_cache,
    get_project_config_path,
    get_user_config_path,
    load_config,
    remove_package_from_project_config,
)
from gitpack.core.config.env import load_layered_env
from gitpack.core.config.loader import apply_env_overrides, deep_merge, load_json_file
from gitpack.core.config.models import GitpackConfig
from gitpack.core.packages.models import PackageSpec, VersionRange


def write_json(path: Path, data: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))


class TestDeepMerge:
    def test_nested_merge(self):
        base = {"a": 1, "hooks": {"enabled": True, "timeout_seconds": 10}}
        override = {"hooks": {"timeout_seconds": 30}, "c": 3}

        assert deep_merge(base, override) == {
            "a": 1,
            "hooks": {"enabled": True, "timeout_seconds": 30},
            "c": 3,
        }

    def test_override_replaces_non_dict(self):
        assert deep_merge({"a": [1, 2]}, {"a": [3]}) == {"a": [3]}


class TestLoadJsonFile:
    def test_missing_file(self, tmp_path):
        assert load_json_file(tmp_path / "nope.json") is None

    def test_invalid_json_is_ignored(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")

        assert load_json_file(path) is None

    def test_non_object_is_ignored(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")

        assert load_json_file(path) is None


class TestEnvOverrides:
    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("GITPACK_ROOT", "/srv/packages")
        monkeypatch.setenv("GITPACK_CONCURRENCY", "3")
        monkeypatch.setenv("GITPACK_TIMEOUT", "12.5")
        monkeypatch.setenv("GITPACK_LOG_FILE", "/var/log/gitpack.log")

        result = apply_env_overrides({})

        assert result == {
            "packages_root": "/srv/packages",
            "concurrency": 3,
            "job_timeout": 12.5,
            "log_file": "/var/log/gitpack.log",
        }

    @pytest.mark.parametrize("value", ["zero", "0", "-2"])
    def test_invalid_concurrency_is_ignored(self, monkeypatch, value):
        monkeypatch.setenv("GITPACK_CONCURRENCY", value)

        assert "concurrency" not in apply_env_overrides({})


class TestLoadConfig:
    def test_defaults_follow_xdg(self, project_dir, tmp_path):
        config = load_config(project_dir)

        assert config.packages_root == tmp_path / "xdg-data" / "gitpack" / "packages"
        assert config.log_file == tmp_path / "xdg-state" / "gitpack" / "gitpack.log"
        assert config.job_timeout == 60.0
        assert config.concurrency is None
        assert config.packages == []

    def test_layers_and_manifest_concatenation(self, project_dir):
        write_json(
            get_user_config_path(),
            {"job_timeout": 5, "concurrency": 1, "packages": ["https://x/user-pkg"]},
        )
        write_json(
            get_project_config_path(project_dir),
            {
                "concurrency": 4,
                "packages": [{"source": "https://x/proj", "version": {"range": "^1.0.0"}}],
            },
        )

        config = load_config(project_dir)

        assert config.job_timeout == 5
        assert config.concurrency == 4
        assert [p.name for p in config.packages] == ["user-pkg", "proj"]
        assert isinstance(config.packages[1].version, VersionRange)

    def test_env_wins_over_files(self, project_dir, monkeypatch):
        write_json(get_project_config_path(project_dir), {"concurrency": 4})
        monkeypatch.setenv("GITPACK_CONCURRENCY", "7")

        assert load_config(project_dir).concurrency == 7

    def test_invalid_values_raise(self, project_dir):
        write_json(get_project_config_path(project_dir), {"job_timeout": -1})

        with pytest.raises(ValidationError):
            load_config(project_dir)

    def test_cache(self, project_dir):
        first = load_config(project_dir)
        write_json(get_project_config_path(project_dir), {"concurrency": 9})

        assert load_config(project_dir) is first
        clear_cache()
        assert load_config(project_dir).concurrency == 9

    def test_home_is_expanded(self):
        config = GitpackConfig(packages_root=Path("~/pkgs"))

        assert config.packages_root == Path(os.environ["HOME"]) / "pkgs"


class TestManifestEditing:
    def test_add_creates_and_replaces_entries(self, project_dir):
        add_package_to_project_config(PackageSpec(source="https://x/a"), project_dir)
        add_package_to_project_config(PackageSpec(source="https://x/b"), project_dir)
        path = add_package_to_project_config(
            PackageSpec(source="https://x/a", version="dev"), project_dir
        )

        data = json.loads(path.read_text())
        assert data["packages"] == [
            {"source": "https://x/b", "name": "b"},
            {"source": "https://x/a", "name": "a", "version": "dev"},
        ]

    def test_add_keeps_other_settings(self, project_dir):
        write_json(get_project_config_path(project_dir), {"concurrency": 2, "packages": []})

        add_package_to_project_config(PackageSpec(source="https://x/a"), project_dir)

        assert load_config(project_dir).concurrency == 2

    def test_remove(self, project_dir):
        write_json(
            get_project_config_path(project_dir),
            {"packages": ["https://x/a", {"source": "https://x/b"}]},
        )

        assert remove_package_from_project_config("a", project_dir) is True
        assert remove_package_from_project_config("a", project_dir) is False

        data = json.loads(get_project_config_path(project_dir).read_text())
        assert data["packages"] == [{"source": "https://x/b"}]


class TestLayeredEnv:
    def test_project_env_overrides_user_env_not_os(self, project_dir, tmp_path, monkeypatch):
        user_env = tmp_path / "user.env"
        user_env.write_text("GITPACK_ROOT=/from/user\nGITPACK_TIMEOUT=3\n")
        (project_dir / ".env").write_text("GITPACK_ROOT=/from/project\nGITPACK_LOG_FILE=/x.log\n")
        monkeypatch.setenv("GITPACK_LOG_FILE", "/from/os.log")
        # Registered so monkeypatch restores them afterwards
        monkeypatch.setenv("GITPACK_ROOT", "placeholder")
        monkeypatch.delenv("GITPACK_ROOT")
        monkeypatch.setenv("GITPACK_TIMEOUT", "placeholder")
        monkeypatch.delenv("GITPACK_TIMEOUT")

        applied = load_layered_env(project_dir=project_dir, user_env_paths=[user_env])

        assert os.environ["GITPACK_ROOT"] == "/from/project"
        assert os.environ["GITPACK_TIMEOUT"] == "3"
        assert os.environ["GITPACK_LOG_FILE"] == "/from/os.log"
        assert applied == {
            "GITPACK_ROOT": project_dir / ".env",
            "GITPACK_TIMEOUT": user_env,
        }

    def test_default_files_later_wins_and_sources_logged(
        self, project_dir, tmp_path, monkeypatch, caplog
    ):
        user_dir = tmp_path / "xdg-config" / "gitpack"
        user_dir.mkdir(parents=True)
        (user_dir / ".env").write_text("GITPACK_CONCURRENCY=3\n")
        (project_dir / ".env.local").write_text("GITPACK_CONCURRENCY=5\n")
        monkeypatch.setenv("GITPACK_CONCURRENCY", "placeholder")
        monkeypatch.delenv("GITPACK_CONCURRENCY")

        with caplog.at_level(logging.DEBUG, logger="gitpack.core.config.env"):
            applied = load_layered_env(project_dir=project_dir)

        assert os.environ["GITPACK_CONCURRENCY"] == "5"
        assert applied == {"GITPACK_CONCURRENCY": project_dir / ".env.local"}
        assert f"GITPACK_CONCURRENCY set from {project_dir / '.env.local'}" in caplog.text
