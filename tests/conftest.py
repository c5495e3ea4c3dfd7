"""
Pytest configuration and shared fixtures.

Provides an isolated environment (XDG directories, HOME, git identity),
upstream repositories served as bare repos over file:// URLs, and a
PackageService rooted in a temporary directory.
"""

import subprocess
from pathlib import Path

import pytest

from gitpack.core.config import clear_cache
from gitpack.core.config.models import GitpackConfig
from gitpack.core.packages.service import PackageService


def git(*args: str, cwd: Path) -> str:
    """Run git and return its stripped stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


class Upstream:
    """
    A package's upstream: a bare repository plus a working clone that pushes to it.

    Every commit is pushed right away, tags included.
    """

    def __init__(self, root: Path, name: str = "plugin"):
        self.name = name
        self.bare = root / f"{name}.git"
        self.work = root / f"{name}-work"
        self._counter = 0

        root.mkdir(parents=True, exist_ok=True)
        git("init", "--quiet", "--bare", str(self.bare), cwd=root)
        git("symbolic-ref", "HEAD", "refs/heads/main", cwd=self.bare)

        self.work.mkdir()
        git("init", "--quiet", cwd=self.work)
        git("symbolic-ref", "HEAD", "refs/heads/main", cwd=self.work)
        git("remote", "add", "origin", str(self.bare), cwd=self.work)

    @property
    def url(self) -> str:
        return self.bare.as_uri()

    def commit(
        self,
        message: str,
        files: dict[str, str] | None = None,
        tag: str | None = None,
    ) -> str:
        """Commit, optionally tag, push, and return the full commit hash."""
        self._counter += 1
        if files is None:
            files = {f"change-{self._counter}.txt": f"{message}\n"}
        for rel_path, content in files.items():
            path = self.work / rel_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)

        git("add", "--all", cwd=self.work)
        git("commit", "--quiet", "-m", message, cwd=self.work)
        if tag:
            git("tag", tag, cwd=self.work)
        git("push", "--quiet", "--tags", "origin", "HEAD", cwd=self.work)
        return git("rev-parse", "HEAD", cwd=self.work)

    def checkout(self, branch: str, create: bool = False) -> None:
        args = ["checkout", "--quiet"]
        if create:
            args.append("-b")
        git(*args, branch, cwd=self.work)

    def hash_of(self, rev: str) -> str:
        return git("rev-list", "-1", rev, cwd=self.work)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep tests away from the real home directory, git config and caches."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "xdg-state"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    for var in ("GIT_AUTHOR", "GIT_COMMITTER"):
        monkeypatch.setenv(f"{var}_NAME", "Test User")
        monkeypatch.setenv(f"{var}_EMAIL", "test@example.com")
    for var in ("GITPACK_ROOT", "GITPACK_CONCURRENCY", "GITPACK_TIMEOUT", "GITPACK_LOG_FILE"):
        monkeypatch.delenv(var, raising=False)

    clear_cache()
    yield
    clear_cache()


@pytest.fixture
def upstream(tmp_path) -> Upstream:
    """
    Upstream with three tagged releases on main and a dev branch.

    main: v1.0.0 -> v1.5.2 -> v2.0.0
    dev:  branches off v2.0.0 with one extra commit
    """
    repo = Upstream(tmp_path / "remotes")
    repo.commit(
        "Initial commit",
        files={
            "README.md": "# plugin\n",
            "doc/plugin.txt": "*plugin*  The plugin\n\nUsage  *plugin-usage*\n",
        },
        tag="v1.0.0",
    )
    repo.commit("Add feature", tag="v1.5.2")
    repo.commit("Breaking change", tag="v2.0.0")
    repo.checkout("dev", create=True)
    repo.commit("Dev work")
    repo.checkout("main")
    return repo


@pytest.fixture
def project_dir(tmp_path, monkeypatch) -> Path:
    """Temporary project directory used as the working directory."""
    project = tmp_path / "project"
    project.mkdir()
    monkeypatch.chdir(project)
    return project


@pytest.fixture
def config(tmp_path) -> GitpackConfig:
    return GitpackConfig(
        packages_root=tmp_path / "packages",
        log_file=tmp_path / "state" / "gitpack.log",
        concurrency=2,
        job_timeout=30,
    )


@pytest.fixture
def service(config, project_dir) -> PackageService:
    return PackageService(config, project_dir=project_dir)


@pytest.fixture
def make_upstream(tmp_path):
    """Factory for extra upstreams with a single tagged commit."""

    def factory(name: str) -> Upstream:
        repo = Upstream(tmp_path / "remotes", name=name)
        repo.commit("Initial commit", files={"README.md": f"# {name}\n"}, tag="v0.1.0")
        return repo

    return factory


@pytest.fixture
def head_of():
    """Full commit hash checked out in a directory."""

    def read_head(path: Path) -> str:
        return git("rev-parse", "HEAD", cwd=path)

    return read_head
