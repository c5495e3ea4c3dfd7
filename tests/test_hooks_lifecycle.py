"""
Unit tests for lifecycle hook discovery, execution and the event bus.

Covers the package lifecycle events (pre/post install, update, delete):
discovery order, context passing, failure handling and subscriber isolation.
"""

import json
import stat
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from gitpack.core.hooks import (
    EventBus,
    HookConfig,
    HookError,
    HookExecutor,
    LifecycleEvent,
    PackageEventContext,
    discover_hooks,
)
from gitpack.core.hooks.discovery import get_default_global_hooks_dir
from gitpack.core.packages.models import PackageSpec, ResolvedPackage, VersionRange

# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture
def temp_project(tmp_path):
    """Create a temporary project directory with hook directories."""
    project_dir = tmp_path / "hooks-project"
    project_dir.mkdir()

    # XDG_CONFIG_HOME is set by the autouse isolated_env fixture
    global_hooks = tmp_path / "xdg-config" / "gitpack" / "hooks"
    project_hooks = project_dir / ".gitpack" / "hooks"
    global_hooks.mkdir(parents=True)
    project_hooks.mkdir(parents=True)

    return {
        "project_dir": project_dir,
        "global_hooks": global_hooks,
        "project_hooks": project_hooks,
    }


@pytest.fixture
def package(tmp_path) -> ResolvedPackage:
    spec = PackageSpec(source="https://example.com/user/plugin.git", version=VersionRange("^1.0.0"))
    return ResolvedPackage(spec=spec, path=tmp_path / "packages" / "plugin")


def make_context(event: LifecycleEvent = LifecycleEvent.POST_INSTALL) -> PackageEventContext:
    return PackageEventContext(
        event=event,
        name="plugin",
        source="https://example.com/user/plugin.git",
        version="main",
        path="/packages/plugin",
    )


def create_hook_script(
    hook_dir: Path, hook_name: str, script_name: str, content: str, executable: bool = True
) -> Path:
    """
    Create a hook script.

    Args:
        hook_dir: Base hook directory (global or project)
        hook_name: Hook name (e.g., "post-install")
        script_name: Script filename (e.g., "01-build.sh")
        content: Script body (sh code)
        executable: Whether to mark script as executable

    Returns:
        Path to created script
    """
    hook_subdir = hook_dir / hook_name
    hook_subdir.mkdir(exist_ok=True)

    script_path = hook_subdir / script_name
    script_path.write_text(f"#!/bin/sh\n{content}\n")

    if executable:
        script_path.chmod(script_path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    return script_path


# ==============================================================================
# Discovery Tests
# ==============================================================================


class TestDiscoverHooks:
    """Test hook discovery functionality."""

    def test_discover_no_hooks(self, temp_project):
        assert discover_hooks("post-install", temp_project["project_dir"]) == []

    def test_discover_both_global_and_project(self, temp_project):
        """Global hooks come before project hooks regardless of name."""
        create_hook_script(temp_project["global_hooks"], "post-install", "99-global.sh", "true")
        create_hook_script(temp_project["project_hooks"], "post-install", "01-project.sh", "true")

        scripts = discover_hooks("post-install", temp_project["project_dir"])

        assert [s.name for s in scripts] == ["99-global.sh", "01-project.sh"]

    def test_ignore_non_executable_and_hidden(self, temp_project):
        hooks = temp_project["project_hooks"]
        create_hook_script(hooks, "pre-delete", "run.sh", "true")
        create_hook_script(hooks, "pre-delete", "skip.sh", "true", executable=False)
        create_hook_script(hooks, "pre-delete", ".hidden.sh", "true")

        scripts = discover_hooks("pre-delete", temp_project["project_dir"])

        assert [s.name for s in scripts] == ["run.sh"]

    def test_sorted_order(self, temp_project):
        hooks = temp_project["project_hooks"]
        for name in ("03-third.sh", "01-first.sh", "02-second.sh"):
            create_hook_script(hooks, "post-update", name, "true")

        scripts = discover_hooks("post-update", temp_project["project_dir"])

        assert [s.name for s in scripts] == ["01-first.sh", "02-second.sh", "03-third.sh"]

    def test_empty_hook_name_raises(self, temp_project):
        with pytest.raises(ValueError, match="hook_name is required"):
            discover_hooks("", temp_project["project_dir"])

    def test_with_custom_global_dir(self, temp_project, tmp_path):
        custom_global = tmp_path / "custom_hooks"
        custom_global.mkdir()
        create_hook_script(custom_global, "pre-install", "custom.sh", "true")
        create_hook_script(temp_project["global_hooks"], "pre-install", "default.sh", "true")

        config = HookConfig(global_hooks_dir=str(custom_global))
        scripts = discover_hooks("pre-install", temp_project["project_dir"], config)

        assert [s.name for s in scripts] == ["custom.sh"]


class TestGetDefaultGlobalHooksDir:
    def test_follows_xdg_config_home(self, tmp_path):
        assert get_default_global_hooks_dir() == tmp_path / "xdg-config" / "gitpack" / "hooks"


# ==============================================================================
# Executor Tests
# ==============================================================================


class TestHookExecutor:
    """Test hook execution functionality."""

    def test_execute_no_hooks(self, temp_project):
        executor = HookExecutor(temp_project["project_dir"])

        assert executor.run("post-install", make_context()) == []

    def test_context_passed_via_env(self, temp_project):
        create_hook_script(
            temp_project["project_hooks"],
            "post-install",
            "check-context.sh",
            'echo "$GITPACK_HOOK_CONTEXT"\n'
            'echo "Hook name: $GITPACK_HOOK_NAME" >&2\n'
            'echo "Project dir: $GITPACK_PROJECT_DIR" >&2',
        )

        executor = HookExecutor(temp_project["project_dir"])
        results = executor.run("post-install", make_context())

        assert len(results) == 1
        assert results[0].success is True
        payload = json.loads(results[0].stdout)
        assert payload["event"] == "post-install"
        assert payload["name"] == "plugin"
        assert payload["version"] == "main"
        assert "Hook name: post-install" in results[0].stderr
        assert f"Project dir: {temp_project['project_dir']}" in results[0].stderr

    def test_scripts_run_in_project_dir(self, temp_project):
        create_hook_script(temp_project["project_hooks"], "post-install", "pwd.sh", "pwd")

        results = HookExecutor(temp_project["project_dir"]).run("post-install", make_context())

        assert Path(results[0].stdout.strip()).resolve() == temp_project["project_dir"].resolve()

    def test_failure_without_fail_on_error(self, temp_project):
        create_hook_script(
            temp_project["project_hooks"], "post-install", "fail.sh", "echo 'broken' >&2\nexit 3"
        )

        executor = HookExecutor(temp_project["project_dir"], HookConfig(fail_on_error=False))
        results = executor.run("post-install", make_context())

        assert len(results) == 1
        assert results[0].failed
        assert results[0].exit_code == 3
        assert results[0].error_message == "broken"

    def test_failure_with_fail_on_error(self, temp_project):
        create_hook_script(temp_project["project_hooks"], "pre-install", "fail.sh", "exit 1")

        executor = HookExecutor(temp_project["project_dir"], HookConfig(fail_on_error=True))

        with pytest.raises(HookError, match="failed with exit code 1"):
            executor.run("pre-install", make_context(LifecycleEvent.PRE_INSTALL))

    def test_hook_timeout(self, temp_project):
        create_hook_script(temp_project["project_hooks"], "post-update", "slow.sh", "sleep 10")

        executor = HookExecutor(temp_project["project_dir"], HookConfig(timeout_seconds=1))
        results = executor.run("post-update", make_context(LifecycleEvent.POST_UPDATE))

        assert len(results) == 1
        assert results[0].exit_code == -1
        assert "timed out" in results[0].error_message

    def test_disabled_hook(self, temp_project):
        create_hook_script(temp_project["project_hooks"], "post-install", "test.sh", "true")

        config = HookConfig(enabled_hooks=["pre-delete"])
        assert HookExecutor(temp_project["project_dir"], config).run(
            "post-install", make_context()
        ) == []

    def test_hooks_globally_disabled(self, temp_project):
        create_hook_script(temp_project["project_hooks"], "post-install", "test.sh", "true")

        config = HookConfig(enabled=False)
        assert HookExecutor(temp_project["project_dir"], config).run(
            "post-install", make_context()
        ) == []


class TestPackageEventContext:
    def test_json_round_trip(self):
        context = make_context(LifecycleEvent.PRE_DELETE)

        restored = PackageEventContext.from_json(context.to_json())

        assert restored == context
        assert restored.event is LifecycleEvent.PRE_DELETE


# ==============================================================================
# Event Bus Tests
# ==============================================================================


class TestEventBus:
    def test_subscribers_receive_context(self, package):
        executor = MagicMock()
        bus = EventBus(executor=executor)
        received = []
        bus.subscribe(LifecycleEvent.POST_INSTALL, received.append)

        context = bus.emit(LifecycleEvent.POST_INSTALL, package)

        assert received == [context]
        assert context.name == "plugin"
        assert context.source == "https://example.com/user/plugin.git"
        assert context.version == "^1.0.0"
        assert context.path == str(package.path)
        executor.run.assert_called_once_with("post-install", context)

    def test_only_matching_event_is_delivered(self, package):
        bus = EventBus(executor=MagicMock())
        received = []
        bus.subscribe(LifecycleEvent.PRE_DELETE, received.append)

        bus.emit(LifecycleEvent.POST_INSTALL, package)

        assert received == []

    def test_subscriber_exception_does_not_stop_emission(self, package, caplog):
        executor = MagicMock()
        bus = EventBus(executor=executor)
        received = []

        def broken(context):
            raise RuntimeError("boom")

        bus.subscribe(LifecycleEvent.PRE_UPDATE, broken)
        bus.subscribe(LifecycleEvent.PRE_UPDATE, received.append)

        bus.emit(LifecycleEvent.PRE_UPDATE, package)

        assert len(received) == 1
        executor.run.assert_called_once()
        assert "Subscriber for pre-update failed on plugin" in caplog.text

    def test_unsubscribe(self, package):
        bus = EventBus(executor=MagicMock())
        received = []
        bus.subscribe(LifecycleEvent.POST_DELETE, received.append)
        bus.unsubscribe(LifecycleEvent.POST_DELETE, received.append)

        bus.emit(LifecycleEvent.POST_DELETE, package)

        assert received == []

    def test_runs_hook_scripts(self, temp_project, package):
        create_hook_script(temp_project["project_hooks"], "post-install", "fail.sh", "exit 1")
        bus = EventBus(temp_project["project_dir"], HookConfig(fail_on_error=True))

        with pytest.raises(HookError):
            bus.emit(LifecycleEvent.POST_INSTALL, package)
