"""
Package service: install, update, remove and list managed packages.

PackageService composes the scheduler, the step pipelines and the version
resolver. It owns the session's RegisteredSet and emits lifecycle events
from the calling thread while git work runs in the scheduler's pool.

Example:
    >>> service = PackageService(config)
    >>> service.register(["https://github.com/user/plugin"])
    >>> report = service.sync()
    >>> print(report.render())
    >>> report.apply()
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable, Iterable
from pathlib import Path

from gitpack.core.config.models import GitpackConfig
from gitpack.core.exceptions import GitpackError, PackageOperationError
from gitpack.core.git.runner import CommandRunner, ensure_git_executable
from gitpack.core.hooks.events import EventBus
from gitpack.core.hooks.models import LifecycleEvent
from gitpack.core.jobs.scheduler import JobScheduler, ScheduleResult, SchedulerCallback
from gitpack.core.packages.helptags import regenerate_helptags
from gitpack.core.packages.models import PackageInfo, PackageSpec, ResolvedPackage, SyncState
from gitpack.core.packages.registry import RegisteredSet
from gitpack.core.packages.report import append_update_log, format_timestamp, render_report
from gitpack.core.packages.spec import SpecInput, resolve_packages
from gitpack.core.packages.steps import (
    ORIGIN,
    Pipeline,
    apply_pipeline,
    download_pipeline,
    inspect_pipeline,
    install_pipeline,
)

logger = logging.getLogger(__name__)

ConfirmInstall = Callable[[list[str]], bool]
OnActivate = Callable[[ResolvedPackage], None]


class SyncReport:
    """
    Outcome of a sync, held until it is applied or discarded.

    Nothing on disk changes until ``apply()`` is called. A report can be
    resolved only once.

    Attributes:
        states: Per-package states in selection order
    """

    def __init__(self, service: PackageService, states: list[SyncState]):
        self._service = service
        self.states = states
        self._resolved = False

    @property
    def packages(self) -> list[ResolvedPackage]:
        return [state.package for state in self.states]

    @property
    def has_errors(self) -> bool:
        return any(state.failed for state in self.states)

    @property
    def pending(self) -> list[str]:
        """Names of packages whose checkout would change their state."""
        return [state.name for state in self.states if not state.failed and state.has_update]

    @property
    def resolved(self) -> bool:
        return self._resolved

    def render(self, include_unchanged: bool = True) -> str:
        return render_report(self.states, include_unchanged=include_unchanged)

    def apply(self) -> None:
        """Stash and check out the target of every non-errored package."""
        self._resolve("apply")
        self._service._apply_updates(self.states)

    def discard(self) -> None:
        self._resolve("discard")
        logger.info("Discarded update of %d package(s)", len(self.states))

    def _resolve(self, action: str) -> None:
        if self._resolved:
            raise GitpackError(f"Cannot {action}: update was already applied or discarded")
        self._resolved = True


class PackageService:
    """
    Declarative package management over git.

    Attributes:
        config: Effective configuration
        packages_root: Directory holding one subdirectory per package
        registry: Packages registered in this session
        events: Lifecycle event bus
        scheduler: Runs git work with bounded concurrency
    """

    def __init__(
        self,
        config: GitpackConfig | None = None,
        *,
        packages_root: Path | None = None,
        registry: RegisteredSet | None = None,
        events: EventBus | None = None,
        scheduler: JobScheduler | None = None,
        runner: CommandRunner | None = None,
        callback: SchedulerCallback | None = None,
        confirm_install: ConfirmInstall | None = None,
        on_activate: OnActivate | None = None,
        project_dir: Path | None = None,
    ):
        """
        Initialize the service.

        Args:
            config: Configuration (defaults to GitpackConfig())
            packages_root: Overrides config.packages_root
            registry: Session registry (a fresh one by default)
            events: Event bus (defaults to one running hooks from project_dir)
            scheduler: Scheduler (built from config, runner and callback by default)
            runner: Command runner for the default scheduler
            callback: Progress callback for the default scheduler
            confirm_install: Asked with the sources before cloning; False aborts
            on_activate: Called for every newly registered package
            project_dir: Project directory for hook scripts (defaults to cwd)
        """
        self.config = config or GitpackConfig()
        self.packages_root = packages_root or self.config.packages_root
        self.registry = registry if registry is not None else RegisteredSet()
        self.events = events or EventBus(project_dir or Path.cwd(), self.config.hooks)
        self.scheduler = scheduler or JobScheduler(
            concurrency=self.config.concurrency,
            job_timeout=self.config.job_timeout,
            runner=runner,
            callback=callback,
        )
        self._confirm_install = confirm_install
        self._on_activate = on_activate

    # -- Operations ----------------------------------------------------------

    def register(self, specs: Iterable[SpecInput]) -> list[ResolvedPackage]:
        """
        Install missing packages and register everything on disk.

        Packages already on disk are registered as-is, without any git
        command. Packages that fail to install are not registered; their
        errors are raised after the healthy ones are registered.

        Args:
            specs: Source strings, mappings or PackageSpecs

        Returns:
            Packages from ``specs`` that are on disk, in order

        Raises:
            SpecError: If a specification is malformed
            ConflictError: If two specifications for one path disagree
            PreconditionError: If something must be installed and git is missing
            PackageOperationError: If some packages failed to install
        """
        packages = resolve_packages(specs, self.packages_root)
        to_install = [pkg for pkg in packages if not pkg.path.exists()]

        install_states: list[SyncState] = []
        if to_install:
            ensure_git_executable()
            install_states = self._install(to_install)
        failed_install = {state.path for state in install_states if not state.did_install}

        on_disk: list[ResolvedPackage] = []
        for pkg in packages:
            if pkg.path in failed_install:
                continue
            on_disk.append(pkg)
            if self.registry.add(pkg):
                logger.debug("Registered %s at %s", pkg.name, pkg.path)
                if self._on_activate is not None:
                    self._on_activate(pkg)

        errors = {state.name: state.error for state in install_states if state.failed}
        if errors:
            raise PackageOperationError("installation", errors)
        return on_disk

    def sync(
        self,
        names: Iterable[str] | None = None,
        auto_apply: bool = False,
        skip_fetch: bool = False,
    ) -> SyncReport:
        """
        Download updates and compute what would change.

        Args:
            names: Packages to sync (default: all registered). Named packages
                may also be on disk without being registered.
            auto_apply: Apply the report right away
            skip_fetch: Use what is already fetched

        Returns:
            The report; pending unless ``auto_apply`` is set
        """
        packages = self._select(names)
        if not packages:
            logger.warning("Nothing to update")
            return SyncReport(self, [])

        ensure_git_executable()
        states = [SyncState(package=pkg) for pkg in packages]
        self._run(download_pipeline(skip_fetch=skip_fetch), states, "Downloading updates")

        report = SyncReport(self, states)
        if auto_apply:
            report.apply()
        return report

    def remove(self, names: Iterable[str]) -> list[ResolvedPackage]:
        """
        Delete packages from disk and unregister them.

        Args:
            names: Package names, registered or only on disk

        Returns:
            Removed packages
        """
        packages = self._select(list(names))
        if not packages:
            logger.warning("Nothing to remove")
            return []

        for pkg in packages:
            self.events.emit(LifecycleEvent.PRE_DELETE, pkg)
            if pkg.path.is_symlink():
                pkg.path.unlink()
            elif pkg.path.exists():
                shutil.rmtree(pkg.path)
            self.registry.remove(pkg.path)
            logger.info("Removed package `%s`", pkg.name)
            self.events.emit(LifecycleEvent.POST_DELETE, pkg)
        return packages

    def list(self) -> list[PackageInfo]:
        """
        Describe every managed package.

        Registered packages come first in registration order, then
        unregistered directories under the packages root sorted by name.
        An unset version is replaced with the remote's default branch.
        """
        registered = self.registry.packages()
        unregistered = [self._package_from_dir(path) for path in self._unregistered_dirs()]

        states = [SyncState(package=pkg, origin=pkg.spec.source) for pkg in registered]
        states.extend(SyncState(package=pkg) for pkg in unregistered)
        if any(state.origin is None or state.package.spec.version is None for state in states):
            ensure_git_executable()
            self._run(inspect_pipeline(), states)

        n_registered = len(registered)
        return [
            PackageInfo(
                spec=self._inspected_spec(state, explicit_default=True),
                path=state.path,
                was_added=i < n_registered,
            )
            for i, state in enumerate(states)
        ]

    # -- Internals -----------------------------------------------------------

    def _run(
        self, pipeline: Pipeline, states: list[SyncState], title: str | None = None
    ) -> ScheduleResult:
        items = [pipeline.work_item(state) for state in states]
        result = self.scheduler.run(items, title=title)
        logger.debug(
            "%s: %d completed, %d failed, %d skipped in %.2fs",
            title or "Inspecting packages",
            result.completed,
            result.failed,
            result.skipped,
            result.duration_seconds,
        )
        return result

    def _install(self, packages: list[ResolvedPackage]) -> list[SyncState]:
        states = [SyncState(package=pkg) for pkg in packages]
        sources = [pkg.spec.source for pkg in packages]
        if self._confirm_install is not None and not self._confirm_install(sources):
            for state in states:
                state.add_error("Installation was not confirmed")
            return states

        for pkg in packages:
            self.events.emit(LifecycleEvent.PRE_INSTALL, pkg)

        self.packages_root.mkdir(parents=True, exist_ok=True)
        self._run(install_pipeline(format_timestamp()), states, "Installing packages")

        for state in states:
            if state.failed:
                continue
            # post-install comes last: the package is in its initial version
            self.events.emit(LifecycleEvent.PRE_UPDATE, state.package)
            self.events.emit(LifecycleEvent.POST_UPDATE, state.package)
            regenerate_helptags(state.path, on_error=state.add_warning)
            self.events.emit(LifecycleEvent.POST_INSTALL, state.package)
        return states

    def _apply_updates(self, states: list[SyncState]) -> None:
        if not states:
            return

        timestamp = format_timestamp()
        for state in states:
            if not state.failed and state.has_update:
                self.events.emit(LifecycleEvent.PRE_UPDATE, state.package)

        self._run(apply_pipeline(timestamp), states, "Applying updates")

        for state in states:
            if not state.did_checkout:
                continue
            if state.has_update:
                logger.info("Updated state to `%s` in `%s`", state.version_label, state.name)
                self.events.emit(LifecycleEvent.POST_UPDATE, state.package)
            regenerate_helptags(state.path, on_error=state.add_warning)

        append_update_log(
            self.config.log_file, render_report(states, include_unchanged=False), timestamp
        )

    def _unregistered_dirs(self) -> list[Path]:
        if not self.packages_root.is_dir():
            return []
        return sorted(
            path
            for path in self.packages_root.iterdir()
            if path.is_dir() and path not in self.registry
        )

    def _package_from_dir(self, path: Path) -> ResolvedPackage:
        # Source is a placeholder until the origin URL is read from git
        spec = PackageSpec(source=path.as_uri(), name=path.name)
        return ResolvedPackage(spec=spec, path=path)

    def _inspected_spec(self, state: SyncState, explicit_default: bool = False) -> PackageSpec:
        if state.failed:
            logger.warning("Could not inspect `%s`: %s", state.name, state.error)
        spec = state.package.spec
        update: dict[str, object] = {}
        if state.origin and state.origin != spec.source:
            update["source"] = state.origin
        if explicit_default and spec.version is None and state.version_label:
            update["version"] = state.version_label
        return spec.model_copy(update=update) if update else spec

    def _select(self, names: Iterable[str] | None) -> list[ResolvedPackage]:
        """Registered packages by name, then unregistered ones on disk."""
        if names is None:
            return self.registry.packages()

        wanted = list(dict.fromkeys(names))
        selected = [pkg for pkg in self.registry if pkg.name in wanted]
        found = {pkg.name for pkg in selected}

        extra_dirs = [
            path
            for path in self._unregistered_dirs()
            if path.name in wanted and path.name not in found
        ]
        if extra_dirs:
            ensure_git_executable()
            states = [SyncState(package=self._package_from_dir(path)) for path in extra_dirs]
            self._run(Pipeline([ORIGIN]), states)
            for state in states:
                pkg = ResolvedPackage(spec=self._inspected_spec(state), path=state.path)
                selected.append(pkg)
                found.add(pkg.name)

        for name in wanted:
            if name not in found:
                logger.warning("Package `%s` is not managed by gitpack", name)
        return selected
