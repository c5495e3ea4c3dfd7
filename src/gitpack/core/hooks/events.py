"""
In-process lifecycle event bus.

Subscribers are plain callables receiving a PackageEventContext. After the
subscribers, hook scripts for the event are executed. Emission is
synchronous; callers emit from the control thread only.
"""

import logging
from collections import defaultdict
from collections.abc import Callable
from pathlib import Path

from gitpack.core.hooks.executor import HookExecutor
from gitpack.core.hooks.models import HookConfig, LifecycleEvent, PackageEventContext
from gitpack.core.packages.models import ResolvedPackage

logger = logging.getLogger(__name__)

Subscriber = Callable[[PackageEventContext], None]


class EventBus:
    """
    Dispatches lifecycle events to subscribers and hook scripts.

    Example:
        >>> bus = EventBus(Path.cwd())
        >>> bus.subscribe(LifecycleEvent.POST_INSTALL, lambda ctx: print(ctx.name))
        >>> bus.emit(LifecycleEvent.POST_INSTALL, package)
    """

    def __init__(
        self,
        project_dir: Path | None = None,
        hook_config: HookConfig | None = None,
        executor: HookExecutor | None = None,
    ):
        self._subscribers: dict[LifecycleEvent, list[Subscriber]] = defaultdict(list)
        if executor is None:
            executor = HookExecutor(project_dir or Path.cwd(), hook_config)
        self.executor = executor

    def subscribe(self, event: LifecycleEvent, callback: Subscriber) -> None:
        self._subscribers[LifecycleEvent(event)].append(callback)

    def unsubscribe(self, event: LifecycleEvent, callback: Subscriber) -> None:
        callbacks = self._subscribers.get(LifecycleEvent(event), [])
        if callback in callbacks:
            callbacks.remove(callback)

    def emit(self, event: LifecycleEvent, package: ResolvedPackage) -> PackageEventContext:
        """
        Emit one event for one package.

        Subscriber exceptions are logged and do not stop emission. Hook
        script failures propagate only when the hook config sets
        ``fail_on_error``.

        Returns:
            The context passed to subscribers and scripts
        """
        event = LifecycleEvent(event)
        version = package.spec.version
        context = PackageEventContext(
            event=event,
            name=package.name,
            source=package.spec.source,
            version=None if version is None else str(version),
            path=str(package.path),
        )
        logger.debug("Emitting %s for %s", event.value, package.name)

        for callback in list(self._subscribers.get(event, [])):
            try:
                callback(context)
            except Exception:
                logger.exception("Subscriber for %s failed on %s", event.value, package.name)

        self.executor.run(event.value, context)
        return context
