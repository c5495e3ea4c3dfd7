"""
Package lifecycle events and hook scripts.

Key Models:
    LifecycleEvent: pre/post install, update and delete
    PackageEventContext: Payload of every event
    HookResult: Result from hook script execution
    HookConfig: Hook configuration settings

Usage:
    from gitpack.core.hooks import EventBus, LifecycleEvent

    bus = EventBus(project_dir, config.hooks)
    bus.subscribe(LifecycleEvent.POST_UPDATE, on_update)
"""

from gitpack.core.hooks.discovery import discover_hooks
from gitpack.core.hooks.events import EventBus
from gitpack.core.hooks.executor import HookError, HookExecutor
from gitpack.core.hooks.models import (
    HookConfig,
    HookResult,
    LifecycleEvent,
    PackageEventContext,
)

__all__ = [
    "EventBus",
    "HookConfig",
    "HookError",
    "HookExecutor",
    "HookResult",
    "LifecycleEvent",
    "PackageEventContext",
    "discover_hooks",
]
