"""
Bounded-concurrency job scheduler.

This module provides the JobScheduler class which drives a list of
independent work items, one package each, through a thread pool. Each item
repeatedly produces a git command, the scheduler runs it, and the item
consumes the result. Items run in parallel with each other but every item's
commands run strictly one after another.
"""

from __future__ import annotations

import logging
import math
import os
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from typing import Callable, Protocol

from gitpack.core.exceptions import GitpackError
from gitpack.core.git.commands import Command
from gitpack.core.git.runner import CommandRunner, ProcessResult, run_command
from gitpack.core.packages.models import SyncState

logger = logging.getLogger(__name__)

DEFAULT_JOB_TIMEOUT = 60.0

Producer = Callable[[SyncState], Command | None]
Consumer = Callable[[SyncState, ProcessResult], None]


def default_concurrency() -> int:
    """Twice the number of CPUs, and at least one."""
    return max(1, 2 * (os.cpu_count() or 1))


class SchedulerCallback(Protocol):
    """Protocol for scheduler progress callbacks."""

    def on_begin(self, title: str, total: int) -> None:
        """Called once before any item runs (0 of total)."""
        ...

    def on_report(self, title: str, finished: int, total: int, name: str, percent: int) -> None:
        """Called after each item finishes.

        Args:
            title: Round title (e.g. "Installing packages")
            finished: Items finished so far, including skipped ones
            total: Total items in the round
            name: Name of the item that just finished
            percent: floor(100 * finished / total)
        """
        ...

    def on_end(self, title: str, total: int) -> None:
        """Called once when every item has finished or timed out."""
        ...


class _NoOpCallback:
    """Default no-op callback implementation."""

    def on_begin(self, title: str, total: int) -> None:
        pass

    def on_report(self, title: str, finished: int, total: int, name: str, percent: int) -> None:
        pass

    def on_end(self, title: str, total: int) -> None:
        pass


@dataclass
class WorkItem:
    """
    The scheduler's unit of work.

    Attributes:
        state: Package state the item reads and updates
        producer: Returns the next command to run, or None when done
        consumer: Updates the state from a command's result
        max_commands: Upper bound on the commands the item runs in one round
    """

    state: SyncState
    producer: Producer
    consumer: Consumer
    max_commands: int = 1
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _abandoned: bool = field(default=False, repr=False)

    @property
    def name(self) -> str:
        return self.state.name

    @property
    def abandoned(self) -> bool:
        return self._abandoned

    def consume_unless_abandoned(self, result: ProcessResult) -> bool:
        """Pass ``result`` to the consumer. Returns False if the item was abandoned."""
        with self._lock:
            if self._abandoned:
                return False
            self.consumer(self.state, result)
            return True

    def fail_unless_abandoned(self, reason: str) -> None:
        with self._lock:
            if not self._abandoned:
                self.state.add_error(reason)

    def abandon(self, reason: str) -> bool:
        """Stop accepting results and record ``reason`` as the item's error."""
        with self._lock:
            if self._abandoned:
                return False
            self._abandoned = True
            self.state.add_error(reason)
            return True


@dataclass
class ScheduleResult:
    """
    Aggregate result of one scheduler round.

    Attributes:
        total: Number of items passed in
        completed: Items that finished without error
        failed: Items that finished with an error (timeouts included)
        skipped: Items skipped because they had errored before the round
        timed_out: Items still running when the global timeout passed
        duration_seconds: Wall-clock time of the round
    """

    total: int = 0
    completed: int = 0
    failed: int = 0
    skipped: int = 0
    timed_out: int = 0
    duration_seconds: float = 0.0


class JobScheduler:
    """
    Runs work items with at most ``concurrency`` git processes at a time.

    Failures are isolated per item: a failing command records its stderr in
    that item's state and the other items keep going.

    Example:
        >>> scheduler = JobScheduler(concurrency=4, job_timeout=30)
        >>> result = scheduler.run(items, title="Downloading updates")
        >>> print(f"{result.failed} of {result.total} failed")
    """

    def __init__(
        self,
        concurrency: int | None = None,
        job_timeout: float = DEFAULT_JOB_TIMEOUT,
        runner: CommandRunner | None = None,
        callback: SchedulerCallback | None = None,
    ):
        """
        Initialize the scheduler.

        Args:
            concurrency: Maximum parallel items (defaults to 2x CPU count)
            job_timeout: Timeout in seconds for each git command
            runner: Command runner (defaults to running real processes)
            callback: Progress callback
        """
        self.concurrency = max(1, concurrency or default_concurrency())
        self.job_timeout = job_timeout
        self.runner: CommandRunner = runner or run_command
        self._callback: SchedulerCallback = callback or _NoOpCallback()

    def global_timeout(self, n_items: int, max_commands: int = 1) -> float:
        """
        Upper bound on a round.

        Every item may run up to ``max_commands`` commands, each allowed one
        job timeout, and items run in sequential batches of ``concurrency``.
        """
        batches = max(1, math.ceil(n_items / self.concurrency))
        return self.job_timeout * max(1, max_commands) * batches

    def run(self, items: list[WorkItem], title: str | None = None) -> ScheduleResult:
        """
        Run every non-errored item to completion.

        Blocks until all items finish or the global timeout passes.

        Args:
            items: Work items, one per package
            title: Progress title; no progress is reported when None

        Returns:
            Aggregate counters for the round
        """
        result = ScheduleResult(total=len(items))
        if not items:
            return result

        start_time = time.time()
        callback: SchedulerCallback = self._callback if title is not None else _NoOpCallback()
        label = title or ""
        total = len(items)
        finished = 0

        def report(name: str) -> None:
            nonlocal finished
            finished += 1
            percent = math.floor(100 * finished / total)
            callback.on_report(label, finished, total, name, percent)

        callback.on_begin(label, total)

        runnable: list[WorkItem] = []
        for item in items:
            # Errored before this round: skip but count as finished
            if item.state.failed:
                result.skipped += 1
                report(item.name)
            else:
                runnable.append(item)

        if runnable:
            executor = ThreadPoolExecutor(
                max_workers=min(self.concurrency, len(runnable)),
                thread_name_prefix="gitpack-job",
            )
            futures: dict[Future[None], WorkItem] = {
                executor.submit(self._drive, item): item for item in runnable
            }
            pending = set(futures)
            max_commands = max(item.max_commands for item in runnable)
            deadline = self.global_timeout(len(runnable), max_commands)
            try:
                for future in as_completed(futures, timeout=deadline):
                    pending.discard(future)
                    item = futures[future]
                    if item.state.failed:
                        result.failed += 1
                    else:
                        result.completed += 1
                    report(item.name)
            except FuturesTimeoutError:
                reason = f"Timed out after {deadline:g}s waiting for git to finish"
                for future in futures:
                    if future not in pending:
                        continue
                    item = futures[future]
                    if future.done():
                        if item.state.failed:
                            result.failed += 1
                        else:
                            result.completed += 1
                        report(item.name)
                        continue
                    if item.abandon(reason):
                        logger.warning("%s: %s", item.name, reason)
                    result.timed_out += 1
                    result.failed += 1
                    report(item.name)
            finally:
                executor.shutdown(wait=False, cancel_futures=True)

        callback.on_end(label, total)
        result.duration_seconds = time.time() - start_time
        return result

    def _drive(self, item: WorkItem) -> None:
        """Produce, run and consume commands for one item until it is done."""
        state = item.state
        try:
            while not state.failed and not item.abandoned:
                command = item.producer(state)
                if command is None:
                    return
                process_result = self.runner(command, timeout=self.job_timeout)
                if not item.consume_unless_abandoned(process_result):
                    return
        except GitpackError as e:
            item.fail_unless_abandoned(str(e))
        except Exception as e:
            logger.exception("Unexpected error while processing %s", item.name)
            item.fail_unless_abandoned(repr(e))
