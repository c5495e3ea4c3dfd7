"""
Rich progress display for scheduler rounds.

Implements the scheduler's callback protocol. Callbacks arrive on the
thread that called ``JobScheduler.run``, so no locking is needed.
"""

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
)


class RichProgressCallback:
    """
    Shows one transient progress bar per round.

    Example:
        >>> callback = RichProgressCallback(Console(stderr=True))
        >>> scheduler = JobScheduler(callback=callback)
    """

    def __init__(self, console: Console):
        self.console = console
        self._progress: Progress | None = None
        self._task: TaskID | None = None

    def on_begin(self, title: str, total: int) -> None:
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            console=self.console,
            transient=True,
        )
        self._progress.start()
        self._task = self._progress.add_task(title, total=total)

    def on_report(self, title: str, finished: int, total: int, name: str, percent: int) -> None:
        if self._progress is None or self._task is None:
            return
        self._progress.update(
            self._task, completed=finished, description=f"{title} ({name})"
        )

    def on_end(self, title: str, total: int) -> None:
        if self._progress is None:
            return
        self._progress.stop()
        self._progress = None
        self._task = None
        self.console.print(f"[green]✓[/green] {title} ({total}/{total})")
