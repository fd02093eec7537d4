"""Terminal logging and progress display built on rich."""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

console = Console()


def configure_logging(verbose: int = 0, target: Optional[Console] = None) -> None:
    """Route log records through rich (-v info, -vv debug)."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=target or console, rich_tracebacks=True)],
        force=True,
    )


class ProgressReporter:
    """Progress bar that can be passed as a loader progress callback.

        with ProgressReporter("Card details") as report:
            await controller.load_cards("A1", progress_callback=report)
    """

    def __init__(self, description: str = "Loading card details", target: Optional[Console] = None) -> None:
        self._description = description
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            TimeElapsedColumn(),
            console=target or console,
        )
        self._task: Optional[int] = None

    def __enter__(self) -> "ProgressReporter":
        self._progress.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._progress.stop()

    def __call__(self, processed: int, total: int) -> None:
        if self._task is None:
            self._task = self._progress.add_task(self._description, total=total)
        self._progress.update(self._task, completed=processed, total=total)

    @property
    def completed(self) -> int:
        if self._task is None:
            return 0
        task = next(t for t in self._progress.tasks if t.id == self._task)
        return int(task.completed)
