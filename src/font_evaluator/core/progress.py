"""Progress display for streamed recommendation requests."""

from __future__ import annotations

from types import TracebackType

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
)


class StreamProgress:
    """Rich progress bar driven by stream progress frames.

    Use as a context manager and pass ``update`` as the ``on_progress``
    callback of a recommendation request.
    """

    def __init__(self, console: Console | None = None, description: str = "Analyzing fonts") -> None:
        """Initialize progress display.

        Args:
            console: Optional console instance. If None, creates a new one.
            description: Label shown next to the bar.
        """
        self.console = console or Console()
        self.description = description
        self.last_value = 0.0
        self._progress: Progress | None = None
        self._task: TaskID | None = None

    def __enter__(self) -> StreamProgress:
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=self.console,
            transient=True,
        )
        self._progress.start()
        self._task = self._progress.add_task(f"[cyan]{self.description}...", total=100)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._progress is not None:
            self._progress.stop()
        self._progress = None
        self._task = None

    def update(self, value: float) -> None:
        """Move the bar to ``value`` percent (clamped to 0..100)."""
        value = max(0.0, min(100.0, value))
        self.last_value = value
        if self._progress is None or self._task is None:
            return
        self._progress.update(
            self._task,
            completed=value,
            description=f"[cyan]{self.description}... {value:.0f}%",
        )
