"""
Rich-based live progress panel for index loading.

Loading a full encyclopedia index means reading tens of millions of lines
before the service can answer anything, so the CLI shows a live panel instead
of scrolling log output. Library callers get a disabled display that only
records metrics.
"""

import time
from typing import Any, Dict, Optional

from rich import box
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text


class ProgressDisplay:
    """
    Context manager for a live-updating metrics panel.

    Usage:
        with ProgressDisplay("Loading index") as progress:
            for n, line in enumerate(lines, 1):
                progress.update(Lines=n, Titles=len(table))

    With enabled=False nothing is drawn, but metrics are still tracked so
    callers can read them back from `metrics` afterwards.
    """

    def __init__(
        self,
        title: str = "Progress",
        enabled: bool = True,
        refresh_per_second: int = 4,
        update_interval: int = 10000,
        console: Optional[Console] = None,
    ):
        self.title = title
        self.enabled = enabled
        self.refresh_per_second = refresh_per_second
        self.update_interval = update_interval
        self.console = console

        self.metrics: Dict[str, Any] = {}
        self.live: Optional[Live] = None
        self.start_time: float = 0
        self.iteration_count: int = 0
        self._primary_metric: Optional[str] = None

    def __enter__(self):
        self.start_time = time.time()
        self.metrics["Elapsed"] = 0.0

        if self.enabled:
            self.live = Live(
                self._make_panel(),
                refresh_per_second=self.refresh_per_second,
                console=self.console,
            )
            self.live.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._update_auto_metrics()
        if self.live:
            self.live.update(self._make_panel())
            self.live.__exit__(exc_type, exc_val, exc_tb)
            self.live = None
        return False

    def update(self, **metrics):
        """Record metrics; the panel is redrawn every `update_interval` calls."""
        self.iteration_count += 1
        self.metrics.update(metrics)

        # First metric ever reported drives the rate
        if self._primary_metric is None and metrics:
            self._primary_metric = next(iter(metrics.keys()))

        if self.live and self.iteration_count % self.update_interval == 0:
            self._update_auto_metrics()
            self.live.update(self._make_panel())

    def _update_auto_metrics(self):
        elapsed = time.time() - self.start_time
        self.metrics["Elapsed"] = elapsed

        if self._primary_metric and self._primary_metric in self.metrics:
            count = self.metrics[self._primary_metric]
            if elapsed > 0 and isinstance(count, (int, float)):
                self.metrics["Rate"] = count / elapsed

    def _make_panel(self) -> Panel:
        grid = Table.grid(padding=(0, 2))
        grid.add_column(justify="left", no_wrap=True)
        grid.add_column(justify="right", no_wrap=True)

        for key, value in self.metrics.items():
            label = Text(f"{key}:", style="bold grey50")
            grid.add_row(label, Text(format_metric(key, value), style="bright_cyan"))

        return Panel(
            grid,
            title=self.title,
            box=box.SIMPLE,
            border_style="bright_black",
        )


def format_metric(key: str, value: Any) -> str:
    """Format a metric value for display."""
    if isinstance(value, float):
        if key == "Elapsed":
            if value >= 3600:
                hours = int(value // 3600)
                minutes = int((value % 3600) // 60)
                seconds = int(value % 60)
                return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
            minutes = int(value // 60)
            seconds = int(value % 60)
            return f"{minutes:02d}:{seconds:02d}"
        if "rate" in key.lower():
            return f"{value:,.1f}/s"
        return f"{value:,.2f}"
    if isinstance(value, int):
        return f"{value:,}"
    return str(value)
