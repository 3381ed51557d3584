"""
Sum Club Predictor — Live Dashboard
Terminal dashboard using Rich: standing prediction, strategy weights,
recent sessions and an activity feed.
"""

import threading
import time
from collections import deque
from datetime import datetime, timezone

from rich import box
from rich.align import Align
from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

import config

# ── Dashboard State (thread-safe updates from the service) ──────────────────


class DashboardState:
    """Thread-safe activity feed for dashboard rendering."""

    def __init__(self):
        self._lock = threading.Lock()
        self.start_time: datetime = datetime.now(timezone.utc)
        self.activity_log: deque = deque(maxlen=20)

    def add_activity(self, message: str, style: str = "white"):
        """Add a line to the activity log."""
        with self._lock:
            ts = datetime.now(timezone.utc).strftime("%H:%M:%S")
            self.activity_log.appendleft((ts, message, style))

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "start_time": self.start_time,
                "activity_log": list(self.activity_log),
            }


# Global dashboard state
dash_state = DashboardState()

LABEL_STYLES = {"tai": "bold red", "xiu": "bold cyan"}


# ── Rendering Functions ─────────────────────────────────────────────────────

def _make_header(coordinator) -> Panel:
    """Render the top header banner."""
    snap = dash_state.snapshot()
    status = "POLLING" if coordinator.running else "STOPPED"
    status_style = "green" if coordinator.running else "red"

    title = Text()
    title.append("  SUM CLUB PREDICTOR ", style="bold white")
    title.append("─── ", style="dim")
    title.append(f"Status: {status}", style=status_style)

    uptime = datetime.now(timezone.utc) - snap["start_time"]
    hours, remainder = divmod(int(uptime.total_seconds()), 3600)
    minutes, seconds = divmod(remainder, 60)
    title.append(f"  │  Uptime: {hours:02d}:{minutes:02d}:{seconds:02d}", style="dim")

    return Panel(Align.left(title), box=box.DOUBLE_EDGE, style="bright_blue", height=3)


def _make_prediction_panel(coordinator) -> Panel:
    """Render the standing prediction and pattern digest."""
    payload = coordinator.prediction_payload()

    grid = Table(show_header=False, box=None, padding=(0, 2), expand=True)
    grid.add_column("label", style="dim", ratio=1)
    grid.add_column("value", style="bold", ratio=2)

    label = payload["prediction"]
    grid.add_row("Next Session", str(payload["current_session"] or "—"))
    grid.add_row("Prediction", Text(label.upper(), style=LABEL_STYLES.get(label, "white")))
    grid.add_row("Confidence", payload["confidence"])
    grid.add_row("Last Result", f"{payload['previous_session'] or '—'}  {payload['result']}")
    grid.add_row("Pattern", Text(str(payload["pattern"]), style="white"))

    last_poll = coordinator.last_poll
    poll_str = f"{time.time() - last_poll:.0f}s ago" if last_poll else "—"
    grid.add_row("Last Poll", poll_str)
    grid.add_row(
        "Errors",
        Text(str(coordinator.errors), style="red" if coordinator.errors else "green"),
    )

    return Panel(grid, title="[bold green]Prediction[/]", border_style="green", box=box.ROUNDED)


def _make_weights_panel(coordinator) -> Panel:
    """Render the strategy weight table."""
    stats = coordinator.manager.stats()

    table = Table(box=box.SIMPLE, show_edge=False, expand=True)
    table.add_column("Strategy", no_wrap=True)
    table.add_column("Weight", justify="right", width=8)
    table.add_column("Vote", justify="center", width=8)

    for row in stats["strategies"]:
        vote = row["vote"]
        table.add_row(
            row["id"],
            f"{row['weight']:.3f}",
            Text(vote, style=LABEL_STYLES.get(vote, "dim")),
        )

    return Panel(
        table,
        title=f"[bold yellow]Strategies ({stats['updates_applied']} updates)[/]",
        border_style="yellow",
        box=box.ROUNDED,
    )


def _make_sessions_panel(coordinator) -> Panel:
    """Render the most recent sessions."""
    records = coordinator.display_history()[:10]
    if not records:
        return Panel(
            Align.center(Text("No sessions yet", style="dim italic")),
            title="[bold red]Recent Sessions[/]",
            border_style="red",
            box=box.ROUNDED,
        )

    table = Table(box=box.SIMPLE, show_edge=False, expand=True)
    table.add_column("Session", style="dim")
    table.add_column("Dice", justify="center")
    table.add_column("Total", justify="right")
    table.add_column("Result", justify="center")
    for r in records:
        table.add_row(
            str(r.session_id),
            "-".join(str(d) for d in r.dice),
            str(r.total),
            Text(r.result, style=LABEL_STYLES.get(r.category.display, "white")),
        )

    return Panel(table, title="[bold red]Recent Sessions[/]", border_style="red", box=box.ROUNDED)


def _make_activity_panel() -> Panel:
    """Render the recent activity log."""
    text = Text()
    entries = dash_state.snapshot()["activity_log"]

    if not entries:
        text.append("  Waiting for activity...", style="dim italic")
    else:
        for i, (ts, msg, style) in enumerate(entries):
            if i > 0:
                text.append("\n")
            text.append(f"  {ts} ", style="dim")
            text.append(msg, style=style)

    return Panel(text, title="[bold magenta]Activity Log[/]", border_style="magenta", box=box.ROUNDED)


def _make_config_bar() -> Panel:
    """Render a compact config/footer bar."""
    text = Text()
    text.append("  Poll: ", style="dim")
    text.append(f"{config.POLL_INTERVAL:g}s", style="white")
    text.append("  |  ", style="dim")
    text.append("EMA: ", style="dim")
    text.append(f"{config.EMA_ALPHA}", style="white")
    text.append("  |  ", style="dim")
    text.append("Fit window: ", style="dim")
    text.append(f"{config.HISTORY_WINDOW}", style="white")
    text.append("  |  ", style="dim")
    text.append(datetime.now(timezone.utc).strftime("%H:%M:%S UTC"), style="dim")

    return Panel(text, box=box.HORIZONTALS, style="dim", height=3)


def build_dashboard(coordinator) -> Layout:
    """Build the complete dashboard layout."""
    layout = Layout()

    layout.split_column(
        Layout(name="header", size=3),
        Layout(name="body", ratio=1),
        Layout(name="footer", size=3),
    )
    layout["body"].split_row(
        Layout(name="left", ratio=2),
        Layout(name="right", ratio=3),
    )
    layout["left"].split_column(
        Layout(name="prediction", ratio=2),
        Layout(name="weights", ratio=3),
    )
    layout["right"].split_column(
        Layout(name="sessions", ratio=3),
        Layout(name="activity", ratio=2),
    )

    layout["header"].update(_make_header(coordinator))
    layout["prediction"].update(_make_prediction_panel(coordinator))
    layout["weights"].update(_make_weights_panel(coordinator))
    layout["sessions"].update(_make_sessions_panel(coordinator))
    layout["activity"].update(_make_activity_panel())
    layout["footer"].update(_make_config_bar())

    return layout


# ── Dashboard Runner (threaded) ─────────────────────────────────────────────

_live: Live | None = None
_dashboard_thread: threading.Thread | None = None
_dashboard_running = False


def start_dashboard(coordinator):
    """Start the live dashboard in a background thread."""
    global _live, _dashboard_thread, _dashboard_running

    console = Console()
    _live = Live(
        build_dashboard(coordinator),
        console=console,
        refresh_per_second=2,
        screen=True,
    )

    _dashboard_running = True

    def _run():
        with _live:
            while _dashboard_running:
                try:
                    _live.update(build_dashboard(coordinator))
                except Exception:
                    pass
                time.sleep(0.5)

    _dashboard_thread = threading.Thread(target=_run, daemon=True, name="dashboard")
    _dashboard_thread.start()


def stop_dashboard():
    """Stop the dashboard."""
    global _dashboard_running
    _dashboard_running = False


def dash_log(message: str, style: str = "white"):
    """Log a message to the dashboard activity feed."""
    dash_state.add_activity(message, style)
