"""
Terminal dashboard for soil readings and advisory cards.
Full-screen terminal interface using Rich library.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from rich.align import Align
from rich.console import Console, Group
from rich.layout import Layout
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from smfarm.collector import RefreshResult
from smfarm.collector.units import round_half_up
from smfarm.shared.models import PARAMETER_LABELS, AdvisoryCard, ReadingRecord, Severity
from smfarm.advisor.stats import MetricSummary

logger = logging.getLogger(__name__)

NIL = "–"

SEVERITY_STYLES = {
    Severity.OK: "green",
    Severity.WARN: "yellow",
    Severity.ACTION: "bold red",
}

# Advisor grid rows: N & EC, P & pH, K & MOI
CARD_ROWS = [("n", "ec"), ("p", "ph"), ("k", "moi")]

TABLE_ROWS = 60


def fmt_time(ts: Optional[datetime]) -> str:
    return ts.strftime("%Y-%m-%d %H:%M:%S") if ts else NIL


def fmt1(value: Optional[float]) -> str:
    return f"{value:.1f}" if value is not None else NIL


def fmt_measured(value: Optional[float]) -> str:
    """Value as measured: 55.0 prints as 55, 55.5 as 55.5."""
    if value is None:
        return NIL
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def fmt_percent(value: Optional[float], empty: str = NIL) -> str:
    """Whole percent, halves rounded up."""
    if value is None:
        return empty
    return f"{int(round_half_up(value, 0))}%"


def fmt_battery(value: Optional[float]) -> str:
    """Battery for the KPI panel, clamped to 0-100%."""
    if value is None:
        return NIL
    return fmt_percent(max(0.0, min(100.0, value)))


def battery_style(value: Optional[float]) -> str:
    if value is None:
        return "dim"
    if value < 15:
        return "bold red blink"
    if value < 50:
        return "yellow"
    return "green"


class TerminalMonitor:
    """Terminal-based dashboard using Rich"""

    def __init__(self, console: Optional[Console] = None, compact: bool = False):
        self.console = console or Console()
        # Compact mode hides action chips and the battery summary
        self.compact = compact

    def render(self, result: RefreshResult):
        """Redraw the dashboard for a refresh result."""
        try:
            layout = self.create_layout(result)
            self.console.clear()
            self.console.print(layout)
        except Exception as e:
            logger.error(f"Display update failed: {e}")
            self.console.print(Text(f"DISPLAY ERROR: {e}", style="bold red"))

    def create_layout(self, result: RefreshResult) -> Layout:
        layout = Layout()
        layout.split_column(
            Layout(self._create_header(result), name="header", size=3),
            Layout(name="body"),
        )
        layout["body"].split_row(
            Layout(name="left", ratio=2),
            Layout(name="right", ratio=3),
        )
        layout["left"].split_column(
            Layout(self._create_kpi_panel(result.latest), name="kpis", size=13),
            Layout(self._create_summary_panel(result.summary), name="summary"),
        )
        layout["right"].split_column(
            Layout(self._create_advisor_panel(result), name="advisor", ratio=2),
            Layout(self._create_table_panel(result.rows), name="table", ratio=3),
        )
        return layout

    def _create_header(self, result: RefreshResult) -> Panel:
        header_text = Text()
        header_text.append("SOIL MONITOR", style="bold cyan")
        header_text.append(f" - updated {fmt_time(result.updated_at)}", style="white")
        header_text.append(f" - devices: {len(result.devices)}", style="white")
        if not result.fetch_ok:
            header_text.append(" - SOURCE OFFLINE", style="bold red")
        return Panel(Align.center(header_text), style="cyan")

    def _create_kpi_panel(self, latest: Optional[ReadingRecord]) -> Panel:
        table = Table(show_header=False, box=None)
        table.add_column("Metric", style="bold white", width=10)
        table.add_column("Value", style="white")

        if latest is None:
            for label in ("EC", "pH", "N", "P", "K", "MOI", "BAT", "RSSI", "SNR", "Device"):
                table.add_row(label, NIL)
            return Panel(table, title="LATEST", style="cyan")

        table.add_row("EC", f"{fmt1(latest.conductivity)} ppm")
        table.add_row("pH", fmt1(latest.ph))
        table.add_row("N", f"{fmt1(latest.nitrogen)} ppm")
        table.add_row("P", f"{fmt1(latest.phosphorus)} ppm")
        table.add_row("K", f"{fmt1(latest.potassium)} ppm")
        table.add_row("MOI", f"{fmt_measured(latest.moisture)}%" if latest.moisture is not None else NIL)
        table.add_row(
            "BAT",
            Text(fmt_battery(latest.battery_percent), style=battery_style(latest.battery_percent)),
        )
        table.add_row("RSSI", fmt_measured(latest.signal_strength))
        table.add_row("SNR", fmt_measured(latest.signal_to_noise))
        table.add_row("Device", latest.device or NIL)
        return Panel(table, title="LATEST", style="cyan")

    def _create_summary_panel(self, summary: Dict[str, MetricSummary]) -> Panel:
        if not summary:
            return Panel(Text("No data in the selected range", style="dim"), title="SUMMARY", style="cyan")

        table = Table(show_header=True, header_style="bold cyan", box=None)
        table.add_column("Metric")
        table.add_column("Avg", justify="right")
        table.add_column("Min", justify="right")
        table.add_column("Max", justify="right")

        for metric, stats in summary.items():
            if metric == "bat" and self.compact:
                continue
            suffix = "%" if metric == "bat" else ""
            table.add_row(
                PARAMETER_LABELS[metric],
                f"{stats.avg:.2f}{suffix}",
                f"{stats.min:.2f}{suffix}",
                f"{stats.max:.2f}{suffix}",
            )
        return Panel(table, title="SUMMARY", style="cyan")

    def _card_text(self, card: AdvisoryCard) -> Text:
        style = SEVERITY_STYLES[card.severity]
        text = Text()
        text.append(card.title, style=style)
        text.append(f" - {card.message}\n", style="white")
        text.append(card.rationale, style="dim")
        if card.recommended_actions and not self.compact:
            text.append("\n")
            text.append(" · ".join(card.recommended_actions), style="italic")
        return text

    def _create_advisor_panel(self, result: RefreshResult) -> Panel:
        cards = {card.parameter_key: card for card in result.cards}
        table = Table.grid(expand=True, padding=(0, 1))
        table.add_column(ratio=1)
        table.add_column(ratio=1)

        for left, right in CARD_ROWS:
            cells: List[Panel] = []
            for key in (left, right):
                card = cards.get(key)
                if card is None:
                    cells.append(Panel(Text(f"{PARAMETER_LABELS[key]} no data", style="yellow")))
                    continue
                cells.append(Panel(self._card_text(card), border_style=SEVERITY_STYLES[card.severity]))
            table.add_row(*cells)

        device = result.advisor_device or "all devices"
        return Panel(Group(table), title=f"ADVISOR ({device})", style="cyan")

    def _create_table_panel(self, rows: List[ReadingRecord]) -> Panel:
        table = Table(show_header=True, header_style="bold cyan", box=None)
        for column in ("Time", "Device", "EC", "pH", "N", "P", "K", "MOI", "BAT"):
            table.add_column(column, justify="left" if column in ("Time", "Device") else "right")

        for r in rows[:TABLE_ROWS]:
            table.add_row(
                fmt_time(r.timestamp),
                r.device,
                fmt1(r.conductivity),
                fmt1(r.ph),
                fmt1(r.nitrogen),
                fmt1(r.phosphorus),
                fmt1(r.potassium),
                fmt1(r.moisture),
                fmt_percent(r.battery_percent, empty=""),
            )
        return Panel(table, title="RECENT READINGS", style="cyan")
