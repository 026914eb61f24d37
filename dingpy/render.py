from __future__ import annotations

from typing import Iterable

from rich.console import Console
from rich.table import Table
from rich import box
from rich.markup import escape

from .stats import RoundOutcome
from .util import fmt_ms

# Keep colors simple for SSH / VMs
_console = Console(color_system="standard", force_terminal=True)

HEADERS = ["Address", "Snt", "Recv", "Loss%", "Best", "Avg", "Wrst", "StDev", "Error"]


def build_table(
    outcomes: Iterable[RoundOutcome],
    title: str,
    *,
    ascii_mode: bool = False,
) -> Table:
    """Create a Rich Table summarising one generation, one row per address."""
    t = Table(
        box=box.SIMPLE if ascii_mode else box.ROUNDED,
        show_edge=True,
        show_lines=False,
        title=title,
        pad_edge=False,
    )
    for h in HEADERS:
        if h in {"Address", "Error"}:
            t.add_column(h, justify="left")
        else:
            t.add_column(h, justify="right", no_wrap=True)

    for o in sorted(outcomes, key=lambda o: o.address):
        if o.stats is None:
            t.add_row(o.address, "-", "-", "-", "-", "-", "-", "-", f"[red]{escape(str(o.error))}[/red]")
            continue
        st = o.stats
        got = st.received > 0
        t.add_row(
            o.address,
            str(st.sent),
            str(st.received),
            f"{100.0 * st.loss:.0f}",
            fmt_ms(st.min_rtt if got else None),
            fmt_ms(st.avg_rtt if got else None),
            fmt_ms(st.max_rtt if got else None),
            fmt_ms(st.stdev_rtt if got else None),
            "",
        )

    return t


def render_table(table: Table) -> str:
    """Render a Rich Table to a string (for printing without flicker)."""
    with _console.capture() as cap:
        _console.print(table)
    return cap.get()
