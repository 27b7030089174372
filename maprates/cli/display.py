"""Rich rendering of chart datasets for the terminal."""

from typing import List, Optional

from rich.console import Console
from rich.table import Table
from rich import box

from maprates.analysis.conversions import Conversion
from maprates.chart.dataset import ChartDataset
from maprates.chart.export import conversions_to_frame


def _fmt(value: Optional[float]) -> str:
    if value is None:
        return "-"
    return f"{value:.4f}"


class DatasetDisplay:
    """Prints datasets and selection summaries."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(width=120)

    def show_dataset(self, dataset: ChartDataset, title: str = "") -> None:
        table = Table(title=title or None, box=box.SIMPLE_HEAVY, header_style="bold")
        table.add_column("Date", style="dim", no_wrap=True)
        for series in dataset.series:
            table.add_column(series.name, justify="right", style=self._style(series.kind))

        for i, label in enumerate(dataset.labels):
            table.add_row(label, *[_fmt(s.values[i]) for s in dataset.series])

        self.console.print(table)

    def show_conversions(self, conversions: List[Conversion], home_currency: str, amount: float) -> None:
        if not conversions:
            self.console.print("[yellow]No conversion rates available[/yellow]")
            return

        table = Table(title=f"{amount:,.2f} {home_currency}", box=box.SIMPLE_HEAVY, header_style="bold")
        for column in ("Country", "Currency", "Code", "Rate", "Amount"):
            table.add_column(column, justify="right" if column in ("Rate", "Amount") else "left")
        for row in conversions_to_frame(conversions).itertuples(index=False):
            table.add_row(row.country, row.currency, row.code, f"{row.rate:.6f}", f"{row.amount:,.2f}")
        self.console.print(table)

    def show_countries(self, rows: List[tuple]) -> None:
        table = Table(box=box.SIMPLE, header_style="bold")
        table.add_column("Country")
        table.add_column("Currency")
        for country, code in rows:
            table.add_row(country, code)
        self.console.print(table)

    @staticmethod
    def _style(kind: str) -> str:
        return {"primary": "cyan", "overlay": "green", "indicator": "magenta"}.get(kind, "")
