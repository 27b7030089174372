from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional

import typer

from maprates.app import build_app
from maprates.chart.config import ChartConfig
from maprates.cli.display import DatasetDisplay
from maprates.config import load_config
from maprates.data_collection.currencies import CountryCurrencyResolver
from maprates.data_collection.providers.exchange_rate_host import ExchangeRateHostClient
from maprates.persistence import PreferenceStore
from maprates.selection.entitlements import PremiumStatus
from maprates.utils.errors import ConfigurationError, DataProviderError, ValidationError
from maprates.utils.paths import resolve_project_path


app = typer.Typer(add_completion=False, help="MapRates CLI")


def _preferences(config) -> PreferenceStore:
    return PreferenceStore(resolve_project_path(config.preferences_path))


def _load(config_path: str):
    try:
        return load_config(config_path)
    except ConfigurationError as e:
        typer.secho(f"Configuration error: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=2)


@app.command("chart")
def chart(
    home: str = typer.Argument(..., help="Home country, e.g. 'United States'"),
    destinations: List[str] = typer.Argument(..., help="One or more destination countries"),
    days: Optional[int] = typer.Option(None, "--days", "-d", help="History in days (default: timeframe)"),
    timeframe: Optional[str] = typer.Option(None, "--timeframe", "-t", help="7D, 1M, 3M or 1Y"),
    indicator: List[str] = typer.Option([], "--indicator", "-i", help="sma, bollinger or rsi (repeatable)"),
    overlay: List[str] = typer.Option([], "--overlay", "-o", help="Extra currency code to overlay (repeatable)"),
    amount: Optional[float] = typer.Option(None, "--amount", "-a", help="Convert this amount into every destination currency"),
    export: Optional[str] = typer.Option(None, "--export", "-e", help="Write the chart data to a .csv or .json file"),
    config_path: str = typer.Option("config.yaml", "--config", help="Path to config.yaml"),
):
    """Select countries, fetch the rate series and print the chart dataset."""
    config = _load(config_path)
    display = DatasetDisplay()

    maprates = build_app(
        rate_source=ExchangeRateHostClient.from_config(config),
        chart_config=ChartConfig.from_yaml(config_path),
        preferences=_preferences(config),
    )

    if not maprates.selection.select_by_name(home, "home"):
        typer.secho(f"Cannot use {home} as home country", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    for i, name in enumerate(destinations):
        ok = (maprates.selection.select_by_name(name, "destination") if i == 0
              else maprates.selection.add_destination(name))
        if not ok:
            typer.secho(f"Skipped destination {name}", fg=typer.colors.YELLOW)

    for code in overlay:
        if not maprates.overlays.add(code.upper()):
            typer.secho(f"Overlay {code} rejected", fg=typer.colors.YELLOW)
    for key in indicator:
        if not maprates.indicators.is_active(key):
            maprates.indicators.toggle(key)
    if timeframe and not maprates.session.set_timeframe(timeframe):
        typer.secho(f"Unknown timeframe {timeframe}", fg=typer.colors.YELLOW)

    try:
        dataset = asyncio.run(maprates.session.refresh(days=days))
    except DataProviderError as e:
        typer.secho(f"Rate source failed: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    if dataset is None:
        typer.secho("Selection incomplete; nothing to chart", fg=typer.colors.YELLOW)
        raise typer.Exit(code=1)

    snapshot = maprates.session.primary_snapshot
    display.show_dataset(dataset, title=f"{snapshot.home} -> {snapshot.destination}")

    if amount is not None:
        display.show_conversions(maprates.conversions(amount), snapshot.home_currency, amount)

    if export:
        fmt = Path(export).suffix.lstrip(".").lower() or "csv"
        try:
            written = maprates.export_chart(fmt, export)
        except (ValidationError, OSError) as e:
            typer.secho(f"Export failed: {e}", fg=typer.colors.RED)
            raise typer.Exit(code=1)
        if written is None:
            typer.secho("Chart export requires premium (maprates premium --enable)", fg=typer.colors.YELLOW)
        else:
            typer.echo(f"Chart data exported to {written}")

    maprates.save_preferences()


@app.command("premium")
def premium(
    enable: Optional[bool] = typer.Option(None, "--enable/--disable", help="Set the premium flag"),
    config_path: str = typer.Option("config.yaml", "--config", help="Path to config.yaml"),
):
    """Show or set the persisted premium flag."""
    config = _load(config_path)
    status = PremiumStatus(preferences=_preferences(config))
    if enable is not None:
        status.set_premium(enable)

    typer.echo(f"Tier: {status.tier} (up to {status.max_destinations()} destinations)")
    for name, allowed in status.features().items():
        typer.echo(f"  {name}: {'yes' if allowed else 'no'}")


@app.command("countries")
def countries():
    """List countries that resolve to a currency."""
    resolver = CountryCurrencyResolver()
    DatasetDisplay().show_countries([(c, resolver.resolve_code(c)) for c in resolver.countries()])


if __name__ == "__main__":
    app()
