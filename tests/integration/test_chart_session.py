"""Integration tests: selection -> refresh -> dataset through the wired app."""
import asyncio

import pytest

from maprates import events as ev
from maprates.app import build_app
from maprates.chart.session import PREFERENCES_KEY
from maprates.persistence import PreferenceStore
from maprates.selection.machine import DESTINATION, HOME
from maprates.utils.errors import DataProviderError


def _record(app, event):
    received = []
    app.events.on(event, lambda *args: received.append(args))
    return received


@pytest.mark.asyncio
async def test_two_clicks_render_primary_pair(fake_source):
    app = build_app(rate_source=fake_source)
    ready = _record(app, ev.DATASET_READY)

    app.selection.select_by_click("United States")
    app.selection.select_by_click("Japan")
    await app.session.wait_idle()

    assert fake_source.calls == [("USD", "JPY", 7)]
    assert len(ready) == 1
    dataset = app.session.dataset
    assert dataset.names() == ["USD to JPY"]
    assert len(dataset.labels) == 7


@pytest.mark.asyncio
async def test_stale_refresh_is_discarded(fake_source):
    app = build_app(rate_source=fake_source)
    ready = _record(app, ev.DATASET_READY)
    gate = asyncio.Event()
    fake_source.gates["JPY"] = gate

    app.selection.select_by_click("United States")
    app.selection.select_by_click("Japan")
    # Change destination while the JPY fetch is still in flight
    app.selection.select_by_name("Canada", DESTINATION)
    await asyncio.sleep(0)
    gate.set()
    await app.session.wait_idle()

    assert [args[0].names() for args in ready] == [["USD to CAD"]]
    assert app.session.primary_snapshot.pair == "USD/CAD"


@pytest.mark.asyncio
async def test_destination_overlays_are_fetched(fake_source):
    app = build_app(rate_source=fake_source, is_premium=True)

    app.selection.select_by_click("United States")
    app.selection.select_by_click("Japan")
    app.selection.add_destination("Canada")
    await app.session.wait_idle()

    assert ("USD", "CAD", 7) in fake_source.calls
    assert app.session.dataset.names() == ["USD to JPY", "USD to CAD (normalized)"]
    assert app.overlays.get("CAD").data is not None


@pytest.mark.asyncio
async def test_late_overlay_data_after_removal_is_dropped(fake_source):
    app = build_app(rate_source=fake_source, is_premium=True)
    gate = asyncio.Event()
    fake_source.gates["CAD"] = gate

    app.selection.select_by_click("United States")
    app.selection.select_by_click("Japan")
    app.selection.add_destination("Canada")
    await asyncio.sleep(0)
    app.selection.remove_destination("Canada")
    gate.set()
    await app.session.wait_idle()

    assert app.overlays.get("CAD") is None
    assert app.session.dataset.names() == ["USD to JPY"]


@pytest.mark.asyncio
async def test_overlay_failure_keeps_primary(fake_source):
    fake_source.failing.add("CAD")
    app = build_app(rate_source=fake_source, is_premium=True)
    failed = _record(app, ev.REFRESH_FAILED)

    app.selection.select_by_click("United States")
    app.selection.select_by_click("Japan")
    app.selection.add_destination("Canada")
    await app.session.wait_idle()

    assert failed == []
    assert app.session.dataset.names() == ["USD to JPY"]
    assert app.overlays.get("CAD").data is None


@pytest.mark.asyncio
async def test_primary_failure_emits_refresh_failed(fake_source):
    fake_source.failing.add("JPY")
    app = build_app(rate_source=fake_source)
    failed = _record(app, ev.REFRESH_FAILED)

    app.selection.select_by_click("United States")
    app.selection.select_by_click("Japan")
    await app.session.wait_idle()

    assert len(failed) == 1
    snapshot, error = failed[0]
    assert snapshot.pair == "USD/JPY"
    assert isinstance(error, DataProviderError)
    assert app.session.dataset is None

    with pytest.raises(DataProviderError):
        await app.session.refresh()


@pytest.mark.asyncio
async def test_same_currency_pair_is_flat(fake_source):
    app = build_app(rate_source=fake_source)

    app.selection.select_by_click("France")
    app.selection.select_by_click("Germany")
    await app.session.wait_idle()

    assert fake_source.calls == []
    assert app.session.dataset.get("EUR to EUR").values == (1.0,) * 7


@pytest.mark.asyncio
async def test_indicator_toggle_rebuilds_without_fetch(fake_source):
    app = build_app(rate_source=fake_source)
    app.selection.select_by_click("United States")
    app.selection.select_by_click("Japan")
    await app.session.wait_idle()

    assert app.session.toggle_indicator("sma") is True

    assert len(fake_source.calls) == 1
    assert "SMA (3) - 2 day warmup" in app.session.dataset.names()


@pytest.mark.asyncio
async def test_timeframe_change_refetches(fake_source):
    app = build_app(rate_source=fake_source)
    app.selection.select_by_click("United States")
    app.selection.select_by_click("Japan")
    await app.session.wait_idle()

    assert app.session.set_timeframe("1M") is True
    assert app.session.set_timeframe("5Y") is False
    await app.session.wait_idle()

    assert fake_source.calls[-1] == ("USD", "JPY", 30)
    assert len(app.session.dataset.labels) == 30


@pytest.mark.asyncio
async def test_clear_all_hides_dataset(fake_source):
    app = build_app(rate_source=fake_source)
    app.selection.select_by_click("United States")
    app.selection.select_by_click("Japan")
    await app.session.wait_idle()

    app.selection.clear_all()

    assert app.session.dataset is None
    assert app.session.rebuild() is None


def test_refresh_without_running_loop(fake_source):
    app = build_app(rate_source=fake_source)
    app.selection.select_by_name("United States", HOME)
    app.selection.select_by_name("Japan", DESTINATION)

    assert app.session.pending_snapshot.pair == "USD/JPY"
    dataset = asyncio.run(app.session.refresh(days=3))

    assert dataset.labels == ("2024-01-01", "2024-01-02", "2024-01-03")
    assert app.session.pending_snapshot is None


def test_incomplete_selection_refresh_returns_none(fake_source):
    app = build_app(rate_source=fake_source)
    app.selection.select_by_click("United States")

    assert asyncio.run(app.session.refresh()) is None
    assert fake_source.calls == []


def test_preferences_survive_restart(tmp_path, fake_source):
    path = tmp_path / "prefs.json"
    app = build_app(rate_source=fake_source, preferences=PreferenceStore(path))
    app.indicators.toggle("rsi")
    app.overlays.add("GBP")
    app.session.set_timeframe("1M")
    assert app.save_preferences() is True

    restored = build_app(rate_source=fake_source, preferences=PreferenceStore(path))

    assert restored.indicators.active_keys() == ["rsi"]
    assert [o.currency for o in restored.overlays.overlays()] == ["GBP"]
    assert restored.store.get("current_timeframe") == "1M"


def test_malformed_preferences_are_ignored(fake_source):
    prefs = PreferenceStore()
    prefs.set(PREFERENCES_KEY, {"indicators": "bad", "overlays": ["gbp", 5, "JPY"], "timeframe": "9Y"})

    app = build_app(rate_source=fake_source, preferences=prefs)

    assert app.indicators.active_keys() == []
    assert [o.currency for o in app.overlays.overlays()] == ["JPY"]
    assert app.store.get("current_timeframe") == "7D"


@pytest.mark.asyncio
async def test_malformed_overlay_payload_keeps_primary(fake_source):
    fake_source.raw["CAD"] = [{"date": "2024-01-01", "rate": 1.3}, {"date": "2024-01-02", "rate": "n/a"}]
    app = build_app(rate_source=fake_source, is_premium=True)
    failed = _record(app, ev.REFRESH_FAILED)

    app.selection.select_by_click("United States")
    app.selection.select_by_click("Japan")
    app.selection.add_destination("Canada")
    await app.session.wait_idle()

    assert failed == []
    assert app.session.dataset.names() == ["USD to JPY"]
    assert app.overlays.get("CAD").data is None


@pytest.mark.asyncio
async def test_malformed_primary_payload_changes_nothing(fake_source):
    app = build_app(rate_source=fake_source, is_premium=True)
    failed = _record(app, ev.REFRESH_FAILED)
    app.selection.select_by_click("United States")
    app.selection.select_by_click("Japan")
    app.selection.add_destination("Canada")
    await app.session.wait_idle()
    dataset = app.session.dataset

    fake_source.raw["JPY"] = [{"date": "not a date", "rate": 150.0}]
    app.session.set_timeframe("1M")
    await app.session.wait_idle()

    assert len(failed) == 1
    assert isinstance(failed[0][1], DataProviderError)
    assert ("USD", "CAD", 30) in fake_source.calls
    # The 30-day CAD series fetched alongside the bad primary is not applied
    assert len(app.overlays.get("CAD").data) == 7
    assert app.session.dataset is dataset

    with pytest.raises(DataProviderError):
        await app.session.refresh()


@pytest.mark.asyncio
async def test_overlay_with_duplicate_dates(fake_source):
    fake_source.raw["CAD"] = [
        {"date": f"2024-01-0{day}", "rate": 1.3 + day / 100} for day in range(1, 8)
    ] + [{"date": "2024-01-03", "rate": 1.5}]
    app = build_app(rate_source=fake_source, is_premium=True)

    app.selection.select_by_click("United States")
    app.selection.select_by_click("Japan")
    app.selection.add_destination("Canada")
    await app.session.wait_idle()

    assert app.session.dataset.names() == ["USD to JPY", "USD to CAD (normalized)"]
    cad = app.overlays.get("CAD").data
    assert len(cad) == 7
    assert cad[2].rate == 1.5


@pytest.mark.asyncio
async def test_conversions_use_rendered_rates(fake_source):
    app = build_app(rate_source=fake_source, is_premium=True)
    assert app.conversions(100) == []

    app.selection.select_by_click("United States")
    app.selection.select_by_click("Japan")
    app.selection.add_destination("Canada")
    await app.session.wait_idle()

    conversions = app.conversions(100)
    assert [(c.country, c.currency.code, c.amount) for c in conversions] == [
        ("Japan", "JPY", 106.0),
        ("Canada", "CAD", 106.0),
    ]


@pytest.mark.asyncio
async def test_export_chart_requires_premium(tmp_path, fake_source):
    app = build_app(rate_source=fake_source)
    app.selection.select_by_click("United States")
    app.selection.select_by_click("Japan")
    await app.session.wait_idle()

    target = tmp_path / "exports" / "chart.csv"
    assert app.export_chart("csv", target) is None
    assert not target.exists()

    app.entitlements.upgrade()
    assert app.export_chart("csv", target) == target
    lines = target.read_text().splitlines()
    assert lines[0] == "Date,USD to JPY"
    assert len(lines) == 8
