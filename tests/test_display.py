"""Tests for console rendering helpers."""
from datetime import datetime, timedelta, timezone

from pricefeed.analysis import summarize_snapshot
from pricefeed.data_sources import AssetSeries, PriceSample
from pricefeed.display import format_change, format_price, render_console, render_statistics
from pricefeed.tracker import Status, TrackerState

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
ASSETS = ('BTC-USD', 'ETH-USD')


def make_snapshot():
    btc = AssetSeries('BTC-USD', tuple(
        PriceSample(T0 + timedelta(seconds=i), p, 'BTC-USD') for i, p in enumerate([64000.0, 64250.5])
    ))
    return {'BTC-USD': btc, 'ETH-USD': AssetSeries.empty('ETH-USD')}


def test_format_price():
    assert format_price(1234.5) == '$1,234.50'
    assert format_price(None) == '--'
    assert format_price(float('nan')) == '--'


def test_format_change():
    assert format_change(10.0, 10.0) == '+$10.00 (+10.00%)'
    assert format_change(-2.5, -0.125) == '-$2.50 (-0.12%)'
    assert format_change(5.0, float('inf')) == '+$5.00 (+inf%)'


def test_statistics_block_for_empty_asset():
    summaries = summarize_snapshot(make_snapshot(), ASSETS)
    assert render_statistics(summaries['ETH-USD']) == ['ETH-USD Statistics', '  No data available']
    btc_lines = render_statistics(summaries['BTC-USD'])
    assert any('Data Points' in line and line.endswith('2') for line in btc_lines)


def test_render_loading_screen():
    assert render_console(TrackerState(), {}, ASSETS) == 'Loading price data...'


def test_render_loaded_screen():
    state = TrackerState(Status.LOADED, sequence=1)
    screen = render_console(state, make_snapshot(), ASSETS)
    assert '$64,250.50' in screen
    assert '+$250.50' in screen
    assert '12:00:01' in screen
    assert 'Connection Error' not in screen


def test_render_error_screen_keeps_last_snapshot():
    state = TrackerState(Status.ERROR, error='Failed to fetch data.', sequence=2)
    screen = render_console(state, make_snapshot(), ASSETS)
    assert 'Connection Error' in screen
    assert 'Failed to fetch data.' in screen
    assert '$64,250.50' in screen
