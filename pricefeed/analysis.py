"""
Series analytics
Statistics, tick-to-tick change and the merged chart timeline

Everything here is a pure function of the series it is given.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .config import SMA_WINDOW
from .data_sources import AssetSeries, PriceSample

SeriesLike = Union[AssetSeries, Sequence[PriceSample]]

SLOT_LABEL_FORMAT = '%H:%M:%S'


def _prices(series: SeriesLike) -> np.ndarray:
    if isinstance(series, AssetSeries):
        return series.prices
    return np.asarray([s.price for s in series], dtype=np.float64)


@dataclass(frozen=True)
class SeriesStatistics:
    """Summary of one asset's window"""
    current: float
    high: float  # max over the whole window, not a calendar day
    low: float
    sma10: float
    volatility: float  # population std dev
    sample_count: int

    @property
    def has_data(self) -> bool:
        return self.sample_count > 0

    def to_dict(self) -> dict:
        return {
            'current': self.current,
            'high': self.high,
            'low': self.low,
            'sma10': self.sma10,
            'volatility': self.volatility,
            'sample_count': self.sample_count,
            'has_data': self.has_data
        }


# Returned for an empty series; numeric fields are not meaningful
NO_DATA = SeriesStatistics(
    current=math.nan, high=math.nan, low=math.nan,
    sma10=math.nan, volatility=math.nan, sample_count=0
)


def calculate_statistics(series: SeriesLike, sma_window: int = SMA_WINDOW) -> SeriesStatistics:
    """
    Current, high, low, SMA and volatility over the retained window

    The SMA covers the last ``min(sma_window, L)`` prices. Volatility is the
    population standard deviation (divides by L, not L - 1).
    """
    prices = _prices(series)
    if prices.size == 0:
        return NO_DATA

    return SeriesStatistics(
        current=float(prices[-1]),
        high=float(np.max(prices)),
        low=float(np.min(prices)),
        sma10=float(np.mean(prices[-sma_window:])),
        volatility=float(np.std(prices)),
        sample_count=int(prices.size)
    )


@dataclass(frozen=True)
class ChangeResult:
    """Move between the two most recent samples"""
    absolute_change: float
    percent_change: float

    @property
    def is_positive(self) -> bool:
        return self.absolute_change >= 0

    def to_dict(self) -> dict:
        return {
            'absolute_change': self.absolute_change,
            'percent_change': self.percent_change
        }


def calculate_change(series: SeriesLike) -> Optional[ChangeResult]:
    """
    Absolute and percent change of the last sample against the one before

    Returns None with fewer than two samples. A previous price of zero gives
    a non-finite percent change (inf, or nan for 0/0), which is passed through.
    """
    prices = _prices(series)
    if prices.size < 2:
        return None

    current, previous = prices[-1], prices[-2]
    change = current - previous
    with np.errstate(divide='ignore', invalid='ignore'):
        change_percent = change / previous * 100

    return ChangeResult(absolute_change=float(change), percent_change=float(change_percent))


@dataclass(frozen=True)
class MergedChartPoint:
    """One slot of the combined chart"""
    slot_label: str
    values: Dict[str, float]  # 0.0 for assets with no sample at this slot
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            'time': self.slot_label,
            **self.values,
            'timestamp': int(self.timestamp.timestamp() * 1000)
        }


def format_slot_label(ts: datetime) -> str:
    return ts.strftime(SLOT_LABEL_FORMAT)


def merge_timeline(snapshot: Mapping[str, SeriesLike],
                   assets: Optional[Sequence[str]] = None) -> List[MergedChartPoint]:
    """
    Merge per-asset series into one chart timeline

    Series are aligned by position, not by time: slot i pairs the i-th sample
    of every series. The slot takes its timestamp from the first asset (in
    ``assets`` order, defaulting to snapshot order) that has an i-th sample;
    assets without one contribute 0.0. The result is sorted by slot
    timestamp.

    Positional alignment means a slot can pair samples taken at different
    times when one feed updates faster than the other.
    """
    order = list(dict.fromkeys(assets if assets is not None else snapshot))
    columns = []
    for asset_id in order:
        series = snapshot.get(asset_id)
        columns.append(series if series is not None else ())

    max_len = max((len(s) for s in columns), default=0)

    points = []
    for i in range(max_len):
        present = [s[i] for s in columns if i < len(s)]
        if not present:
            continue
        ts = present[0].timestamp
        values = {
            asset_id: (float(s[i].price) if i < len(s) else 0.0)
            for asset_id, s in zip(order, columns)
        }
        points.append(MergedChartPoint(slot_label=format_slot_label(ts), values=values, timestamp=ts))

    # sorted() is stable, equal timestamps keep slot order
    return sorted(points, key=lambda p: p.timestamp)


def timeline_to_dataframe(points: Sequence[MergedChartPoint]) -> pd.DataFrame:
    """Merged timeline as a DataFrame: time, one column per asset, timestamp"""
    if not points:
        return pd.DataFrame(columns=['time', 'timestamp'])
    return pd.DataFrame([
        {'time': p.slot_label, **p.values, 'timestamp': p.timestamp}
        for p in points
    ])


@dataclass(frozen=True)
class AssetSummary:
    """Everything the presentation layer shows for one asset"""
    asset_id: str
    stats: SeriesStatistics
    change: Optional[ChangeResult]

    @property
    def price(self) -> Optional[float]:
        return self.stats.current if self.stats.has_data else None


def summarize_snapshot(snapshot: Mapping[str, SeriesLike],
                       assets: Optional[Sequence[str]] = None) -> Dict[str, AssetSummary]:
    """Statistics and change for each asset, empty-series tolerant"""
    order = list(dict.fromkeys(assets if assets is not None else snapshot))
    summaries = {}
    for asset_id in order:
        series = snapshot.get(asset_id)
        if series is None:
            series = ()
        summaries[asset_id] = AssetSummary(
            asset_id=asset_id,
            stats=calculate_statistics(series),
            change=calculate_change(series)
        )
    return summaries
