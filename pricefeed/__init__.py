"""Live two-asset price tracker: polling client, series analytics and refresh loop."""

from .analysis import (
    NO_DATA,
    ChangeResult,
    MergedChartPoint,
    SeriesStatistics,
    calculate_change,
    calculate_statistics,
    merge_timeline,
)
from .config import TrackerConfig, load_config
from .data_sources import AssetSeries, PriceSample, SnapshotClient, SnapshotStore, parse_snapshot
from .errors import ConfigError, PriceFeedError, SnapshotFormatError, TransportFailure
from .tracker import PriceTracker, Status, TrackerState

__all__ = [
    "AssetSeries",
    "ChangeResult",
    "ConfigError",
    "MergedChartPoint",
    "NO_DATA",
    "PriceFeedError",
    "PriceSample",
    "PriceTracker",
    "SeriesStatistics",
    "SnapshotClient",
    "SnapshotFormatError",
    "SnapshotStore",
    "Status",
    "TrackerConfig",
    "TrackerState",
    "TransportFailure",
    "calculate_change",
    "calculate_statistics",
    "load_config",
    "merge_timeline",
    "parse_snapshot",
]
