"""
Data Sources - price samples, bounded series, snapshot store and HTTP client
Modular, compact, testable
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, Iterator, Mapping, Optional, Sequence, Tuple, Union

import aiohttp
import numpy as np
import orjson
import pandas as pd

from .config import API_BASE_URL, DATA_PATH, MAX_SAMPLES, REQUEST_TIMEOUT, TRACKED_ASSETS
from .errors import SnapshotFormatError, TransportFailure
from .logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class PriceSample:
    """Single price observation"""
    timestamp: datetime
    price: float
    asset_id: str

    def to_dict(self) -> dict:
        """Wire form used by the price server"""
        return {
            'Timestamp': self.timestamp.isoformat(),
            'Price': self.price,
            'ProductID': self.asset_id
        }


@dataclass(frozen=True)
class AssetSeries:
    """
    Ordered window of samples for one asset

    Holds at most ``max_samples`` entries; building a series from more keeps
    the newest ones. Samples are never reordered.
    """
    asset_id: str
    samples: Tuple[PriceSample, ...] = ()
    max_samples: int = MAX_SAMPLES

    def __post_init__(self):
        if self.max_samples < 1:
            raise ValueError(f'max_samples must be at least 1, got {self.max_samples}')
        samples = tuple(self.samples)
        if len(samples) > self.max_samples:
            samples = samples[-self.max_samples:]
        object.__setattr__(self, 'samples', samples)

    @classmethod
    def empty(cls, asset_id: str, max_samples: int = MAX_SAMPLES) -> 'AssetSeries':
        return cls(asset_id, (), max_samples)

    def __len__(self) -> int:
        return len(self.samples)

    def __iter__(self) -> Iterator[PriceSample]:
        return iter(self.samples)

    def __getitem__(self, index: int) -> PriceSample:
        return self.samples[index]

    @property
    def prices(self) -> np.ndarray:
        return np.fromiter((s.price for s in self.samples), dtype=np.float64, count=len(self.samples))

    @property
    def last(self) -> Optional[PriceSample]:
        return self.samples[-1] if self.samples else None

    def to_dataframe(self) -> pd.DataFrame:
        if not self.samples:
            return pd.DataFrame(columns=['timestamp', 'price', 'asset_id'])
        return pd.DataFrame([
            {'timestamp': s.timestamp, 'price': s.price, 'asset_id': s.asset_id}
            for s in self.samples
        ])


SnapshotMap = Dict[str, AssetSeries]


def _parse_series(asset_id: str, entries, max_samples: int) -> AssetSeries:
    """Convert one asset's JSON array to an AssetSeries"""
    if entries is None:  # Go encodes a nil slice as null
        return AssetSeries.empty(asset_id, max_samples)
    if not isinstance(entries, list):
        raise SnapshotFormatError(f'{asset_id}: expected a list of samples, got {type(entries).__name__}')
    if not entries:
        return AssetSeries.empty(asset_id, max_samples)

    try:
        timestamps = pd.to_datetime([e['Timestamp'] for e in entries], utc=True, format='ISO8601')
        if timestamps.isna().any():
            raise ValueError('missing timestamp')
        samples = [
            PriceSample(
                timestamp=ts,
                price=float(e['Price']),
                asset_id=str(e.get('ProductID') or asset_id)
            )
            for ts, e in zip(timestamps, entries)
        ]
    except (KeyError, TypeError, ValueError) as e:
        raise SnapshotFormatError(f'{asset_id}: malformed sample ({e!r})') from e

    return AssetSeries(asset_id, tuple(samples), max_samples)


def parse_snapshot(payload, assets: Sequence[str] = TRACKED_ASSETS,
                   max_samples: int = MAX_SAMPLES) -> SnapshotMap:
    """
    Build a SnapshotMap from a decoded /data response

    Tracked assets come first in ``assets`` order and are always present
    (empty when the server sent nothing for them); any extra keys follow.
    """
    if not isinstance(payload, dict):
        raise SnapshotFormatError(f'Expected a JSON object, got {type(payload).__name__}')

    parsed = {str(k): _parse_series(str(k), v, max_samples) for k, v in payload.items()}

    snapshot: SnapshotMap = {}
    for asset_id in assets:
        snapshot[asset_id] = parsed.pop(asset_id, None) or AssetSeries.empty(asset_id, max_samples)
    snapshot.update(parsed)
    return snapshot


class SnapshotStore:
    """Latest series per asset; the only mutable state in the client"""

    def __init__(self, max_samples: int = MAX_SAMPLES):
        self.max_samples = max_samples
        self._series: SnapshotMap = {}

    def update(self, asset_id: str, series: Union[AssetSeries, Iterable[PriceSample]]):
        """Replace the stored series for one asset"""
        if not isinstance(series, AssetSeries) or len(series) > self.max_samples:
            series = AssetSeries(asset_id, tuple(series), self.max_samples)
        updated = dict(self._series)
        updated[asset_id] = series
        self._series = updated

    def replace(self, snapshot: Mapping[str, AssetSeries]):
        """Swap in a whole snapshot at once"""
        self._series = dict(snapshot)
        logger.debug(f"[STORE] {', '.join(f'{k}={len(v)}' for k, v in self._series.items())}")

    def get(self, asset_id: str) -> AssetSeries:
        series = self._series.get(asset_id)
        if series is None:
            return AssetSeries.empty(asset_id, self.max_samples)
        return series

    def latest_price(self, asset_id: str) -> Optional[float]:
        last = self.get(asset_id).last
        return last.price if last else None

    def snapshot(self) -> SnapshotMap:
        return dict(self._series)

    @property
    def assets(self) -> list:
        return list(self._series)


class SnapshotClient:
    """Async client for the price server's /data endpoint"""

    def __init__(self, base_url: str = API_BASE_URL, timeout: float = REQUEST_TIMEOUT,
                 assets: Sequence[str] = TRACKED_ASSETS, max_samples: int = MAX_SAMPLES,
                 session: Optional[aiohttp.ClientSession] = None):
        self.base_url = base_url
        self.url = base_url.rstrip('/') + DATA_PATH
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.assets = tuple(assets)
        self.max_samples = max_samples
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_config(cls, config, session: Optional[aiohttp.ClientSession] = None) -> 'SnapshotClient':
        return cls(
            base_url=config.base_url,
            timeout=config.request_timeout,
            assets=config.assets,
            max_samples=config.max_samples,
            session=session
        )

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def fetch_snapshot(self) -> SnapshotMap:
        """
        GET /data and parse it into a SnapshotMap

        Raises TransportFailure for anything that stops us from getting a
        usable snapshot: connection errors, timeouts, non-2xx, bad JSON.
        """
        session = self._get_session()
        try:
            async with session.get(self.url, timeout=self.timeout) as resp:
                if not 200 <= resp.status < 300:
                    raise TransportFailure(f'HTTP {resp.status} from {self.url}', self.url)
                body = await resp.read()
        except aiohttp.ClientError as e:
            raise TransportFailure(f'Request error: {e}', self.url) from e
        except asyncio.TimeoutError as e:
            raise TransportFailure(f'Timed out after {self.timeout.total}s', self.url) from e

        try:
            payload = orjson.loads(body)
        except orjson.JSONDecodeError as e:
            raise TransportFailure(f'Malformed JSON from {self.url}: {e}', self.url) from e

        snapshot = parse_snapshot(payload, self.assets, self.max_samples)
        logger.debug(f'[FETCH] {self.url} -> {len(snapshot)} series')
        return snapshot

    async def close(self):
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> 'SnapshotClient':
        return self

    async def __aexit__(self, *exc):
        await self.close()
