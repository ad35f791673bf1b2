"""
Tracker configuration
Defaults plus environment overrides
"""

import math
import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional, Tuple

from .errors import ConfigError

# Defaults
API_BASE_URL = 'http://localhost:8080'
DATA_PATH = '/data'
REFRESH_INTERVAL = 1.0  # seconds
REQUEST_TIMEOUT = 5.0  # seconds
MAX_SAMPLES = 100  # upstream keeps the last 100 entries per asset
SMA_WINDOW = 10
TRACKED_ASSETS = ('BTC-USD', 'ETH-USD')

ERROR_MESSAGE = 'Failed to fetch data. Make sure the price server is running on {base_url}'

ENV_PREFIX = 'PRICEFEED_'


@dataclass(frozen=True)
class TrackerConfig:
    """Settings for one tracker instance"""
    base_url: str = API_BASE_URL
    refresh_interval: float = REFRESH_INTERVAL
    request_timeout: float = REQUEST_TIMEOUT
    max_samples: int = MAX_SAMPLES
    assets: Tuple[str, ...] = TRACKED_ASSETS

    @property
    def data_url(self) -> str:
        return self.base_url.rstrip('/') + DATA_PATH

    @property
    def error_message(self) -> str:
        return ERROR_MESSAGE.format(base_url=self.base_url)

    def with_overrides(self, **kwargs) -> 'TrackerConfig':
        """Copy with the non-None keyword values applied"""
        changes = {k: v for k, v in kwargs.items() if v is not None}
        if 'assets' in changes:
            changes['assets'] = _parse_assets(changes['assets'])
        return _validated(replace(self, **changes))


def _parse_assets(value) -> Tuple[str, ...]:
    if isinstance(value, str):
        value = value.split(',')
    assets = tuple(a.strip() for a in value if a and a.strip())
    if not assets:
        raise ConfigError('At least one asset must be tracked')
    return assets


def _parse_number(name: str, raw: str, kind):
    try:
        return kind(raw)
    except ValueError:
        raise ConfigError(f'{ENV_PREFIX}{name}: expected {kind.__name__}, got {raw!r}') from None


def _validated(config: TrackerConfig) -> TrackerConfig:
    for name in ('refresh_interval', 'request_timeout'):
        if not math.isfinite(getattr(config, name)):
            raise ConfigError(f'{name.replace("_", " ")} must be finite, got {getattr(config, name)}')
    if config.refresh_interval <= 0:
        raise ConfigError(f'refresh interval must be positive, got {config.refresh_interval}')
    if config.request_timeout <= 0:
        raise ConfigError(f'request timeout must be positive, got {config.request_timeout}')
    if config.max_samples < 1:
        raise ConfigError(f'max samples must be at least 1, got {config.max_samples}')
    if not config.base_url.startswith(('http://', 'https://')):
        raise ConfigError(f'base url must be http(s), got {config.base_url!r}')
    return config


def load_config(env: Optional[Mapping[str, str]] = None) -> TrackerConfig:
    """
    Build a TrackerConfig from defaults and PRICEFEED_* environment variables

    Recognised variables:
        PRICEFEED_API_URL       base URL of the price server
        PRICEFEED_REFRESH_SEC   polling period in seconds
        PRICEFEED_TIMEOUT_SEC   per-request timeout in seconds
        PRICEFEED_MAX_SAMPLES   series window size
        PRICEFEED_ASSETS        comma-separated asset ids, e.g. BTC-USD,ETH-USD
    """
    env = os.environ if env is None else env

    def get(name):
        raw = env.get(ENV_PREFIX + name)
        return raw.strip() if raw and raw.strip() else None

    overrides = {}
    if get('API_URL'):
        overrides['base_url'] = get('API_URL')
    if get('REFRESH_SEC'):
        overrides['refresh_interval'] = _parse_number('REFRESH_SEC', get('REFRESH_SEC'), float)
    if get('TIMEOUT_SEC'):
        overrides['request_timeout'] = _parse_number('TIMEOUT_SEC', get('TIMEOUT_SEC'), float)
    if get('MAX_SAMPLES'):
        overrides['max_samples'] = _parse_number('MAX_SAMPLES', get('MAX_SAMPLES'), int)
    if get('ASSETS'):
        overrides['assets'] = get('ASSETS')

    return TrackerConfig().with_overrides(**overrides)
