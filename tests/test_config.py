"""Tests for configuration defaults and environment overrides."""
import logging

import pytest

from pricefeed.config import TrackerConfig, load_config
from pricefeed.errors import ConfigError
from pricefeed.logger import setup_logger


def test_defaults():
    config = load_config({})
    assert config == TrackerConfig()
    assert config.base_url == 'http://localhost:8080'
    assert config.data_url == 'http://localhost:8080/data'
    assert config.refresh_interval == 1.0
    assert config.max_samples == 100
    assert config.assets == ('BTC-USD', 'ETH-USD')


def test_environment_overrides():
    config = load_config({
        'PRICEFEED_API_URL': 'https://prices.example.com/',
        'PRICEFEED_REFRESH_SEC': '2.5',
        'PRICEFEED_TIMEOUT_SEC': '3',
        'PRICEFEED_MAX_SAMPLES': '50',
        'PRICEFEED_ASSETS': 'BTC-USD, sol-usd',
    })
    assert config.data_url == 'https://prices.example.com/data'
    assert config.refresh_interval == 2.5
    assert config.request_timeout == 3.0
    assert config.max_samples == 50
    assert config.assets == ('BTC-USD', 'sol-usd')


def test_blank_environment_values_are_ignored():
    assert load_config({'PRICEFEED_API_URL': '  ', 'PRICEFEED_ASSETS': ''}) == TrackerConfig()


@pytest.mark.parametrize('env', [
    {'PRICEFEED_REFRESH_SEC': 'fast'},
    {'PRICEFEED_REFRESH_SEC': '0'},
    {'PRICEFEED_REFRESH_SEC': 'nan'},
    {'PRICEFEED_REFRESH_SEC': 'inf'},
    {'PRICEFEED_TIMEOUT_SEC': 'nan'},
    {'PRICEFEED_TIMEOUT_SEC': '-inf'},
    {'PRICEFEED_MAX_SAMPLES': '10.5'},
    {'PRICEFEED_MAX_SAMPLES': '0'},
    {'PRICEFEED_API_URL': 'localhost:8080'},
    {'PRICEFEED_ASSETS': ' , ,'},
])
def test_invalid_environment_raises(env):
    with pytest.raises(ConfigError):
        load_config(env)


def test_with_overrides_skips_none():
    config = TrackerConfig().with_overrides(base_url=None, refresh_interval=0.5, assets='eth-usd')
    assert config.base_url == 'http://localhost:8080'
    assert config.refresh_interval == 0.5
    # asset ids keep their case so they match the server's keys
    assert config.assets == ('eth-usd',)


def test_error_message_names_the_server():
    config = TrackerConfig(base_url='http://10.0.0.5:8080')
    assert 'http://10.0.0.5:8080' in config.error_message


def test_setup_logger_is_idempotent(tmp_path):
    logger = setup_logger('pricefeed.test_idempotent', level=logging.DEBUG,
                          log_to_file=True, log_dir=tmp_path)
    again = setup_logger('pricefeed.test_idempotent')
    assert again is logger
    assert len(logger.handlers) == 2
    assert list(tmp_path.glob('test_idempotent_*.log'))
    for handler in logger.handlers:
        handler.close()
