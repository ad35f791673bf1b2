"""Exception types raised by the price feed client"""


class PriceFeedError(Exception):
    """Base class for pricefeed errors"""


class TransportFailure(PriceFeedError):
    """Fetching a snapshot failed: network, HTTP status or undecodable body"""

    def __init__(self, message: str, url: str = ''):
        super().__init__(message)
        self.url = url


class SnapshotFormatError(TransportFailure):
    """The response decoded but does not look like a price snapshot"""


class ConfigError(PriceFeedError, ValueError):
    """Invalid configuration value"""
