"""
Price Tracker - Main Entry Point
Polls the price server and prints live prices, chart and statistics

Usage:
    py run_tracker.py                          # Defaults (localhost:8080, 1s refresh)
    py run_tracker.py --url http://host:8080   # Different price server
    py run_tracker.py --duration 5             # Stop after 5 minutes
"""

import argparse
import asyncio
import logging
import signal
import sys

from pricefeed.config import load_config
from pricefeed.display import render_console
from pricefeed.logger import setup_logger
from pricefeed.tracker import PriceTracker, TrackerState


class TrackerApp:
    """Wires the tracker to console output"""

    def __init__(self, config, duration_min=None, clear_screen=True):
        self.config = config
        self.duration_min = duration_min
        self.clear_screen = clear_screen
        self.tracker = PriceTracker(config, on_update=self._on_update)
        self._stop: asyncio.Event = None

    def _on_update(self, state: TrackerState):
        screen = render_console(state, self.tracker.snapshot, self.config.assets)
        if self.clear_screen:
            sys.stdout.write('\x1b[2J\x1b[H')
        print(screen, flush=True)

    def request_stop(self):
        if self._stop is not None:
            self._stop.set()

    async def run(self):
        self._stop = asyncio.Event()
        print(render_console(self.tracker.state, {}, self.config.assets))

        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, self.request_stop)
            loop.add_signal_handler(signal.SIGTERM, self.request_stop)
        except NotImplementedError:
            pass  # Windows: Ctrl+C arrives as KeyboardInterrupt

        timeout = self.duration_min * 60 if self.duration_min else None
        async with self.tracker:
            try:
                await asyncio.wait_for(self._stop.wait(), timeout)
            except asyncio.TimeoutError:
                print(f'\n[INFO] Duration limit ({self.duration_min} min) reached')
        print('[OK] Shutdown complete')


def main(argv=None):
    parser = argparse.ArgumentParser(description='Live two-asset price tracker')
    parser.add_argument('--url', help='Price server base URL (default: $PRICEFEED_API_URL or http://localhost:8080)')
    parser.add_argument('--interval', type=float, help='Refresh interval in seconds (default: 1)')
    parser.add_argument('--assets', help='Comma-separated asset ids (default: BTC-USD,ETH-USD)')
    parser.add_argument('--duration', type=float, default=None,
                        help='How long to run in minutes (default: until Ctrl+C)')
    parser.add_argument('--no-clear', action='store_true', help='Append output instead of redrawing')
    parser.add_argument('--log-file', action='store_true', help='Also log to logs/')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    args = parser.parse_args(argv)

    setup_logger('pricefeed', level=logging.DEBUG if args.verbose else logging.WARNING,
                 log_to_file=args.log_file)

    config = load_config().with_overrides(
        base_url=args.url,
        refresh_interval=args.interval,
        assets=args.assets
    )

    app = TrackerApp(config, duration_min=args.duration, clear_screen=not args.no_clear)
    try:
        asyncio.run(app.run())
    except KeyboardInterrupt:
        print('\n[STOP] Interrupted')


if __name__ == '__main__':
    main()
