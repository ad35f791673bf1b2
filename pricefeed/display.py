"""
Console Display
Text rendering of price cards, statistics and the merged chart tail
"""

import math
from typing import List, Mapping, Optional, Sequence

from .analysis import AssetSummary, MergedChartPoint, merge_timeline, summarize_snapshot
from .tracker import TrackerState

CHART_ROWS = 10
RULE = '=' * 60


def format_price(price: Optional[float]) -> str:
    """$1,234.56 style, '--' when there is nothing to show"""
    if price is None or not math.isfinite(price):
        return '--'
    return f'${price:,.2f}'


def format_change(absolute: float, percent: float) -> str:
    sign = '+' if absolute >= 0 else '-'
    return f'{sign}${abs(absolute):,.2f} ({percent:+.2f}%)'


def render_price_card(summary: AssetSummary) -> str:
    line = f'{summary.asset_id:<10} {format_price(summary.price):>14}'
    if summary.change is not None:
        line += f'  {format_change(summary.change.absolute_change, summary.change.percent_change)}'
    return line


def render_statistics(summary: AssetSummary) -> List[str]:
    lines = [f'{summary.asset_id} Statistics']
    stats = summary.stats
    if not stats.has_data:
        lines.append('  No data available')
        return lines

    rows = [
        ('Current Price', format_price(stats.current)),
        ('High', format_price(stats.high)),
        ('Low', format_price(stats.low)),
        ('SMA (10)', format_price(stats.sma10)),
        ('Volatility', format_price(stats.volatility)),
        ('Data Points', str(stats.sample_count)),
    ]
    lines.extend(f'  {label:<14}{value:>16}' for label, value in rows)
    return lines


def render_chart_tail(points: Sequence[MergedChartPoint], assets: Sequence[str],
                      rows: int = CHART_ROWS) -> List[str]:
    """Last ``rows`` merged slots as a table"""
    header = f"{'Time':<10}" + ''.join(f'{a:>16}' for a in assets)
    lines = [header]
    for point in points[-rows:]:
        cells = ''.join(f'{format_price(point.values.get(a, 0.0)):>16}' for a in assets)
        lines.append(f'{point.slot_label:<10}{cells}')
    return lines


def render_console(state: TrackerState, snapshot: Mapping, assets: Sequence[str],
                   error_hint: str = 'Retrying every refresh interval...') -> str:
    """
    Full screen of text for one refresh

    Loading shows a placeholder; Error shows the message on top but still
    renders the last good snapshot underneath.
    """
    if state.is_loading:
        return 'Loading price data...'

    lines = [RULE]
    if state.is_error:
        lines += ['Connection Error', f'  {state.error}', f'  {error_hint}', RULE]

    summaries = summarize_snapshot(snapshot, assets)
    lines += [render_price_card(s) for s in summaries.values()]
    lines.append(RULE)
    lines += render_chart_tail(merge_timeline(snapshot, assets), assets)
    lines.append(RULE)
    for summary in summaries.values():
        lines += render_statistics(summary)
    return '\n'.join(lines)
