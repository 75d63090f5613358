"""
Technical Indicators - aligned array transforms over a candle series.

Implements:
1. SMA / EMA - Trend indicators
2. RSI (Wilder) - Momentum oscillator
3. MACD - EMA convergence/divergence with signal line
4. Bollinger Bands - SMA +/- k standard deviations
5. VWAP - Session-anchored volume weighted average price
6. Heikin-Ashi - Smoothed candle conversion
7. ATR / Stochastic - Volatility and range position

Every function returns values aligned index-for-index with its input,
with NaN where there is not yet enough history.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Hashable, List, Sequence

import numpy as np

from .models import Candle

logger = logging.getLogger(__name__)


@dataclass
class MACDResult:
    """MACD line, signal line and histogram (aligned arrays)."""
    macd: np.ndarray
    signal: np.ndarray
    histogram: np.ndarray


@dataclass
class BollingerBands:
    """Upper, middle and lower bands (aligned arrays)."""
    upper: np.ndarray
    middle: np.ndarray
    lower: np.ndarray


@dataclass
class StochasticResult:
    """%K and %D lines (aligned arrays)."""
    k: np.ndarray
    d: np.ndarray


def _validate_period(period: int, name: str = "period") -> None:
    if period <= 0:
        raise ValueError(f"{name} must be positive, got {period}")


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=float)


def closes(candles: Sequence[Candle]) -> np.ndarray:
    """Closing prices of a candle series."""
    return np.array([c.close for c in candles], dtype=float)


def sma(values: Sequence[float], period: int) -> np.ndarray:
    """
    Simple Moving Average.

    SMA[i] = mean(values[i - period + 1 .. i]); NaN for the first period - 1.

    Args:
        values: Price series (oldest first)
        period: Window length

    Returns:
        Array aligned with values
    """
    _validate_period(period)
    data = _as_array(values)
    result = np.full(data.shape, np.nan)

    if len(data) < period:
        return result

    cumulative = np.cumsum(np.insert(data, 0, 0.0))
    result[period - 1:] = (cumulative[period:] - cumulative[:-period]) / period
    return result


def ema(values: Sequence[float], period: int) -> np.ndarray:
    """
    Exponential Moving Average.

    EMA Formula:
        EMA = (Close - EMA_prev) x multiplier + EMA_prev
        where multiplier = 2 / (period + 1)

    The first EMA value (index period - 1) is the SMA of the first period
    values. NaN values at the start of the input are skipped, so an EMA of
    an already-warming-up series (e.g. the MACD line) stays aligned.

    Args:
        values: Price series (oldest first)
        period: EMA period

    Returns:
        Array aligned with values
    """
    _validate_period(period)
    data = _as_array(values)
    result = np.full(data.shape, np.nan)

    valid = np.flatnonzero(~np.isnan(data))
    if len(valid) == 0:
        return result

    start = valid[0]
    if len(data) - start < period:
        return result

    multiplier = 2 / (period + 1)
    seed_index = start + period - 1
    current = float(np.mean(data[start:seed_index + 1]))
    result[seed_index] = current

    for i in range(seed_index + 1, len(data)):
        current = (data[i] - current) * multiplier + current
        result[i] = current

    return result


def rsi(values: Sequence[float], period: int = 14) -> np.ndarray:
    """
    Relative Strength Index with Wilder's smoothing.

    RSI Formula:
        RSI = 100 - (100 / (1 + RS)),  RS = Average Gain / Average Loss

        First averages are simple means of the first period changes,
        subsequent ones use Wilder's smoothing:
            avg = (prev_avg x (period - 1) + current) / period

    The first RSI value sits at index period. No losses gives 100, a flat
    series gives 50.

    Args:
        values: Closing prices (oldest first)
        period: RSI period (default: 14)

    Returns:
        Array aligned with values
    """
    _validate_period(period)
    data = _as_array(values)
    result = np.full(data.shape, np.nan)

    if len(data) < period + 1:
        return result

    deltas = np.diff(data)
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = float(np.mean(gains[:period]))
    avg_loss = float(np.mean(losses[:period]))
    result[period] = _rsi_value(avg_gain, avg_loss)

    for i in range(period, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        result[i + 1] = _rsi_value(avg_gain, avg_loss)

    return result


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0 if avg_gain > 0 else 50.0
    rs = avg_gain / avg_loss
    return 100 - (100 / (1 + rs))


def macd(
    values: Sequence[float],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9
) -> MACDResult:
    """
    MACD (Moving Average Convergence Divergence).

    MACD Formula:
        MACD Line = EMA(fast) - EMA(slow)
        Signal Line = EMA(signal) of MACD Line
        Histogram = MACD Line - Signal Line

    Args:
        values: Closing prices
        fast_period: Fast EMA period (default: 12)
        slow_period: Slow EMA period (default: 26)
        signal_period: Signal line EMA period (default: 9)

    Returns:
        MACDResult of aligned arrays
    """
    _validate_period(fast_period, "fast_period")
    _validate_period(slow_period, "slow_period")
    _validate_period(signal_period, "signal_period")
    if fast_period >= slow_period:
        raise ValueError(f"fast_period ({fast_period}) must be below slow_period ({slow_period})")

    macd_line = ema(values, fast_period) - ema(values, slow_period)
    signal_line = ema(macd_line, signal_period)
    histogram = macd_line - signal_line

    return MACDResult(macd=macd_line, signal=signal_line, histogram=histogram)


def bollinger_bands(
    values: Sequence[float],
    period: int = 20,
    num_std: float = 2.0
) -> BollingerBands:
    """
    Bollinger Bands.

    Bollinger Bands Formula:
        Middle Band = SMA(period)
        Upper Band = Middle Band + (std_dev x num_std)
        Lower Band = Middle Band - (std_dev x num_std)

    std_dev is the population standard deviation of the window.

    Args:
        values: Closing prices
        period: SMA period (default: 20)
        num_std: Number of standard deviations (default: 2)

    Returns:
        BollingerBands of aligned arrays
    """
    _validate_period(period)
    data = _as_array(values)
    middle = sma(data, period)
    std_dev = np.full(data.shape, np.nan)

    for i in range(period - 1, len(data)):
        std_dev[i] = np.std(data[i - period + 1:i + 1])

    return BollingerBands(
        upper=middle + std_dev * num_std,
        middle=middle,
        lower=middle - std_dev * num_std,
    )


def utc_session(candle: Candle) -> date:
    """Default VWAP session key: the candle's UTC calendar day."""
    return candle.time.date()


def vwap(
    candles: Sequence[Candle],
    session_key: Callable[[Candle], Hashable] = utc_session
) -> np.ndarray:
    """
    Volume Weighted Average Price, reset at every session boundary.

    VWAP Formula:
        VWAP = cumulative(Typical Price x Volume) / cumulative(Volume)
        where Typical Price = (High + Low + Close) / 3

    Args:
        candles: Candle series (oldest first)
        session_key: Maps a candle to its session; a change resets the sums

    Returns:
        Array aligned with candles (NaN while session volume is 0)
    """
    result = np.full(len(candles), np.nan)
    cumulative_tpv = 0.0
    cumulative_volume = 0.0
    current_session = None

    for i, candle in enumerate(candles):
        session = session_key(candle)
        if i == 0 or session != current_session:
            current_session = session
            cumulative_tpv = 0.0
            cumulative_volume = 0.0

        cumulative_tpv += candle.typical_price * candle.volume
        cumulative_volume += candle.volume

        if cumulative_volume > 0:
            result[i] = cumulative_tpv / cumulative_volume

    return result


def heikin_ashi(candles: Sequence[Candle]) -> List[Candle]:
    """
    Convert candles to Heikin-Ashi candles.

    haClose = (open + high + low + close) / 4
    haOpen  = (prev haOpen + prev haClose) / 2, seeded with
              (open + close) / 2 of the first real candle
    haHigh  = max(high, haOpen, haClose)
    haLow   = min(low, haOpen, haClose)
    """
    converted: List[Candle] = []

    for i, candle in enumerate(candles):
        ha_close = (candle.open + candle.high + candle.low + candle.close) / 4
        if i == 0:
            ha_open = (candle.open + candle.close) / 2
        else:
            prev = converted[-1]
            ha_open = (prev.open + prev.close) / 2

        converted.append(Candle(
            time=candle.time,
            open=ha_open,
            high=max(candle.high, ha_open, ha_close),
            low=min(candle.low, ha_open, ha_close),
            close=ha_close,
            volume=candle.volume,
            is_closed=candle.is_closed,
        ))

    return converted


def atr(candles: Sequence[Candle], period: int = 14) -> np.ndarray:
    """
    Average True Range.

    ATR Formula:
        True Range = max(high - low, |high - prev_close|, |low - prev_close|)
        ATR = SMA of True Range (first TR is high - low)
    """
    _validate_period(period)
    true_ranges = []

    for i, candle in enumerate(candles):
        if i == 0:
            true_ranges.append(candle.high - candle.low)
        else:
            prev_close = candles[i - 1].close
            true_ranges.append(max(
                candle.high - candle.low,
                abs(candle.high - prev_close),
                abs(candle.low - prev_close),
            ))

    return sma(true_ranges, period)


def stochastic(
    candles: Sequence[Candle],
    k_period: int = 14,
    d_period: int = 3
) -> StochasticResult:
    """
    Stochastic Oscillator.

    %K = (close - lowest low) / (highest high - lowest low) x 100 over k_period
    %D = SMA(d_period) of %K, aligned with %K
    A flat window (highest high == lowest low) gives %K = 50.
    """
    _validate_period(k_period, "k_period")
    _validate_period(d_period, "d_period")
    k = np.full(len(candles), np.nan)

    for i in range(k_period - 1, len(candles)):
        window = candles[i - k_period + 1:i + 1]
        highest = max(c.high for c in window)
        lowest = min(c.low for c in window)
        if highest == lowest:
            k[i] = 50.0
        else:
            k[i] = (candles[i].close - lowest) / (highest - lowest) * 100

    d = np.full(len(candles), np.nan)
    if len(candles) >= k_period:
        d[k_period - 1:] = sma(k[k_period - 1:], d_period)

    return StochasticResult(k=k, d=d)
