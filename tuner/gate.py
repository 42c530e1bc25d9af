"""
Noise gate: decides whether a frame holds enough signal to analyse.

The gate works on RMS energy. The same measurement also drives the input
level meter, which maps the dB range [-60, 0] onto 0-100%:

    -60 dBFS (or quieter)  ->   0 %
    -40 dBFS (gate opens)  ->  33 %
      0 dBFS (full scale)  -> 100 %

A silent frame has RMS 0, whose log is -inf. That is treated as the bottom
of the meter rather than an error.
"""

from dataclasses import dataclass

import numpy as np

from tuner.config import METER_FLOOR_DB, NOISE_GATE_RMS


@dataclass(frozen=True)
class GateReading:
    rms: float
    db: float
    level: float
    has_signal: bool


def rms(frame):
    """Root-mean-square amplitude of a frame (0.0 for an empty frame)."""
    samples = np.asarray(frame, dtype=np.float64)
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(samples ** 2)))


def to_db(value):
    """Amplitude -> dBFS. Zero maps to -inf without a numpy warning."""
    if value <= 0.0:
        return float("-inf")
    return float(20.0 * np.log10(value))


def db_to_level(db):
    """Map dBFS onto the 0-100 meter scale, clamped at both ends."""
    if not np.isfinite(db):
        return 0.0 if db < 0 else 100.0
    percent = (db - METER_FLOOR_DB) / -METER_FLOOR_DB * 100.0
    return float(min(100.0, max(0.0, percent)))


def read_level(frame, threshold=NOISE_GATE_RMS):
    """Measure a frame once and return level + gate decision together."""
    value = rms(frame)
    db = to_db(value)
    return GateReading(
        rms=value,
        db=db,
        level=db_to_level(db),
        has_signal=value > threshold,
    )


def has_signal(frame, threshold=NOISE_GATE_RMS):
    return read_level(frame, threshold).has_signal


def level_percent(frame):
    return read_level(frame).level
