"""
Tuner session — owns the settings and drives the analysis cycle.

The session holds the reference pitch and the selected instrument, and
rebuilds the scaled string table whenever either changes. It does not run a
loop of its own: whoever displays results (Streamlit rerun loop, terminal
loop, a test) calls step() at its own cadence, ~60 times a second.

States:
    IDLE     no frame source, no estimator
    RUNNING  frame source open, estimator bound to its sample rate

Settings changes between two step() calls take effect on the next one.
"""

import logging
from enum import Enum

import numpy as np

from tuner.config import (
    DEFAULT_INSTRUMENT,
    DEFAULT_REFERENCE_PITCH,
    MAX_REFERENCE_PITCH,
    MIN_REFERENCE_PITCH,
)
from tuner.cycle import NoSignal, analyze_frame
from tuner.errors import InvalidSettingError
from tuner.gate import read_level
from tuner.pitch import DEFAULT_ESTIMATOR, get_estimator_factory
from tuner.tunings import PROFILES, build_scaled_tuning

logger = logging.getLogger(__name__)


class SessionState(Enum):
    IDLE = "idle"
    RUNNING = "running"


def validate_reference_pitch(value):
    """Return the reference pitch as a float, or raise InvalidSettingError."""
    try:
        pitch = float(value)
    except (TypeError, ValueError):
        raise InvalidSettingError(f"Reference pitch must be a number, got {value!r}") from None
    if not np.isfinite(pitch) or not (MIN_REFERENCE_PITCH <= pitch <= MAX_REFERENCE_PITCH):
        raise InvalidSettingError(
            f"Reference pitch must be between {MIN_REFERENCE_PITCH} and "
            f"{MAX_REFERENCE_PITCH} Hz, got {value!r}"
        )
    return pitch


def validate_instrument(name):
    if name not in PROFILES:
        raise InvalidSettingError(
            f"Unknown instrument {name!r}, valid options: {sorted(PROFILES)}"
        )
    return name


class TunerSession:
    def __init__(self, reference_pitch=DEFAULT_REFERENCE_PITCH,
                 instrument=DEFAULT_INSTRUMENT, estimator=DEFAULT_ESTIMATOR):
        self._reference_pitch = validate_reference_pitch(reference_pitch)
        self._instrument = validate_instrument(instrument)
        self.estimator_factory = get_estimator_factory(estimator)
        self._tuning = build_scaled_tuning(PROFILES[self._instrument], self._reference_pitch)

        self.state = SessionState.IDLE
        self.source = None
        self.estimator = None
        self.last_result = None
        self.level = 0.0

    # --- Settings ---

    @property
    def reference_pitch(self):
        return self._reference_pitch

    @reference_pitch.setter
    def reference_pitch(self, value):
        self._reference_pitch = validate_reference_pitch(value)
        self._rebuild_tuning()
        logger.info("Reference pitch set to %.1f Hz", self._reference_pitch)

    @property
    def instrument(self):
        return self._instrument

    @instrument.setter
    def instrument(self, name):
        self._instrument = validate_instrument(name)
        self._rebuild_tuning()
        logger.info("Instrument set to %s", self._instrument)

    @property
    def tuning(self):
        """Scaled string table for the current instrument and reference pitch."""
        return self._tuning

    def _rebuild_tuning(self):
        self._tuning = build_scaled_tuning(PROFILES[self._instrument], self._reference_pitch)

    # --- Lifecycle ---

    @property
    def is_running(self):
        return self.state is SessionState.RUNNING

    def start(self, source, estimator_factory=None):
        """
        Open the frame source and bind a fresh estimator to its sample rate.

        If the source can't be opened, its AcquisitionError propagates and the
        session stays IDLE.
        """
        if self.is_running:
            self.stop()

        factory = estimator_factory or self.estimator_factory
        source.open()
        try:
            estimator = factory(source.sample_rate)
        except Exception:
            source.close()
            raise

        self.source = source
        self.estimator = estimator
        self.last_result = None
        self.level = 0.0
        self.state = SessionState.RUNNING
        logger.info("Tuner started at %d Hz", source.sample_rate)

    def stop(self):
        if self.source is not None:
            self.source.close()
        was_running = self.is_running
        self.source = None
        self.estimator = None
        self.last_result = None
        self.level = 0.0
        self.state = SessionState.IDLE
        if was_running:
            logger.info("Tuner stopped")

    def step(self):
        """
        Run one analysis cycle.

        Returns:
            NoSignal or TuningResult when the cycle produced something,
            None when idle, when no full frame is ready yet, or when the
            estimate was discarded (last_result is then left as it was).
        """
        if not self.is_running:
            return None

        frame = self.source.read()
        if frame is None:
            return None

        reading = read_level(frame)
        self.level = reading.level

        result = analyze_frame(frame, self.estimator, self._reference_pitch, reading=reading)
        if result is None:
            return None

        self.last_result = None if isinstance(result, NoSignal) else result
        return result
