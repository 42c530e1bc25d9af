"""
One analysis cycle: frame -> gate -> estimator -> note -> classification.

Each frame is handled on its own, with nothing carried over from earlier
frames. A cycle has three possible outcomes:

    NoSignal     the gate is closed; displays go back to neutral
    None         signal present but no usable pitch; displays keep showing
                 the last result
    TuningResult a note, its cents deviation and the in-tune judgment
"""

import logging
from dataclasses import dataclass

from tuner.gate import read_level
from tuner.notes import Classification, Note, cents_off, classify, freq_to_note
from tuner.pitch import is_plausible

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NoSignal:
    level: float = 0.0


@dataclass(frozen=True)
class TuningResult:
    frequency: float
    note: Note
    cents: int
    classification: Classification
    level: float = 0.0

    @property
    def state(self):
        return self.classification.state


def evaluate_frequency(freq, reference_pitch, level=0.0):
    """Turn an already-estimated frequency into a TuningResult."""
    note = freq_to_note(freq, reference_pitch)
    cents = cents_off(freq, note, reference_pitch)
    return TuningResult(
        frequency=float(freq),
        note=note,
        cents=cents,
        classification=classify(cents),
        level=level,
    )


def analyze_frame(frame, estimator, reference_pitch, reading=None):
    """
    Run the full pipeline on one frame.

    Args:
        frame: 1D numpy array of samples in [-1, 1]
        estimator: object with .estimate(frame) -> float | None
        reference_pitch: Frequency of A4 in Hz
        reading: GateReading already taken for this frame, if any

    Returns:
        NoSignal, TuningResult, or None when the estimate is discarded
    """
    if reading is None:
        reading = read_level(frame)
    if not reading.has_signal:
        return NoSignal(level=reading.level)

    freq = estimator.estimate(frame)
    if not is_plausible(freq):
        logger.debug("Discarding estimate %r", freq)
        return None

    return evaluate_frequency(freq, reference_pitch, level=reading.level)
