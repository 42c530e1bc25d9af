"""
Note mapping — frequency in, nearest equal-tempered note and cents out.

Notes are numbered like MIDI: A4 = 69, C4 = 60, one step per semitone.
Everything is relative to the reference pitch (the frequency of A4), so
changing the reference from 440 to 442 Hz shifts every note together:

    semitones = 12 * log2(freq / reference)
    index     = round(semitones) + 69
    octave    = index // 12 - 1
    name      = NOTE_NAMES[index % 12]

Cents are hundredths of a semitone:  cents = 1200 * log2(freq / exact)
where `exact` is the equal-tempered frequency of the chosen note.

ROUNDING: ties (exactly half a semitone, or exactly half a cent) round away
from zero. Python's round() rounds half to even, which would make a pitch
exactly between A and A# snap to whichever neighbour is "even".
"""

from dataclasses import dataclass
from enum import Enum

import numpy as np

from tuner.config import A4_INDEX, IN_TUNE_CENTS, MAX_DISPLAY_CENTS

NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]


@dataclass(frozen=True)
class Note:
    pitch_class: str
    octave: int
    absolute_index: int

    @property
    def name(self):
        """Scientific pitch notation, e.g. 'A4', 'C#3'."""
        return f"{self.pitch_class}{self.octave}"


class TuningState(Enum):
    IN_TUNE = "in_tune"
    SHARP = "sharp"
    FLAT = "flat"


@dataclass(frozen=True)
class Classification:
    state: TuningState
    clamped_cents: int

    @property
    def needle(self):
        """Clamped cents normalized to [-1, 1] (-1 = 50 cents flat)."""
        return self.clamped_cents / MAX_DISPLAY_CENTS


def round_half_away(value):
    """Round to the nearest integer, ties away from zero (2.5 -> 3, -2.5 -> -3)."""
    magnitude = abs(float(value))
    whole = np.floor(magnitude)
    # compare the fraction directly: magnitude + 0.5 can itself round up
    if magnitude - whole >= 0.5:
        whole += 1
    return int(np.copysign(whole, value))


def _check_positive(name, value):
    if not (np.isfinite(value) and value > 0):
        raise ValueError(f"{name} must be a positive finite number, got {value!r}")


def note_from_index(index):
    """Build a Note from its absolute index (69 -> A4)."""
    index = int(index)
    # Python's // and % floor toward -inf, so negative indices stay consistent
    return Note(
        pitch_class=NOTE_NAMES[index % 12],
        octave=index // 12 - 1,
        absolute_index=index,
    )


def freq_to_note(freq, reference_pitch):
    """
    Quantize a frequency to the nearest note under the given reference pitch.

    Args:
        freq: Frequency in Hz (> 0)
        reference_pitch: Frequency of A4 in Hz (> 0)

    Returns:
        Note
    """
    _check_positive("freq", freq)
    _check_positive("reference_pitch", reference_pitch)

    semitones = 12 * np.log2(freq / reference_pitch)
    return note_from_index(round_half_away(semitones) + A4_INDEX)


def note_frequency(note, reference_pitch):
    """Exact equal-tempered frequency of a note."""
    _check_positive("reference_pitch", reference_pitch)
    return float(reference_pitch * 2.0 ** ((note.absolute_index - A4_INDEX) / 12))


def cents_off(freq, note, reference_pitch):
    """
    Signed distance from the note's exact frequency, in whole cents.
    Positive = sharp (too high), negative = flat (too low).
    """
    _check_positive("freq", freq)
    exact = note_frequency(note, reference_pitch)
    return round_half_away(1200 * np.log2(freq / exact))


def classify(cents):
    """
    In tune within +/-5 cents, otherwise sharp or flat.
    The clamped value (+/-50) feeds bounded indicators like a needle.
    """
    if abs(cents) <= IN_TUNE_CENTS:
        state = TuningState.IN_TUNE
    elif cents > 0:
        state = TuningState.SHARP
    else:
        state = TuningState.FLAT

    clamped = max(-MAX_DISPLAY_CENTS, min(MAX_DISPLAY_CENTS, int(cents)))
    return Classification(state=state, clamped_cents=clamped)


def needle_angle(classification, max_degrees=90.0):
    """Needle rotation in degrees: -50..+50 cents -> -max..+max."""
    return classification.needle * max_degrees
