"""
Per-instrument reference tunings.

Profiles are stored at A4 = 440 Hz. When the user picks another reference
pitch every string is scaled by the same ratio; the labels ("E2", "A2", ...)
stay as they are, since they are nominal names.
"""

from dataclasses import dataclass

import numpy as np

from tuner.config import INSTRUMENTS, REFERENCE_A4


@dataclass(frozen=True)
class StringPitch:
    label: str
    frequency: float


@dataclass(frozen=True)
class InstrumentProfile:
    name: str
    strings: tuple = ()

    @property
    def is_chromatic(self):
        return not self.strings


@dataclass(frozen=True)
class ScaledTuning:
    instrument: str
    reference_pitch: float
    strings: tuple = ()


PROFILES = {
    name: InstrumentProfile(
        name=name,
        strings=tuple(StringPitch(label, freq) for label, freq in strings),
    )
    for name, strings in INSTRUMENTS.items()
}


def get_profile(name):
    try:
        return PROFILES[name]
    except KeyError:
        raise ValueError(
            f"Unknown instrument {name!r}, valid options: {sorted(PROFILES)}"
        ) from None


def build_scaled_tuning(profile, reference_pitch):
    """
    Scale a profile's strings to the given reference pitch.

    Pure: the profile is not touched and the same inputs always give the
    same floats. At 440 Hz the ratio is exactly 1.0, so frequencies come back
    unchanged.
    """
    ratio = reference_pitch / REFERENCE_A4
    strings = tuple(
        StringPitch(s.label, s.frequency * ratio) for s in profile.strings
    )
    return ScaledTuning(
        instrument=profile.name,
        reference_pitch=reference_pitch,
        strings=strings,
    )


def nearest_string(freq, tuning):
    """
    Find the closest string and how many cents sharp/flat the frequency is.

    Returns:
        (StringPitch, cents) with cents > 0 meaning sharp,
        or None for a chromatic tuning or a non-positive frequency.
    """
    if freq <= 0 or not tuning.strings:
        return None

    closest = None
    min_cents = float("inf")

    for string in tuning.strings:
        cents = 1200 * np.log2(freq / string.frequency)
        if abs(cents) < abs(min_cents):
            min_cents = cents
            closest = string

    return closest, float(min_cents)
