"""
Reference tones: hear what a string should sound like.

reference_tone() builds a sine that starts at TONE_GAIN and decays
exponentially to TONE_FLOOR over TONE_DURATION seconds, i.e. a soft
"ping" that fades out by itself.

harmonic_tone() builds something closer to a plucked string: a fundamental
plus quieter harmonics (1, 1/2, 1/3, ...). Useful as a test signal, since
real strings put plenty of energy above the fundamental.
"""

import logging
import time

import numpy as np

from tuner.config import SAMPLE_RATE, TONE_DURATION, TONE_FLOOR, TONE_GAIN

logger = logging.getLogger(__name__)


def sine_wave(freq, duration=1.0, sr=SAMPLE_RATE, amplitude=1.0):
    t = np.arange(int(sr * duration)) / sr
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def reference_tone(freq, duration=TONE_DURATION, sr=SAMPLE_RATE,
                   gain=TONE_GAIN, floor=TONE_FLOOR):
    """Decaying sine: gain at t=0, floor at t=duration."""
    n = int(sr * duration)
    t = np.arange(n) / sr
    envelope = gain * (floor / gain) ** (t / duration)
    return (envelope * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def harmonic_tone(f0, duration=1.0, sr=SAMPLE_RATE, n_harmonics=5, noise_level=0.0, seed=None):
    """
    Generate an audio signal that mimics a plucked string.

    Args:
        f0: Fundamental frequency in Hz
        duration: Length in seconds
        sr: Sample rate
        n_harmonics: Number of partials including the fundamental
        noise_level: Gaussian noise added after normalization (0 = clean)
        seed: Seed for the noise generator

    Returns:
        numpy array of audio samples (float32) peaking near 1.0
    """
    t = np.arange(int(sr * duration)) / sr
    signal = np.zeros_like(t)

    for h in range(1, n_harmonics + 1):
        # Skip partials that would alias
        if f0 * h >= sr / 2:
            break
        signal += (1.0 / h) * np.sin(2 * np.pi * f0 * h * t)

    signal = signal / np.max(np.abs(signal))

    if noise_level:
        rng = np.random.default_rng(seed)
        signal += noise_level * rng.standard_normal(len(signal))

    return signal.astype(np.float32)


class ToneGenerator:
    """
    Plays reference tones on the default output device.

    play() is fire-and-forget: it returns immediately and the tone fades out
    on its own. sounddevice only keeps one play() going at a time, so starting
    a new tone cuts off the previous one.

    current_freq is the tone still sounding, or None once it has been stopped
    or its duration has run out.
    """

    def __init__(self, sample_rate=SAMPLE_RATE, duration=TONE_DURATION, device=None, sd=None):
        self.sample_rate = int(sample_rate)
        self.duration = duration
        self.device = device
        self._freq = None
        self._started = None
        self._sd = sd

    def _get_sd(self):
        if self._sd is None:
            import sounddevice  # deferred: needs the PortAudio library

            self._sd = sounddevice
        return self._sd

    def play(self, freq):
        if not (np.isfinite(freq) and freq > 0):
            raise ValueError(f"Tone frequency must be positive, got {freq!r}")
        self.stop()
        tone = reference_tone(freq, duration=self.duration, sr=self.sample_rate)
        self._get_sd().play(tone, samplerate=self.sample_rate, device=self.device)
        self._freq = float(freq)
        self._started = time.monotonic()
        logger.debug("Playing reference tone %.2f Hz", freq)

    @property
    def current_freq(self):
        if self._freq is not None and time.monotonic() - self._started >= self.duration:
            self._freq = None
        return self._freq

    @property
    def is_playing(self):
        return self.current_freq is not None

    def stop(self):
        if self.is_playing:
            self._get_sd().stop()
        self._freq = None
