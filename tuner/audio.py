"""
Frame sources — where the analysis cycle gets its audio.

A frame source has a fixed sample rate and frame size for its lifetime and
exposes:

    open()   start delivering audio (raises AcquisitionError on failure)
    read()   return the next frame, or None if a full frame isn't ready.
             Never blocks.
    close()  release the device

MicrophoneSource records from a sounddevice input stream into a ring
buffer; read() copies out the newest FRAME_SIZE samples. ArraySource plays
back a pre-loaded signal (a file, or a synthetic tone in tests).
"""

import logging
import threading

import librosa
import numpy as np

from tuner.config import FRAME_SIZE, HOP_SIZE, SAMPLE_RATE
from tuner.errors import AcquisitionError

logger = logging.getLogger(__name__)


def _import_sounddevice():
    # deferred: importing sounddevice needs the PortAudio shared library
    import sounddevice

    return sounddevice


def list_devices():
    return _import_sounddevice().query_devices()


class MicrophoneSource:
    """Live mono input from the default (or a chosen) microphone."""

    def __init__(self, sample_rate=SAMPLE_RATE, frame_size=FRAME_SIZE, device=None, sd=None):
        self.sample_rate = int(sample_rate)
        self.frame_size = int(frame_size)
        self.device = device
        self._sd = sd
        self._stream = None
        self._lock = threading.Lock()
        self._buffer = np.zeros(self.frame_size, dtype=np.float32)
        self._filled = 0

    @property
    def is_open(self):
        return self._stream is not None

    def _callback(self, indata, frames, time_info, status):
        # Runs on the PortAudio thread
        if status:
            logger.debug("Input stream status: %s", status)
        block = indata[:, 0]
        if len(block) == 0:
            return
        with self._lock:
            if len(block) >= self.frame_size:
                self._buffer[:] = block[-self.frame_size:]
            else:
                self._buffer = np.roll(self._buffer, -len(block))
                self._buffer[-len(block):] = block
            self._filled = min(self.frame_size, self._filled + len(block))

    def open(self):
        if self._stream is not None:
            return
        if self._sd is None:
            try:
                self._sd = _import_sounddevice()
            except OSError as e:
                raise AcquisitionError(f"Audio backend unavailable: {e}") from e
        sd = self._sd
        try:
            stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=1,
                dtype="float32",
                device=self.device,
                callback=self._callback,
            )
            stream.start()
        except (sd.PortAudioError, ValueError) as e:
            raise AcquisitionError(f"Could not open microphone: {e}") from e
        self._stream = stream
        logger.info(
            "Microphone open (device=%s, %d Hz, frame=%d)",
            self.device, self.sample_rate, self.frame_size,
        )

    def read(self):
        with self._lock:
            if self._filled < self.frame_size:
                return None
            return self._buffer.copy()

    def close(self):
        if self._stream is None:
            return
        try:
            self._stream.stop()
            self._stream.close()
        finally:
            self._stream = None
            with self._lock:
                self._buffer[:] = 0.0
                self._filled = 0
            logger.info("Microphone closed")


class ArraySource:
    """
    Serve consecutive frames from an in-memory signal, advancing hop_size
    samples per read. Returns None once the signal is exhausted, or loops
    back to the start when loop=True.
    """

    def __init__(self, signal, sample_rate=SAMPLE_RATE, frame_size=FRAME_SIZE,
                 hop_size=HOP_SIZE, loop=False):
        self.signal = np.asarray(signal, dtype=np.float32).reshape(-1)
        self.sample_rate = int(sample_rate)
        self.frame_size = int(frame_size)
        self.hop_size = int(hop_size)
        self.loop = loop
        self._position = 0
        self._open = False

    @classmethod
    def from_file(cls, path, sample_rate=SAMPLE_RATE, **kwargs):
        """Load an audio file as mono, resampled and peak-normalized."""
        try:
            audio, sr = librosa.load(str(path), sr=sample_rate, mono=True)
        except Exception as e:
            raise AcquisitionError(f"Could not load audio from {path}: {e}") from e
        if audio.size:
            audio = librosa.util.normalize(audio)
        return cls(audio, sample_rate=sr, **kwargs)

    @property
    def is_open(self):
        return self._open

    @property
    def exhausted(self):
        return not self.loop and self._position + self.frame_size > len(self.signal)

    def open(self):
        if len(self.signal) < self.frame_size:
            raise AcquisitionError(
                f"Signal has {len(self.signal)} samples, need at least {self.frame_size}"
            )
        self._position = 0
        self._open = True

    def read(self):
        if not self._open:
            return None
        if self._position + self.frame_size > len(self.signal):
            if not self.loop:
                return None
            self._position = 0
        frame = self.signal[self._position:self._position + self.frame_size].copy()
        self._position += self.hop_size
        return frame

    def close(self):
        self._open = False
