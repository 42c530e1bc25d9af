"""
Pitch estimators — turn one audio frame into a fundamental frequency.

Two estimators:
  1. YinEstimator: YIN (librosa.yin) with pYIN deciding voiced/unvoiced.
     Time-domain, no model weights, fast enough to run on every frame.
  2. CrepeEstimator: the pre-trained CREPE network (torchcrepe). More robust
     on noisy input, heavier.

Both are built once per session for a fixed sample rate and expose the same
.estimate(frame) -> float | None interface, so the session can swap between
them. Any callable taking a sample rate and returning such an object works
as an estimator factory (see ESTIMATORS).

The session never trusts an estimate blindly: is_plausible() rejects
anything outside the (20, 5000) Hz band.
"""

import logging

import librosa
import numpy as np
import torch
import torchcrepe

from tuner.config import (
    CREPE_FMAX,
    CREPE_FMIN,
    CREPE_HOP_SIZE,
    CREPE_MODEL,
    CREPE_PERIODICITY_THRESHOLD,
    ESTIMATOR_FMAX,
    ESTIMATOR_FMIN,
    MAX_PLAUSIBLE_FREQ,
    MIN_PLAUSIBLE_FREQ,
)

logger = logging.getLogger(__name__)


def is_plausible(freq):
    """True for a finite frequency strictly inside the admissible band."""
    if freq is None:
        return False
    freq = float(freq)
    return bool(np.isfinite(freq)) and MIN_PLAUSIBLE_FREQ < freq < MAX_PLAUSIBLE_FREQ


class YinEstimator:
    """
    Pitch estimation using YIN, gated by pYIN.

    YIN looks for the lag at which the frame best matches a shifted copy of
    itself (the period), refined by parabolic interpolation, so the estimate
    is continuous. pYIN runs YIN over a spread of thresholds and adds a
    voiced/unvoiced decision, which gives us "no detection" for noise. Its f0
    is snapped to a 10-cent grid, too coarse for a +/-5 cent judgment, so only
    its voicing flag is used.

    The whole frame is analysed as a single window (center=False), so one
    frame in means exactly one estimate out.
    """

    def __init__(self, sample_rate, fmin=ESTIMATOR_FMIN, fmax=ESTIMATOR_FMAX):
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")
        self.sample_rate = int(sample_rate)
        self.fmin = fmin
        # Can't resolve anything above Nyquist
        self.fmax = min(fmax, self.sample_rate / 2)

    def estimate(self, frame):
        frame = np.asarray(frame, dtype=np.float32)
        params = dict(
            fmin=self.fmin,
            fmax=self.fmax,
            sr=self.sample_rate,
            frame_length=len(frame),
            center=False,
        )

        _, voiced, _ = librosa.pyin(frame, **params)
        if len(voiced) == 0 or not voiced[0]:
            return None

        f0 = librosa.yin(frame, **params)
        if len(f0) == 0 or not np.isfinite(f0[0]):
            return None
        return float(f0[0])


class CrepeEstimator:
    """
    Pitch estimation using CREPE (Convolutional Representation for Pitch Estimation).

    CREPE takes raw audio (resampled to 16 kHz internally) and outputs a pitch
    plus a periodicity score per 10ms-ish hop. We keep the hops CREPE is
    confident about and take their median.

    We use the 'tiny' model variant for speed.
    """

    def __init__(self, sample_rate, model_capacity=CREPE_MODEL):
        if sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {sample_rate}")
        self.sample_rate = int(sample_rate)
        self.model_capacity = model_capacity
        self.device = torch.device("cuda" if torch.cuda.is_available() else "cpu")

    def estimate(self, frame):
        audio_tensor = torch.FloatTensor(np.asarray(frame)).unsqueeze(0).to(self.device)

        frequency, periodicity = torchcrepe.predict(
            audio_tensor,
            self.sample_rate,
            hop_length=CREPE_HOP_SIZE,
            fmin=CREPE_FMIN,
            fmax=CREPE_FMAX,
            model=self.model_capacity,
            batch_size=1,
            device=self.device,
            return_periodicity=True,
        )

        freq_np = np.atleast_1d(frequency.squeeze().cpu().numpy())
        conf_np = np.atleast_1d(periodicity.squeeze().cpu().numpy())
        mask = conf_np > CREPE_PERIODICITY_THRESHOLD
        if not mask.any():
            return None
        return float(np.median(freq_np[mask]))


ESTIMATORS = {
    "yin": YinEstimator,
    "crepe": CrepeEstimator,
}

DEFAULT_ESTIMATOR = "yin"


def get_estimator_factory(name):
    try:
        return ESTIMATORS[name]
    except KeyError:
        raise ValueError(
            f"Unknown estimator {name!r}, valid options: {sorted(ESTIMATORS)}"
        ) from None


def create_estimator(name, sample_rate):
    """Build a named estimator bound to a sample rate."""
    estimator = get_estimator_factory(name)(sample_rate)
    logger.info("Created %s estimator at %d Hz", name, sample_rate)
    return estimator
