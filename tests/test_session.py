"""
Tests for tuner/session.py: settings, Idle/Running lifecycle, step().

Test organisation:
    TestSettings   — reference pitch / instrument validation and table rebuild
    TestLifecycle  — start, stop, acquisition failure
    TestStep       — per-cycle results and retain-last policy
    TestEndToEnd   — a real 110 Hz tone through ArraySource + YIN
"""

import pytest

from conftest import FakeEstimator, FakeSource, sine_frame
from tuner.audio import ArraySource
from tuner.config import SAMPLE_RATE
from tuner.cycle import NoSignal, TuningResult
from tuner.errors import AcquisitionError, InvalidSettingError
from tuner.notes import TuningState
from tuner.pitch import CrepeEstimator, YinEstimator
from tuner.session import SessionState, TunerSession
from tuner.tone import sine_wave


def _fake_factory(freq, created=None):
    def factory(sample_rate):
        estimator = FakeEstimator(freq)
        if created is not None:
            created.append((sample_rate, estimator))
        return estimator

    return factory


class TestSettings:
    def test_defaults(self):
        session = TunerSession()
        assert session.reference_pitch == 440.0
        assert session.instrument == "guitar"
        assert session.state is SessionState.IDLE
        assert session.estimator_factory is YinEstimator
        assert len(session.tuning.strings) == 6

    def test_reference_pitch_rebuilds_tuning(self):
        session = TunerSession()
        session.reference_pitch = 442
        assert session.tuning.reference_pitch == 442.0
        assert session.tuning.strings[1].frequency == pytest.approx(110.0 * 442 / 440)

    def test_instrument_rebuilds_tuning(self):
        session = TunerSession()
        session.instrument = "violin"
        assert [s.label for s in session.tuning.strings] == ["G3", "D4", "A4", "E5"]
        session.instrument = "chromatic"
        assert session.tuning.strings == ()

    @pytest.mark.parametrize("bad", [0, -440, 399, 481, float("nan"), float("inf"), "abc", None])
    def test_rejects_bad_reference_pitch(self, bad):
        session = TunerSession()
        with pytest.raises(InvalidSettingError):
            session.reference_pitch = bad
        assert session.reference_pitch == 440.0

    def test_range_is_inclusive(self):
        session = TunerSession()
        session.reference_pitch = 400
        session.reference_pitch = 480
        assert session.reference_pitch == 480.0

    def test_rejects_unknown_instrument(self):
        session = TunerSession()
        with pytest.raises(InvalidSettingError):
            session.instrument = "banjo"
        assert session.instrument == "guitar"

    def test_invalid_setting_is_value_error(self):
        with pytest.raises(ValueError):
            TunerSession(reference_pitch=-1)

    def test_estimator_by_name(self):
        assert TunerSession(estimator="crepe").estimator_factory is CrepeEstimator
        with pytest.raises(ValueError):
            TunerSession(estimator="fft")


class TestLifecycle:
    def test_start_binds_estimator_to_sample_rate(self):
        created = []
        source = FakeSource([], sample_rate=48000)
        session = TunerSession()
        session.start(source, _fake_factory(440.0, created))
        assert session.state is SessionState.RUNNING
        assert source.opened == 1
        assert [sr for sr, _ in created] == [48000]
        assert session.estimator is created[0][1]

    def test_acquisition_failure_stays_idle(self):
        source = FakeSource([], fail_on_open=AcquisitionError("permission denied"))
        session = TunerSession()
        with pytest.raises(AcquisitionError, match="permission denied"):
            session.start(source, _fake_factory(440.0))
        assert session.state is SessionState.IDLE
        assert session.estimator is None
        assert session.source is None

    def test_estimator_failure_closes_source(self):
        def broken(sample_rate):
            raise RuntimeError("no model")

        source = FakeSource([])
        session = TunerSession()
        with pytest.raises(RuntimeError):
            session.start(source, broken)
        assert source.closed == 1
        assert session.state is SessionState.IDLE

    def test_stop_resets(self, loud_frame):
        source = FakeSource([loud_frame])
        session = TunerSession()
        session.start(source, _fake_factory(440.0))
        session.step()
        session.stop()
        assert session.state is SessionState.IDLE
        assert source.closed == 1
        assert session.estimator is None
        assert session.last_result is None
        assert session.level == 0.0

    def test_restart_creates_fresh_estimator(self):
        created = []
        session = TunerSession()
        session.start(FakeSource([]), _fake_factory(440.0, created))
        session.start(FakeSource([], sample_rate=22050), _fake_factory(440.0, created))
        assert len(created) == 2
        assert created[1][0] == 22050
        assert session.estimator is created[1][1]

    def test_stop_when_idle_is_harmless(self):
        session = TunerSession()
        session.stop()
        assert session.state is SessionState.IDLE


class TestStep:
    def test_idle_step_does_nothing(self):
        assert TunerSession().step() is None

    def test_no_frame_ready(self):
        session = TunerSession()
        session.start(FakeSource([]), _fake_factory(440.0))
        assert session.step() is None

    def test_emits_tuning_result(self, loud_frame):
        session = TunerSession()
        session.start(FakeSource([loud_frame]), _fake_factory(440.0))
        result = session.step()
        assert isinstance(result, TuningResult)
        assert session.last_result is result
        assert session.level > 90.0

    def test_silence_resets_display(self, loud_frame, silent_frame):
        session = TunerSession()
        session.start(FakeSource([loud_frame, silent_frame]), _fake_factory(440.0))
        session.step()
        result = session.step()
        assert isinstance(result, NoSignal)
        assert session.last_result is None
        assert session.level == 0.0

    def test_discarded_estimate_keeps_last_result(self, loud_frame):
        estimator = FakeEstimator(440.0)
        session = TunerSession()
        session.start(FakeSource([loud_frame, loud_frame]), lambda sr: estimator)
        first = session.step()
        estimator.freq = 6000.0
        assert session.step() is None
        assert session.last_result is first

    def test_one_frame_per_step(self, loud_frame):
        estimator = FakeEstimator(440.0)
        session = TunerSession()
        session.start(FakeSource([loud_frame] * 3), lambda sr: estimator)
        session.step()
        assert len(estimator.frames) == 1

    def test_reference_change_applies_on_next_cycle(self, loud_frame):
        session = TunerSession()
        session.start(FakeSource([loud_frame, loud_frame]), _fake_factory(442.0))
        assert session.step().state is TuningState.SHARP
        session.reference_pitch = 442
        result = session.step()
        assert result.cents == 0
        assert result.state is TuningState.IN_TUNE


class TestEndToEnd:
    def test_pure_110hz_tone(self):
        signal = sine_wave(110.0, duration=0.5, sr=SAMPLE_RATE, amplitude=0.8)
        session = TunerSession(reference_pitch=440, instrument="guitar", estimator="yin")
        session.start(ArraySource(signal, sample_rate=SAMPLE_RATE))

        result = session.step()

        assert isinstance(result, TuningResult)
        assert result.note.pitch_class == "A"
        assert result.note.octave == 2
        assert result.cents == 0
        assert result.state is TuningState.IN_TUNE
        session.stop()

    def test_slightly_sharp_tone_is_reported_sharp(self):
        signal = sine_wave(110.0 * 2 ** (8 / 1200), duration=0.5, sr=SAMPLE_RATE, amplitude=0.8)
        session = TunerSession(estimator="yin")
        session.start(ArraySource(signal, sample_rate=SAMPLE_RATE))

        result = session.step()

        assert result.note.name == "A2"
        assert result.state is TuningState.SHARP
        assert abs(result.cents - 8) <= 1
        session.stop()

    def test_quiet_tone_is_no_signal(self):
        signal = sine_wave(110.0, duration=0.5, amplitude=0.005)
        session = TunerSession()
        session.start(ArraySource(signal), _fake_factory(110.0))
        assert isinstance(session.step(), NoSignal)

    def test_sine_frame_helper_matches(self):
        session = TunerSession(instrument="chromatic")
        session.start(FakeSource([sine_frame(110.0)]), _fake_factory(110.0))
        assert session.step().note.name == "A2"
