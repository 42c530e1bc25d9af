# Instrument profiles: { instrument: ((string_label, frequency_hz), ...) }
# Frequencies are nominal at A4 = 440 Hz, strings listed low to high
# (ukulele keeps its re-entrant G-C-E-A order).
INSTRUMENTS = {
    "guitar": (
        ("E2", 82.41),
        ("A2", 110.00),
        ("D3", 146.83),
        ("G3", 196.00),
        ("B3", 246.94),
        ("E4", 329.63),
    ),
    "bass": (
        ("E1", 41.20),
        ("A1", 55.00),
        ("D2", 73.42),
        ("G2", 98.00),
    ),
    "ukulele": (
        ("G4", 392.00),
        ("C4", 261.63),
        ("E4", 329.63),
        ("A4", 440.00),
    ),
    "violin": (
        ("G3", 196.00),
        ("D4", 293.66),
        ("A4", 440.00),
        ("E5", 659.25),
    ),
    # No fixed strings: plain chromatic tuner
    "chromatic": (),
}

DEFAULT_INSTRUMENT = "guitar"

# Reference pitch (A4). Profiles above are defined at REFERENCE_A4 and scaled
# by reference_pitch / REFERENCE_A4.
REFERENCE_A4 = 440.0
DEFAULT_REFERENCE_PITCH = 440
MIN_REFERENCE_PITCH = 400
MAX_REFERENCE_PITCH = 480

# Absolute note index of A4 (same numbering as MIDI)
A4_INDEX = 69

# Audio settings
SAMPLE_RATE = 44100

# Analysis window (~93ms at 44.1kHz). Long enough for bass E1 (41 Hz).
FRAME_SIZE = 4096

# How far an ArraySource advances between frames
HOP_SIZE = 1024

# Noise gate: frames with RMS at or below this are treated as silence (~ -40 dBFS)
NOISE_GATE_RMS = 0.01

# Level meter maps [METER_FLOOR_DB, 0] dBFS onto [0, 100] %
METER_FLOOR_DB = -60.0

# Estimates outside the open band (20, 5000) Hz are discarded
MIN_PLAUSIBLE_FREQ = 20.0
MAX_PLAUSIBLE_FREQ = 5000.0

# Estimator search band. 27.5 Hz is A0, below bass low E (41.2 Hz).
ESTIMATOR_FMIN = 27.5
ESTIMATOR_FMAX = 4000.0

# CREPE: frames below this periodicity are unvoiced
CREPE_MODEL = "tiny"
CREPE_FMIN = 32.70   # C1, lowest pitch CREPE can report
CREPE_FMAX = 1975.5  # B6, highest pitch CREPE can report
CREPE_HOP_SIZE = 512
CREPE_PERIODICITY_THRESHOLD = 0.5

# Classification
IN_TUNE_CENTS = 5
MAX_DISPLAY_CENTS = 50

# Reference tone playback
TONE_DURATION = 2.0
TONE_GAIN = 0.3
TONE_FLOOR = 0.001

# Analysis cadence for the UIs (display refresh rate)
TICK_RATE = 60

# Persisted settings keys
SETTINGS_KEY_REFERENCE = "tuner-a4"
SETTINGS_KEY_INSTRUMENT = "tuner-instrument"
