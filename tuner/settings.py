"""
Load/save the two user settings against any dict-like store.

The store can be a plain dict, Streamlit's st.session_state, or anything
else with .get() and item assignment. Stored values are strings or ints
(the reference pitch is saved as whole Hz).

Bad stored values never stop the tuner from starting: they are logged and
replaced with the defaults.
"""

import logging

from tuner.config import (
    DEFAULT_INSTRUMENT,
    DEFAULT_REFERENCE_PITCH,
    SETTINGS_KEY_INSTRUMENT,
    SETTINGS_KEY_REFERENCE,
)
from tuner.errors import InvalidSettingError
from tuner.session import validate_instrument, validate_reference_pitch

logger = logging.getLogger(__name__)


def load_settings(store):
    """
    Returns:
        (reference_pitch, instrument), falling back to defaults per key
    """
    raw_pitch = store.get(SETTINGS_KEY_REFERENCE, DEFAULT_REFERENCE_PITCH)
    try:
        reference_pitch = validate_reference_pitch(raw_pitch)
    except InvalidSettingError as e:
        logger.warning("Ignoring stored reference pitch: %s", e)
        reference_pitch = float(DEFAULT_REFERENCE_PITCH)

    raw_instrument = store.get(SETTINGS_KEY_INSTRUMENT, DEFAULT_INSTRUMENT)
    try:
        instrument = validate_instrument(raw_instrument)
    except InvalidSettingError as e:
        logger.warning("Ignoring stored instrument: %s", e)
        instrument = DEFAULT_INSTRUMENT

    return reference_pitch, instrument


def save_settings(store, session):
    store[SETTINGS_KEY_REFERENCE] = int(round(session.reference_pitch))
    store[SETTINGS_KEY_INSTRUMENT] = session.instrument
