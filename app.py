"""
Streamlit app for the tuner.

Run with:  streamlit run app.py

Real-time mode: uses st.rerun() as the tick. Each rerun runs one analysis
cycle on the newest microphone frame, draws the result, waits out the rest
of the ~1/60 s tick, then reruns to analyse the next frame. The microphone
stream and the TunerSession live in st.session_state so they survive reruns.
"""

import time

import streamlit as st

from tuner.audio import MicrophoneSource
from tuner.config import (
    INSTRUMENTS,
    MAX_REFERENCE_PITCH,
    MIN_REFERENCE_PITCH,
    TICK_RATE,
)
from tuner.cycle import NoSignal
from tuner.errors import AcquisitionError
from tuner.notes import TuningState, needle_angle
from tuner.pitch import ESTIMATORS, get_estimator_factory
from tuner.session import TunerSession
from tuner.settings import load_settings, save_settings
from tuner.tone import ToneGenerator
from tuner.tunings import nearest_string

st.set_page_config(page_title="Tuner", layout="centered")
st.title("Tuner")
st.caption("Chromatic and instrument tuner")

# --- Session state init ---
if "session" not in st.session_state:
    reference_pitch, instrument = load_settings(st.session_state)
    st.session_state.session = TunerSession(reference_pitch=reference_pitch, instrument=instrument)
    st.session_state.tones = ToneGenerator()
    st.session_state.error = None

session = st.session_state.session
tones = st.session_state.tones

# --- Instrument, reference pitch and estimator ---
col_instrument, col_a4, col_model = st.columns(3)
with col_instrument:
    instruments = list(INSTRUMENTS.keys())
    instrument = st.selectbox(
        "Instrument", instruments, index=instruments.index(session.instrument),
    )
with col_a4:
    a4 = st.slider(
        "A4 reference (Hz)", MIN_REFERENCE_PITCH, MAX_REFERENCE_PITCH,
        int(session.reference_pitch),
    )
with col_model:
    estimator_name = st.selectbox("Pitch detector", list(ESTIMATORS.keys()))

# Applied between cycles; takes effect on the next step()
if instrument != session.instrument:
    session.instrument = instrument
if a4 != session.reference_pitch:
    session.reference_pitch = a4
save_settings(st.session_state, session)

factory = get_estimator_factory(estimator_name)
if factory is not session.estimator_factory:
    session.estimator_factory = factory
    # The estimator is bound at start, so restart to switch
    if session.is_running:
        session.start(session.source)

# --- Strings with reference tones ---
if session.tuning.strings:
    st.subheader(f"{instrument.capitalize()} @ A4 = {session.reference_pitch:g} Hz")
    cols = st.columns(len(session.tuning.strings))
    for i, string in enumerate(session.tuning.strings):
        cols[i].metric(string.label, f"{string.frequency:.1f} Hz")
        if cols[i].button("Play", key=f"play-{i}"):
            tones.play(string.frequency)
else:
    st.subheader(f"Chromatic @ A4 = {session.reference_pitch:g} Hz")

st.divider()


# --- Start / Stop toggle ---
def toggle_listening():
    if session.is_running:
        session.stop()
        return
    try:
        session.start(MicrophoneSource())
        st.session_state.error = None
    except AcquisitionError as e:
        st.session_state.error = str(e)


if session.is_running:
    st.button("Stop Listening", on_click=toggle_listening, type="primary")
else:
    st.button("Start Listening", on_click=toggle_listening, type="primary")

if st.session_state.error:
    st.error(
        f"{st.session_state.error}. Please allow microphone access and try again."
    )

# --- One analysis cycle per rerun ---
tick_started = time.monotonic()
result = session.step()

st.progress(int(session.level), text=f"Input level {session.level:.0f}%")

result_container = st.empty()
shown = session.last_result

with result_container.container():
    col1, col2, col3 = st.columns(3)
    if shown is None or isinstance(result, NoSignal):
        col1.metric("Detected Note", "--")
        col2.metric("Frequency", "-- Hz")
        col3.metric("Cents Off", "--")
    else:
        col1.metric("Detected Note", shown.note.name)
        col2.metric("Frequency", f"{shown.frequency:.1f} Hz")
        col3.metric("Cents Off", f"{shown.cents:+d}")

        # Needle: -50..+50 cents -> -90..+90 degrees, drawn as a 0-100 bar
        angle = needle_angle(shown.classification)
        st.progress(int(round((angle + 90) / 180 * 100)), text=f"Needle {angle:+.0f} deg")

        if shown.state is TuningState.IN_TUNE:
            st.success("In tune!")
        elif shown.state is TuningState.SHARP:
            st.warning(f"Sharp by {shown.cents} cents -- tune down")
        else:
            st.warning(f"Flat by {abs(shown.cents)} cents -- tune up")

        closest = nearest_string(shown.frequency, session.tuning)
        if closest is not None:
            string, cents = closest
            st.caption(f"Closest string: {string.label} ({cents:+.0f} cents)")

# --- Continuous listening loop ---
if session.is_running:
    time.sleep(max(0.0, 1.0 / TICK_RATE - (time.monotonic() - tick_started)))
    # Rerun to analyse the next frame — this creates the continuous loop
    st.rerun()
