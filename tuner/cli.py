"""
Terminal tuner: microphone (or audio file) -> one status line, refreshed in place.

    tuner                          # guitar, A4 = 440, default mic
    tuner --instrument violin --a4 442
    tuner --file recording.wav     # analyse a file frame by frame
    tuner --list-devices
"""

import argparse
import logging
import sys
import time

from tuner.audio import ArraySource, MicrophoneSource, list_devices
from tuner.config import (
    DEFAULT_INSTRUMENT,
    DEFAULT_REFERENCE_PITCH,
    INSTRUMENTS,
    MAX_DISPLAY_CENTS,
    SAMPLE_RATE,
    TICK_RATE,
)
from tuner.cycle import NoSignal
from tuner.errors import TunerError
from tuner.notes import TuningState
from tuner.pitch import DEFAULT_ESTIMATOR, ESTIMATORS
from tuner.session import TunerSession
from tuner.tunings import nearest_string

logger = logging.getLogger(__name__)

DIRECTIONS = {
    TuningState.IN_TUNE: "in tune",
    TuningState.SHARP: "tune DOWN",
    TuningState.FLAT: "tune UP",
}


def needle(clamped_cents, width=27):
    """ASCII needle centered at 0 cents, spanning +/-50."""
    mid = width // 2
    pos = int(round(clamped_cents / MAX_DISPLAY_CENTS * mid))
    bar = ["-"] * width
    bar[mid] = "|"
    bar[max(0, min(width - 1, mid + pos))] = "^"
    return "|" + "".join(bar) + "|"


def format_result(result, session):
    if result is None:
        return None
    if isinstance(result, NoSignal):
        return f"(listening...)  level {result.level:3.0f}%"

    line = (
        f"{result.note.name:<4s} f0={result.frequency:7.1f} Hz  "
        f"{result.cents:+4d} cents  {DIRECTIONS[result.state]:<9s} "
        f"{needle(result.classification.clamped_cents)}"
    )
    closest = nearest_string(result.frequency, session.tuning)
    if closest is not None:
        string, cents = closest
        line += f"  string {string.label} {cents:+.0f}c"
    return line


def print_strings(session):
    if not session.tuning.strings:
        print(f"{session.instrument}: chromatic mode, A4 = {session.reference_pitch:g} Hz")
        return
    strings = "  ".join(
        f"{s.label} {s.frequency:.1f}" for s in session.tuning.strings
    )
    print(f"{session.instrument} @ A4 = {session.reference_pitch:g} Hz:  {strings}")


def run(session, source, tick_rate=TICK_RATE, realtime=True):
    """Drive session.step() at tick_rate until interrupted or the source runs dry."""
    session.start(source)
    period = 1.0 / tick_rate
    try:
        while session.is_running:
            started = time.monotonic()
            result = session.step()
            line = format_result(result, session)
            if line is not None:
                sys.stdout.write("\r" + line + " " * 4)
                sys.stdout.flush()
            if getattr(source, "exhausted", False):
                break
            if realtime:
                time.sleep(max(0.0, period - (time.monotonic() - started)))
    finally:
        session.stop()
        sys.stdout.write("\n")


def build_parser():
    ap = argparse.ArgumentParser(description="Live instrument tuner (mic -> terminal)")
    ap.add_argument("--instrument", choices=sorted(INSTRUMENTS), default=DEFAULT_INSTRUMENT)
    ap.add_argument("--a4", type=float, default=DEFAULT_REFERENCE_PITCH,
                    help="Reference pitch for A4 in Hz (400-480)")
    ap.add_argument("--estimator", choices=sorted(ESTIMATORS), default=DEFAULT_ESTIMATOR)
    ap.add_argument("--device", type=int, default=None, help="Input device index (see --list-devices)")
    ap.add_argument("--sample-rate", type=int, default=SAMPLE_RATE)
    ap.add_argument("--file", type=str, default=None, help="Analyse an audio file instead of the mic")
    ap.add_argument("--list-devices", action="store_true", help="List audio devices and exit")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return ap


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.list_devices:
        print(list_devices())
        return 0

    try:
        session = TunerSession(
            reference_pitch=args.a4,
            instrument=args.instrument,
            estimator=args.estimator,
        )
        if args.file:
            source = ArraySource.from_file(args.file, sample_rate=args.sample_rate)
        else:
            source = MicrophoneSource(sample_rate=args.sample_rate, device=args.device)

        print_strings(session)
        print("Listening. Press Ctrl+C to quit.")
        run(session, source, realtime=args.file is None)
    except KeyboardInterrupt:
        print("\nBye!")
    except TunerError as e:
        logger.debug("Tuner failed", exc_info=True)
        print(f"\nError: {e}", file=sys.stderr)
        print("Tip: try `tuner --list-devices` and select a valid input index.", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
