"""Exceptions raised by the tuner."""


class TunerError(Exception):
    """Base class for tuner errors."""


class AcquisitionError(TunerError):
    """The audio input could not be opened (no device, permission denied...)."""


class InvalidSettingError(TunerError, ValueError):
    """A reference pitch or instrument value was rejected."""
