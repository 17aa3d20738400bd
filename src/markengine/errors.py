# src/markengine/errors.py
from __future__ import annotations


class MarkEngineError(Exception):
    """Base class for errors raised by markengine."""


class AnalysisError(MarkEngineError):
    """The scanned image could not be read or analyzed."""


class RegistrationError(MarkEngineError):
    """Template geometry cannot map the scan into a working image."""


class FieldBoundsError(MarkEngineError):
    """A field's crop window does not fit inside the working image."""
