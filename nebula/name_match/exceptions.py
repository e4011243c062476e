"""
Exceptions raised by the name match module.

Loader errors abort an upload. ClassificationError is absorbed by the
analysis driver's retry loop and only ever shown as a transient message.
"""


class NameMatchError(Exception):
    """Base class for all name match errors."""


class FormatError(NameMatchError, ValueError):
    """Uploaded file is readable but lacks the required columns."""


class InputReadError(NameMatchError, OSError):
    """Uploaded file could not be opened or read."""


class ClassificationError(NameMatchError):
    """A single classification attempt failed (transport or unparseable reply)."""
