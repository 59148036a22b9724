"""Errors raised by the timing replay simulator."""

from __future__ import annotations


class SimulatorError(Exception):
    """Base class for simulator failures reported to callers as structured errors."""


class NotFoundError(SimulatorError):
    """Raised when the requested event does not exist in the store."""


class EmptyDatasetError(SimulatorError):
    """Raised when an event exists but has no timing records to replay."""


class InvalidStateError(SimulatorError):
    """Raised when a control operation is not allowed in the current run state."""


class PersistError(SimulatorError):
    """Raised when a released record could not be written to the feed table."""
