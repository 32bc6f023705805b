"""Exceptions raised by the titration client."""


class TitrationError(Exception):
    """Base class for titration client errors."""


class InstrumentConnectionError(TitrationError, ConnectionError):
    """The instrument transport could not be opened or read."""
