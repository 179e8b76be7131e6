"""Exceptions raised by the shot timer client."""


class ShotTimerError(Exception):
    """Base error for shottimer."""


class TransportUnavailableError(ShotTimerError):
    """Raised when the Bluetooth adapter is off, unauthorized or missing."""


class ConnectFailedError(ShotTimerError):
    """Raised when the transport could not establish a link."""


class NegotiationFailedError(ShotTimerError):
    """Raised when the peripheral lacks the UART service or characteristics."""


class BLETimeoutError(ShotTimerError):
    """Raised when waiting for a link outcome or event times out."""


class InvalidLinkStateError(ShotTimerError):
    """Raised when an operation is not valid in the current link state."""


class NotReadyError(InvalidLinkStateError):
    """Raised when a command is sent before the link is ready."""


class AlreadyConnectingError(InvalidLinkStateError):
    """Raised when connect() is called while a negotiation is in progress."""


class AlreadyConnectedError(InvalidLinkStateError):
    """Raised when connect() is called while a link is up."""


class InvalidFrameError(ShotTimerError):
    """Raised when a notification payload cannot be decoded as a shot frame."""
