"""
Design (errors.py)
- Purpose: Name every failure kind the UI distinguishes.
    ValidationError:       user input fails a precondition (shown inline; state unchanged).
    BackendCallError:      a backend command failed (shown inline; state unchanged).
    TransientChannelError: a poll failed or the push subscription did not attach (absorbed).
    MalformedPayload:      a push/poll payload failed shape validation (dropped whole).
- Thread-safety: N/A.
"""


class PingWatchError(Exception):
    """Base class for application errors."""


class ValidationError(PingWatchError):
    pass


class BackendCallError(PingWatchError):
    pass


class TransientChannelError(PingWatchError):
    pass


class MalformedPayload(PingWatchError):
    pass
