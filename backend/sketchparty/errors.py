"""Failures raised by the room session core.

Every failure is scoped to a single connection or a single room; none of
them should ever take the server process down.
"""


class SketchPartyError(Exception):
    """Base class for session core errors."""


class RoomNotFound(SketchPartyError):
    def __init__(self, code):
        super().__init__(f"Room not found: {code}")
        self.code = code


class RoomCodesExhausted(SketchPartyError):
    def __init__(self, attempts):
        super().__init__(f"No free room code after {attempts} attempts")
        self.attempts = attempts


class SendFailure(SketchPartyError):
    """A write to a participant's channel failed; the connection is gone."""

    def __init__(self, connection, reason=None):
        super().__init__(f"Send to {connection!r} failed: {reason}")
        self.connection = connection
        self.reason = reason


class MalformedMessage(SketchPartyError):
    """An inbound payload did not match the message shape."""
