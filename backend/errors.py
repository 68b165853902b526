"""
Error types for the playback engine.

None of these are fatal: the engine catches each one where it can recover
and leaves itself Paused or Playing on some track.
"""


class PlayerError(Exception):
    """Base class for playback engine errors."""


class PlaybackBlocked(PlayerError):
    """The audio output refused to start (no mixer, no device, not unlocked)."""


class LoadFailure(PlayerError):
    """A track's audio resource could not be fetched or decoded."""

    def __init__(self, ref, reason=""):
        self.ref = ref
        self.reason = reason
        super().__init__(f"Could not load {ref}: {reason}" if reason else f"Could not load {ref}")


class FadeAbort(PlayerError):
    """
    A crossfade could not proceed and was replaced by a hard switch.

    Attributes:
        request: The TransitionRequest that was being faded
        cause: The underlying error, if any (e.g. PlaybackBlocked)
    """

    def __init__(self, request, cause=None):
        self.request = request
        self.cause = cause
        detail = f" ({cause})" if cause else ""
        super().__init__(f"Crossfade to track {request.target_index} aborted{detail}")
