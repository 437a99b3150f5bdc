from __future__ import annotations

__all__ = [
    "StoryWeaverError",
    "TransportError",
    "SynthesisError",
    "EmptyInputError",
    "NoAudioDataError",
    "SummaryUnavailable",
]


class StoryWeaverError(RuntimeError):
    """Base class for every error raised by the story weaver package."""


class TransportError(StoryWeaverError):
    """Raised when a call to the external generative service fails."""


class SynthesisError(StoryWeaverError):
    """Raised when speech synthesis cannot produce audio for a text."""


class EmptyInputError(SynthesisError):
    """Raised when speech is requested for blank text."""


class NoAudioDataError(SynthesisError):
    """Raised when a synthesis chunk comes back without an audio payload."""


class SummaryUnavailable(StoryWeaverError):
    """Raised when story details could not be produced. Never fatal."""
