"""
Long-form story generation and narration utilities.

This package exposes the main building blocks used by the CLI entry point:

- Sentence-aware text splitting (`split_text`).
- Engine abstractions and concrete implementations (`engines`).
- The chunked story generation orchestrator (`orchestrator`).
- Speech synthesis and per-segment audio clips (`speech`).
- WAV container construction (`wav`) and audio merging helpers (`merger`).
- Metadata helpers (`metadata`).
"""

from .errors import (
    EmptyInputError,
    NoAudioDataError,
    StoryWeaverError,
    SummaryUnavailable,
    SynthesisError,
    TransportError,
)
from .split_text import hard_split_by_length, split_into_sentences, split_text
from .wav import build_wav
from .engines import (
    GenerationOptions,
    GoogleGenAISpeechEngine,
    GoogleGenAITextEngine,
    MockSpeechEngine,
    MockTextEngine,
    SpeechEngine,
    TextEngine,
)
from .orchestrator import (
    ERROR_MARKER,
    CancellationToken,
    ProgressUpdate,
    StoryConfig,
    StoryDetails,
    StoryOrchestrator,
    StoryState,
)
from .speech import AudioClip, SpeechClipCache, SpeechSynthesizer
from .merger import export_clip, merge_audio_clips
from .metadata import MetadataBuilder

__all__ = [
    "StoryWeaverError",
    "TransportError",
    "SynthesisError",
    "EmptyInputError",
    "NoAudioDataError",
    "SummaryUnavailable",
    "split_text",
    "split_into_sentences",
    "hard_split_by_length",
    "build_wav",
    "GenerationOptions",
    "TextEngine",
    "SpeechEngine",
    "GoogleGenAITextEngine",
    "GoogleGenAISpeechEngine",
    "MockTextEngine",
    "MockSpeechEngine",
    "ERROR_MARKER",
    "CancellationToken",
    "ProgressUpdate",
    "StoryConfig",
    "StoryDetails",
    "StoryOrchestrator",
    "StoryState",
    "AudioClip",
    "SpeechSynthesizer",
    "SpeechClipCache",
    "export_clip",
    "merge_audio_clips",
    "MetadataBuilder",
]
