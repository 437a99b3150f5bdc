from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Sequence

from .engines import SpeechEngine, TextEngine
from .orchestrator import StoryConfig, StoryState
from .speech import AudioClip

__all__ = ["MetadataBuilder"]


@dataclass
class MetadataBuilder:
    text_engine: TextEngine
    config: StoryConfig
    output_path: Path
    speech_engine: Optional[SpeechEngine] = None

    def build_metadata(
        self,
        *,
        premise: str,
        state: StoryState,
        story_output: Path,
        clips: Sequence[AudioClip] = (),
        audio_files: Optional[Dict[int, Path]] = None,
        merged_audio: Optional[Path] = None,
        status: str = "",
    ) -> Dict[str, object]:
        audio_files = audio_files or {}

        metadata = {
            "created_at": datetime.now(timezone.utc).isoformat(),
            "text_engine": self.text_engine.descriptor(),
            "speech_engine": self.speech_engine.descriptor() if self.speech_engine else None,
            "premise": premise,
            "status": status,
            "story_output": str(story_output),
            "total_chars": len(state.full_text()),
            "segments": [
                {"index": index, "chars": len(segment)}
                for index, segment in enumerate(state.segments)
            ],
            "details": state.details.to_dict() if state.details else None,
            "audio": [
                {
                    "index": clip.index,
                    "file": str(audio_files[clip.index]) if clip.index in audio_files else None,
                    "ms": clip.duration_ms,
                    "sample_rate": clip.sample_rate,
                    "channels": clip.channels,
                    "sample_width": clip.sample_width,
                }
                for clip in clips
            ],
            "merged_audio": str(merged_audio) if merged_audio else None,
            "config": {
                "target_char_count": self.config.target_char_count,
                "num_chunks": self.config.num_chunks,
                "chars_per_chunk": self.config.chars_per_chunk,
                "context_window_chars": self.config.context_window_chars,
                "details_input_chars": self.config.details_input_chars,
                "details_language": self.config.details_language,
            },
        }

        return metadata

    def write_metadata(self, metadata: Dict[str, object]) -> None:
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        with self.output_path.open("w", encoding="utf-8") as f:
            json.dump(metadata, f, ensure_ascii=False, indent=2)
