#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from story_weaver.engines import (
    GoogleGenAISpeechEngine,
    GoogleGenAITextEngine,
    MockSpeechEngine,
    MockTextEngine,
    SpeechEngine,
    TextEngine,
)
from story_weaver.merger import export_clip, merge_audio_clips
from story_weaver.metadata import MetadataBuilder
from story_weaver.orchestrator import (
    CancellationToken,
    ProgressUpdate,
    StoryConfig,
    StoryOrchestrator,
)
from story_weaver.speech import TTS_CHUNK_LIMIT, AudioClip, SpeechClipCache, SpeechSynthesizer

logger = logging.getLogger(__name__)


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Weave a long story from a single idea.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--prompt", help="Story premise text.")
    source.add_argument("--prompt-file", help="Path to a file holding the story premise.")
    parser.add_argument("--input-encoding", default="utf-8", help="Encoding used for the premise file.")
    parser.add_argument("--output", default="./output/story.txt", help="Path for the generated story text.")
    parser.add_argument("--metadata-output", default="./output/metadata.json", help="Path for metadata JSON output.")
    parser.add_argument("--target-chars", type=int, default=200000, help="Total character target for the story.")
    parser.add_argument("--num-chunks", type=int, default=20, help="Number of generation steps.")
    parser.add_argument("--context-chars", type=int, default=50000, help="Trailing story characters sent as context.")
    parser.add_argument("--details-chars", type=int, default=150000, help="Story prefix length used for the summary.")
    parser.add_argument("--details-language", default="English", help="Language for the synopsis, hashtags and tags.")
    parser.add_argument("--narrate", action="store_true", help="Synthesize a WAV file for every story segment.")
    parser.add_argument("--audio-dir", default="./output/audio", help="Directory for per-segment WAV files.")
    parser.add_argument("--merge-audio", action="store_true", help="Also merge all segment audio into one file.")
    parser.add_argument("--merge-output", default="./output/story.wav", help="Path for merged narration audio.")
    parser.add_argument("--silence-gap-ms", type=int, default=300, help="Silence inserted between merged segments.")
    parser.add_argument("--tts-chunk-limit", type=int, default=TTS_CHUNK_LIMIT, help="Maximum characters per speech request.")
    parser.add_argument("--engine", default="google_genai", help="Engine to use (google_genai, mock).")
    parser.add_argument("--api-key", help="API key for Google GenAI.")
    parser.add_argument("--text-model", default="gemini-2.5-pro", help="Model used for story parts.")
    parser.add_argument("--details-model", default="gemini-2.5-flash", help="Model used for the story summary.")
    parser.add_argument("--tts-model", default="gemini-2.5-flash-preview-tts", help="Model used for narration.")
    parser.add_argument("--voice", default="Kore", help="Prebuilt voice name for narration.")
    parser.add_argument("--debug", action="store_true", help="Enable verbose logging.")
    return parser.parse_args(argv)


def configure_logging(debug: bool) -> None:
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )


def load_premise(args: argparse.Namespace) -> str:
    if args.prompt is not None:
        return args.prompt
    path = Path(args.prompt_file)
    if not path.exists():
        raise FileNotFoundError(f"Premise file does not exist: {path}")
    return path.read_text(encoding=args.input_encoding)


def _api_key(args: argparse.Namespace) -> str:
    api_key = args.api_key or os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_GENAI_API_KEY")
    if not api_key:
        raise ValueError("Google GenAI engine requires an API key (use --api-key or GEMINI_API_KEY env var).")
    return api_key


def create_text_engine(args: argparse.Namespace) -> TextEngine:
    engine_name = (args.engine or "").lower()
    if engine_name in {"mock", "dummy"}:
        return MockTextEngine()

    if engine_name in {"google", "google_genai", "gemini"}:
        return GoogleGenAITextEngine(
            api_key=_api_key(args),
            model=args.text_model,
            structured_model=args.details_model,
        )

    raise ValueError(f"Unsupported engine: {args.engine}")


def create_speech_engine(args: argparse.Namespace) -> SpeechEngine:
    engine_name = (args.engine or "").lower()
    if engine_name in {"mock", "dummy"}:
        return MockSpeechEngine()

    if engine_name in {"google", "google_genai", "gemini"}:
        return GoogleGenAISpeechEngine(
            api_key=_api_key(args),
            model=args.tts_model,
            voice_name=args.voice,
        )

    raise ValueError(f"Unsupported engine: {args.engine}")


def build_config(args: argparse.Namespace) -> StoryConfig:
    return StoryConfig(
        target_char_count=args.target_chars,
        num_chunks=args.num_chunks,
        context_window_chars=args.context_chars,
        details_input_chars=args.details_chars,
        details_language=args.details_language,
    )


def _report_progress(update: ProgressUpdate) -> None:
    if update.is_error:
        logger.error("[%5.1f%%] %s", update.percentage, update.status)
    else:
        logger.info("[%5.1f%%] %s", update.percentage, update.status)


def _install_stop_handler(token: CancellationToken) -> bool:
    def _stop() -> None:
        logger.warning("Stopping generation after the current part...")
        token.cancel()

    try:
        asyncio.get_running_loop().add_signal_handler(signal.SIGINT, _stop)
    except (NotImplementedError, RuntimeError):  # pragma: no cover - platform specific
        logger.debug("SIGINT handler unavailable; Ctrl-C will abort immediately.")
        return False
    return True


def _remove_stop_handler() -> None:
    asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)


async def run(args: argparse.Namespace, premise: str) -> int:
    text_engine = create_text_engine(args)
    config = build_config(args)
    orchestrator = StoryOrchestrator(text_engine, config)

    token = CancellationToken()
    handler_installed = _install_stop_handler(token)

    updates: List[ProgressUpdate] = []

    def on_progress(update: ProgressUpdate) -> None:
        updates.append(update)
        _report_progress(update)

    try:
        state = await orchestrator.generate_story(premise, on_progress, token)
    finally:
        # Default Ctrl-C handling applies to narration.
        if handler_installed:
            _remove_stop_handler()

    last_status = updates[-1].status if updates else ""
    failed = any(update.is_error for update in updates)

    story_output = Path(args.output)
    if state.segments:
        story_output.parent.mkdir(parents=True, exist_ok=True)
        story_output.write_text(state.full_text(), encoding="utf-8")
        logger.info("Story text (%d characters) saved to %s", len(state.full_text()), story_output)
    else:
        logger.warning("No story text was produced.")

    speech_engine: Optional[SpeechEngine] = None
    clips: List[AudioClip] = []
    audio_files: Dict[int, Path] = {}
    merged_output: Optional[Path] = None
    if args.narrate and state.segments:
        speech_engine = create_speech_engine(args)
        cache = SpeechClipCache(SpeechSynthesizer(speech_engine, chunk_limit=args.tts_chunk_limit))
        clips = await cache.generate_clips(state.segments)
        audio_dir = Path(args.audio_dir)
        for clip in clips:
            audio_files[clip.index] = export_clip(clip, audio_dir / f"segment-{clip.index + 1:03d}.wav")
        if args.merge_audio and clips:
            merged_output = Path(args.merge_output)
            output_format = merged_output.suffix.lstrip(".").lower() or "wav"
            merge_audio_clips(
                clips,
                merged_output,
                silence_gap_ms=args.silence_gap_ms,
                output_format=output_format,
            )

    metadata_builder = MetadataBuilder(
        text_engine=text_engine,
        config=config,
        output_path=Path(args.metadata_output),
        speech_engine=speech_engine,
    )
    metadata = metadata_builder.build_metadata(
        premise=premise,
        state=state,
        story_output=story_output,
        clips=clips,
        audio_files=audio_files,
        merged_audio=merged_output,
        status=last_status,
    )
    metadata_builder.write_metadata(metadata)
    logger.info("Metadata written to %s", metadata_builder.output_path)

    return 1 if failed else 0


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    configure_logging(args.debug)

    if args.num_chunks <= 0:
        raise ValueError("--num-chunks must be positive.")
    if args.target_chars < args.num_chunks:
        raise ValueError("--target-chars must be at least --num-chunks.")

    premise = load_premise(args).strip()
    if not premise:
        logger.warning("Empty premise. Nothing to generate.")
        return 0

    return asyncio.run(run(args, premise))


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        logger.error("Interrupted by user.")
        sys.exit(1)
    except Exception as exc:
        logger.exception("Fatal error: %s", exc)
        sys.exit(1)
