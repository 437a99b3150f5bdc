from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable, List, Optional, Tuple

from . import prompts
from .engines import GenerationOptions, TextEngine
from .errors import SummaryUnavailable, TransportError

logger = logging.getLogger(__name__)

__all__ = [
    "ERROR_MARKER",
    "StoryConfig",
    "StoryDetails",
    "StoryState",
    "ProgressUpdate",
    "CancellationToken",
    "StoryOrchestrator",
    "parse_story_details",
]

ERROR_MARKER = "Error:"
STOPPED_STATUS = "Generation stopped by user."
DETAILS_STATUS = "Generating story details..."
COMPLETE_STATUS = "Story generation complete!"


@dataclass
class StoryConfig:
    """
    Configuration describing how a long story is generated in parts.
    """

    target_char_count: int = 200000
    num_chunks: int = 20
    context_window_chars: int = 50000
    details_input_chars: int = 150000
    details_language: str = "English"
    temperature: float = 0.85
    top_p: float = 0.95
    top_k: int = 40

    def __post_init__(self) -> None:
        if self.num_chunks <= 0:
            raise ValueError("num_chunks must be positive.")
        if self.target_char_count < self.num_chunks:
            raise ValueError("target_char_count must allow at least one character per chunk.")
        if self.context_window_chars <= 0:
            raise ValueError("context_window_chars must be positive.")

    @property
    def chars_per_chunk(self) -> int:
        return self.target_char_count // self.num_chunks

    def generation_options(self) -> GenerationOptions:
        return GenerationOptions(temperature=self.temperature, top_p=self.top_p, top_k=self.top_k)


@dataclass(frozen=True)
class StoryDetails:
    synopsis: str
    hashtags: Tuple[str, ...] = ()
    tags: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {"synopsis": self.synopsis, "hashtags": list(self.hashtags), "tags": list(self.tags)}


@dataclass(frozen=True)
class ProgressUpdate:
    percentage: float
    status: str
    chunk: Optional[str] = None
    details: Optional[StoryDetails] = None

    @property
    def is_error(self) -> bool:
        return self.status.startswith(ERROR_MARKER)

    @property
    def is_final(self) -> bool:
        return self.status in (COMPLETE_STATUS, STOPPED_STATUS) or self.is_error


@dataclass
class StoryState:
    """
    Segments generated so far, in generation order.
    """

    max_segments: int
    max_segment_chars: int
    segments: List[str] = field(default_factory=list)
    details: Optional[StoryDetails] = None

    def append(self, segment: str) -> str:
        if len(self.segments) >= self.max_segments:
            raise ValueError(f"Story already holds {self.max_segments} segments.")
        segment = segment[: self.max_segment_chars]
        self.segments.append(segment)
        return segment

    def full_text(self) -> str:
        return "".join(self.segments)

    def __len__(self) -> int:
        return len(self.segments)


class CancellationToken:
    """
    Cooperative stop flag shared between the caller and a running generation.
    """

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def reset(self) -> None:
        self._cancelled = False


def parse_story_details(text: str) -> StoryDetails:
    try:
        payload = json.loads(text)
    except (TypeError, json.JSONDecodeError) as exc:
        raise SummaryUnavailable(f"Story details were not valid JSON: {exc}") from exc

    if not isinstance(payload, dict) or not isinstance(payload.get("synopsis"), str):
        raise SummaryUnavailable("Story details are missing a synopsis.")
    return StoryDetails(
        synopsis=payload["synopsis"],
        hashtags=tuple(str(tag) for tag in payload.get("hashtags") or ()),
        tags=tuple(str(tag) for tag in payload.get("tags") or ()),
    )


ProgressCallback = Callable[[ProgressUpdate], None]


class StoryOrchestrator:
    """
    Drives a text engine through a fixed number of sequential steps to build a
    long story, then asks the same engine for a structured summary.
    """

    def __init__(self, engine: TextEngine, config: Optional[StoryConfig] = None) -> None:
        self.engine = engine
        self.config = config or StoryConfig()

    async def generate_story(
        self,
        premise: str,
        on_progress: ProgressCallback,
        cancel_token: Optional[CancellationToken] = None,
    ) -> StoryState:
        if not premise or not premise.strip():
            raise ValueError("A story premise is required.")

        cancel_token = cancel_token or CancellationToken()
        cancel_token.reset()

        config = self.config
        total = config.num_chunks
        state = StoryState(max_segments=total, max_segment_chars=config.chars_per_chunk)
        options = config.generation_options()
        logger.info(
            "Generating story in %d parts of ~%d characters.", total, config.chars_per_chunk
        )

        for step in range(total):
            if cancel_token.cancelled:
                logger.info("Generation stopped by user before part %d.", step + 1)
                on_progress(ProgressUpdate(percentage=step / total * 100, status=STOPPED_STATUS))
                break

            prompt = self.build_prompt(premise, state.full_text(), step)
            try:
                text = await self.engine.generate_text(
                    prompt,
                    system_instruction=prompts.SYSTEM_INSTRUCTION,
                    options=options,
                )
            except Exception as exc:
                logger.error("Error generating story part %d: %s", step + 1, exc)
                on_progress(
                    ProgressUpdate(
                        percentage=step / total * 100,
                        status=(
                            f"{ERROR_MARKER} {exc}. "
                            "Please check your API key and network connection."
                        ),
                    )
                )
                return state

            chunk = text[: config.chars_per_chunk]
            if chunk:
                state.append(chunk)
                logger.debug("Part %d produced %d characters.", step + 1, len(chunk))
                on_progress(
                    ProgressUpdate(
                        percentage=(step + 1) / total * 100,
                        status=self._step_status(step, total),
                        chunk=chunk,
                    )
                )
            else:
                logger.warning("Part %d came back empty; skipping.", step + 1)

        story = state.full_text()
        if story.strip() and not cancel_token.cancelled:
            on_progress(ProgressUpdate(percentage=100.0, status=DETAILS_STATUS))
            state.details = await self.request_details(story)
            on_progress(ProgressUpdate(percentage=100.0, status=COMPLETE_STATUS, details=state.details))

        return state

    async def iter_progress(
        self,
        premise: str,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AsyncIterator[ProgressUpdate]:
        """
        Same run as :meth:`generate_story`, delivered as an async stream of updates.
        """
        queue: "asyncio.Queue[object]" = asyncio.Queue()
        done = object()
        task = asyncio.ensure_future(self.generate_story(premise, queue.put_nowait, cancel_token))
        task.add_done_callback(lambda _: queue.put_nowait(done))
        try:
            while True:
                item = await queue.get()
                if item is done:
                    break
                yield item  # type: ignore[misc]
            await task
        finally:
            if not task.done():
                task.cancel()

    def build_prompt(self, premise: str, story_so_far: str, step: int) -> str:
        chars_per_chunk = self.config.chars_per_chunk
        if step == 0:
            return prompts.OPENING_PROMPT_TEMPLATE.format(
                premise=premise, chars_per_chunk=chars_per_chunk
            )
        context = story_so_far[-self.config.context_window_chars :]
        return prompts.CONTINUATION_PROMPT_TEMPLATE.format(
            premise=premise, context=context, chars_per_chunk=chars_per_chunk
        )

    async def generate_details(self, story: str) -> StoryDetails:
        prompt = prompts.DETAILS_PROMPT_TEMPLATE.format(
            story=story[: self.config.details_input_chars],
            language=self.config.details_language,
        )
        text = await self.engine.generate_structured(prompt, prompts.STORY_DETAILS_SCHEMA)
        return parse_story_details(text)

    async def request_details(self, story: str) -> Optional[StoryDetails]:
        """Details are optional: any failure is logged and yields ``None``."""
        try:
            return await self.generate_details(story)
        except (TransportError, SummaryUnavailable) as exc:
            logger.warning("Failed to generate story details: %s", exc)
            return None

    @staticmethod
    def _step_status(step: int, total: int) -> str:
        if step + 1 < total:
            return f"Weaving part {step + 2} of {total}..."
        return f"Finished part {total} of {total}."
