from __future__ import annotations

import logging
import re
from typing import List

logger = logging.getLogger(__name__)

__all__ = ["split_text", "split_into_sentences", "hard_split_by_length"]

DEFAULT_MAX_CHUNK_CHARS = 4500
SENTENCE_PATTERN = re.compile(r"[^.!?]+[.!?]*")


def split_text(text: str, max_length: int = DEFAULT_MAX_CHUNK_CHARS) -> List[str]:
    """
    Split text into pieces of at most ``max_length`` characters.

    Sentences are accumulated greedily so that pieces end on ``.``, ``!`` or ``?``
    wherever possible. A sentence that is longer than the limit on its own is
    sliced at fixed length afterwards. Joining the result gives back ``text``
    unchanged; no whitespace is stripped.
    """
    if max_length <= 0:
        raise ValueError(f"max_length must be positive, got {max_length}")
    if not text:
        return []

    sentences = split_into_sentences(text)
    if not sentences:
        return hard_split_by_length(text, max_length)

    chunks: List[str] = []
    buffer = ""
    for sentence in sentences:
        if buffer and len(buffer) + len(sentence) > max_length:
            chunks.append(buffer)
            buffer = sentence
        else:
            buffer += sentence

    if buffer:
        chunks.append(buffer)

    result: List[str] = []
    for chunk in chunks:
        if len(chunk) > max_length:
            result.extend(hard_split_by_length(chunk, max_length))
        else:
            result.append(chunk)

    logger.debug("Split %d characters into %d chunks (max %d).", len(text), len(result), max_length)
    return result


def split_into_sentences(text: str) -> List[str]:
    """
    Tokenize text into sentence-like units: a run of non-terminators followed by
    any terminators. Returns an empty list when the text has no such unit.
    """
    matches = list(SENTENCE_PATTERN.finditer(text or ""))
    if not matches:
        return []

    sentences = [match.group(0) for match in matches]
    # Leading terminators are never part of a match.
    lead = matches[0].start()
    if lead:
        sentences[0] = text[:lead] + sentences[0]
    return sentences


def hard_split_by_length(text: str, max_length: int = DEFAULT_MAX_CHUNK_CHARS) -> List[str]:
    """Deterministic fixed-length slicing, used when sentence boundaries do not help."""
    if max_length <= 0:
        raise ValueError(f"max_length must be positive, got {max_length}")
    return [text[start : start + max_length] for start in range(0, len(text), max_length)]
