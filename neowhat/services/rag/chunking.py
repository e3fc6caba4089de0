"""Token-estimated text chunking with overlap."""

import math
import re
from dataclasses import dataclass

# Rough estimate for French and English text
TOKENS_PER_WORD = 0.75
TARGET_CHUNK_TOKENS = 500
OVERLAP_PERCENT = 0.2

TARGET_WORDS = math.floor(TARGET_CHUNK_TOKENS / TOKENS_PER_WORD)

# Short texts are still split so vector search has more than one passage to rank
MIN_CHUNKS = 2
MIN_WORDS_PER_CHUNK = 50

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F]")
_WHITESPACE = re.compile(r"\s+")


@dataclass
class TextChunk:
    text: str
    index: int
    start_word: int
    end_word: int
    estimated_tokens: int


def clean_text(text: str) -> str:
    """Collapse whitespace and drop control characters."""
    cleaned = _WHITESPACE.sub(" ", text)
    cleaned = _CONTROL_CHARS.sub("", cleaned)
    return cleaned.strip()


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text.split()) * TOKENS_PER_WORD)


def chunk_text_by_tokens(text: str) -> list[TextChunk]:
    """Split text into overlapping word windows sized by estimated tokens."""
    words = text.split()
    target_words = TARGET_WORDS
    if len(words) < TARGET_WORDS * MIN_CHUNKS:
        target_words = max(MIN_WORDS_PER_CHUNK, len(words) // MIN_CHUNKS)
    overlap = math.floor(target_words * OVERLAP_PERCENT)

    chunks: list[TextChunk] = []
    start = 0
    while start < len(words):
        end = min(start + target_words, len(words))
        window = words[start:end]
        chunks.append(
            TextChunk(
                text=" ".join(window),
                index=len(chunks),
                start_word=start,
                end_word=end,
                estimated_tokens=math.ceil(len(window) * TOKENS_PER_WORD),
            )
        )
        start = end - overlap if end < len(words) else end

    return chunks
