"""Boundary-aware text segmentation."""

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from ragcore.utils.config import ChunkingConfig

from .document import Chunk, ChunkMetadata, FormatTag

if TYPE_CHECKING:
    from .extraction import ExtractedText

# How far back from the raw cut to look for a natural boundary
PARAGRAPH_LOOKBACK = 200
SENTENCE_LOOKBACK = 100

_SENTENCE_END = re.compile(r"[.!?]\s")


def estimate_tokens(text: str) -> int:
    """Cheap token estimate: the larger of word count and chars / 4.

    This is a heuristic for budgeting only; it never matches a real tokenizer.
    """
    return max(len(text.split()), len(text) // 4)


def line_range(text: str, start: int, end: int) -> tuple[int, int]:
    """Return the 1-based (first, last) line numbers of ``text[start:end]``."""
    first = text.count("\n", 0, start) + 1
    last = text.count("\n", 0, max(start, end - 1)) + 1
    return first, last


def config_for_format(format_tag: FormatTag) -> ChunkingConfig:
    """Pick the chunking preset for a source format."""
    if format_tag in (FormatTag.SWIFT, FormatTag.CODE):
        return ChunkingConfig.code()
    return ChunkingConfig.default()


@dataclass(frozen=True)
class TextSpan:
    """A slice of the cleaned input text produced by the chunker."""

    content: str
    index: int
    start: int
    end: int
    token_estimate: int

    @property
    def length(self) -> int:
        return self.end - self.start


class TextChunker:
    """Split text into overlapping chunks that prefer natural boundaries.

    A window of ``chunk_size`` characters slides over the text. Before each
    cut the chunker looks backward for a blank line (when paragraphs are
    respected) or sentence punctuation followed by whitespace (when sentences
    are respected), and cuts there instead of at the raw offset. The next
    window starts ``overlap_size`` characters before the cut.

    Guarantees:
        - spans cover the text with no gaps; neighbours overlap by exactly
          ``overlap_size`` characters
        - no span is longer than ``chunk_size``
        - every iteration advances, so the loop always terminates
    """

    def __init__(self, config: Optional[ChunkingConfig] = None):
        """Initialize the chunker.

        Args:
            config: Chunking settings (defaults to ``ChunkingConfig.default()``)
        """
        self.config = config or ChunkingConfig.default()

    def chunk_text(self, text: str) -> list[TextSpan]:
        """Split text into spans.

        Leading and trailing whitespace is stripped first; span offsets refer
        to the stripped text. Empty or whitespace-only input yields ``[]``.
        """
        text = text.strip()
        if not text:
            return []

        if len(text) <= self.config.chunk_size:
            return [self._make_span(text, 0, 0, len(text))]

        spans: list[TextSpan] = []
        start = 0

        while start < len(text):
            end = self._find_cut(text, start)

            if start < end:
                spans.append(self._make_span(text, len(spans), start, end))

            if end >= len(text):
                break

            start = max(end - self.config.overlap_size, start + 1)

        return spans

    def chunk_document(self, extracted: "ExtractedText") -> list[Chunk]:
        """Split an extracted document into unembedded chunks."""
        content = extracted.content
        leading = len(content) - len(content.lstrip())
        line_offset = content.count("\n", 0, leading)
        stripped = content.strip()

        chunks = []
        for span in self.chunk_text(content):
            first, last = line_range(stripped, span.start, span.end)
            chunks.append(Chunk(
                source_path=extracted.source_path,
                source_name=extracted.source_name,
                content=span.content,
                sequence_index=span.index,
                metadata=ChunkMetadata(
                    format_tag=extracted.format_tag,
                    start_line=first + line_offset,
                    end_line=last + line_offset,
                    token_estimate=span.token_estimate,
                    language=extracted.language,
                ),
            ))

        return chunks

    def _find_cut(self, text: str, start: int) -> int:
        """Pick the end offset of the window starting at ``start``."""
        target = min(start + self.config.chunk_size, len(text))
        if target == len(text):
            return target

        # A boundary must leave room for the next window to move forward
        floor = start + self.config.overlap_size

        if self.config.respect_paragraphs:
            cut = self._find_paragraph_break(text, target, floor)
            if cut is not None:
                return cut

        if self.config.respect_sentences:
            cut = self._find_sentence_break(text, target, floor)
            if cut is not None:
                return cut

        return target

    def _find_paragraph_break(self, text: str, target: int, floor: int) -> Optional[int]:
        lo = max(floor, target - PARAGRAPH_LOOKBACK)
        if lo >= target:
            return None

        idx = text.rfind("\n\n", lo, target)
        if idx == -1:
            return None
        return idx + 2

    def _find_sentence_break(self, text: str, target: int, floor: int) -> Optional[int]:
        lo = max(floor, target - SENTENCE_LOOKBACK)
        if lo >= target:
            return None

        last = None
        for match in _SENTENCE_END.finditer(text, lo, target):
            last = match
        if last is None:
            return None
        return last.end()

    def _make_span(self, text: str, index: int, start: int, end: int) -> TextSpan:
        content = text[start:end]
        return TextSpan(
            content=content,
            index=index,
            start=start,
            end=end,
            token_estimate=estimate_tokens(content),
        )
