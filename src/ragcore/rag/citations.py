"""Citation checks for generated answers."""

import re

from pydantic import BaseModel

SOURCE_MARKER = re.compile(r"\[Source\s+\d+\]|\[\d+\]", re.IGNORECASE)

FILE_EXTENSIONS = (".swift", ".md", ".py", ".txt", ".json")


class CitationValidation(BaseModel):
    """What citation features an answer carries."""

    has_source_markers: bool
    has_sources_section: bool
    has_file_references: bool
    has_code_blocks: bool
    citation_count: int

    @property
    def is_valid(self) -> bool:
        return self.has_source_markers and self.citation_count >= 1

    @property
    def score(self) -> float:
        """Weighted quality score in [0, 1]."""
        score = 0.0
        if self.has_source_markers:
            score += 0.3
        if self.has_sources_section:
            score += 0.3
        if self.has_file_references:
            score += 0.2
        if self.has_code_blocks:
            score += 0.2
        return round(score, 2)

    def summary(self) -> str:
        def yes_no(flag: bool) -> str:
            return "yes" if flag else "no"

        return "\n".join([
            f"Source markers: {yes_no(self.has_source_markers)}",
            f"Sources section: {yes_no(self.has_sources_section)}",
            f"File references: {yes_no(self.has_file_references)}",
            f"Code blocks: {yes_no(self.has_code_blocks)}",
            f"Citation count: {self.citation_count}",
            f"Quality: {self.score:.0%}",
        ])


def validate_citations(text: str) -> CitationValidation:
    """Inspect an answer for ``[Source N]`` / ``[N]`` markers and friends."""
    markers = SOURCE_MARKER.findall(text)
    return CitationValidation(
        has_source_markers=bool(markers),
        has_sources_section="Sources:" in text,
        has_file_references=any(ext in text for ext in FILE_EXTENSIONS),
        has_code_blocks="```" in text,
        citation_count=len(markers),
    )
