"""Document data models."""
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class Page:
    """Represents a single page from a document."""
    page_number: int
    text: str
    word_count: int


@dataclass
class Document:
    """A loaded source document (PDF, text file or built-in sample)."""
    filename: str
    pages: List[Page]
    total_pages: int
    source_path: Optional[str] = None

    @classmethod
    def from_text(cls, filename: str, text: str, source_path: Optional[str] = None) -> "Document":
        """Wrap plain text as a single-page document."""
        page = Page(page_number=1, text=text, word_count=len(text.split()))
        return cls(filename=filename, pages=[page], total_pages=1, source_path=source_path)
