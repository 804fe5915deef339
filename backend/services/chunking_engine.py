"""Chunking engine: recursive splitting into overlapping passages."""
import logging
from typing import Callable, List, Optional

from models.document import Document
from models.chunk import Chunk
from config import CHUNK_SIZE, CHUNK_OVERLAP

logger = logging.getLogger(__name__)


class ChunkingEngine:
    """Segments documents into overlapping chunks for the vector index."""

    def __init__(
        self,
        chunk_size: int = CHUNK_SIZE,
        chunk_overlap: int = CHUNK_OVERLAP,
        length_function: Callable[[str], int] = len,
        separators: Optional[List[str]] = None
    ):
        """
        Initialize ChunkingEngine.

        Args:
            chunk_size: Maximum chunk length, in units of length_function
            chunk_overlap: Maximum content carried over between neighbouring chunks
            length_function: Measures text length (characters by default)
            separators: Split points tried in priority order
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if chunk_overlap < 0 or chunk_overlap >= chunk_size:
            raise ValueError("chunk_overlap must be non-negative and smaller than chunk_size")

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.length_function = length_function
        self.separators = separators or ["\n\n", "\n", " ", ""]

    def chunk_documents(self, documents: List[Document]) -> List[Chunk]:
        """
        Split every page of every document into chunks.

        Returns:
            List of Chunk objects with source id, page number and ordinal offset
        """
        all_chunks = []

        for document in documents:
            logger.debug(f"Chunking document: {document.filename}")
            for page in document.pages:
                if not page.text.strip():
                    continue
                for idx, text in enumerate(self.split_text(page.text)):
                    all_chunks.append(Chunk(
                        chunk_id=f"{document.filename}_{page.page_number}_{idx}",
                        text=text,
                        source_id=document.filename,
                        offset=idx,
                        page_number=page.page_number
                    ))

        logger.info(f"Created {len(all_chunks)} chunks from {len(documents)} documents")
        return all_chunks

    def split_text(self, text: str) -> List[str]:
        """Split one text into chunks no longer than chunk_size where possible."""
        return self._recursive_split(text, self.separators)

    def _recursive_split(self, text: str, separators: List[str]) -> List[str]:
        # Pick the first separator present in the text; "" splits into characters
        separator = separators[-1]
        remaining: List[str] = []
        for i, candidate in enumerate(separators):
            if candidate == "":
                separator = candidate
                break
            if candidate in text:
                separator = candidate
                remaining = separators[i + 1:]
                break

        parts = text.split(separator) if separator else list(text)

        chunks = []
        short_parts = []
        for part in parts:
            if self.length_function(part) < self.chunk_size:
                short_parts.append(part)
                continue

            if short_parts:
                chunks.extend(self._merge(short_parts, separator))
                short_parts = []

            if remaining:
                chunks.extend(self._recursive_split(part, remaining))
            else:
                chunks.append(part)

        if short_parts:
            chunks.extend(self._merge(short_parts, separator))

        return chunks

    def _merge(self, parts: List[str], separator: str) -> List[str]:
        """Greedily join parts up to chunk_size, keeping a tail of up to chunk_overlap."""
        separator_len = self.length_function(separator)
        chunks = []
        window: List[str] = []
        total = 0

        for part in parts:
            part_len = self.length_function(part)
            joined_len = total + part_len + (separator_len if window else 0)

            if joined_len > self.chunk_size and window:
                chunk = separator.join(window).strip()
                if chunk:
                    chunks.append(chunk)

                # Drop from the front until the tail fits the overlap and the next part fits the chunk
                while total > self.chunk_overlap or (
                    total + part_len + (separator_len if window else 0) > self.chunk_size and total > 0
                ):
                    total -= self.length_function(window[0]) + (separator_len if len(window) > 1 else 0)
                    window.pop(0)

            window.append(part)
            total += part_len + (separator_len if len(window) > 1 else 0)

        chunk = separator.join(window).strip()
        if chunk:
            chunks.append(chunk)

        return chunks
