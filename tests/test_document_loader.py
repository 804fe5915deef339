"""Unit tests for DocumentLoader."""
import sys
sys.path.insert(0, 'backend')

import fitz  # PyMuPDF
import pytest
from services.document_loader import DocumentLoader, SAMPLE_DOCUMENTS


@pytest.fixture
def docs_dir(tmp_path):
    (tmp_path / "notes.txt").write_text("LangGraph adds stateful workflows.", encoding="utf-8")
    (tmp_path / "readme.md").write_text("# Prompt templates\n\nThey format input.", encoding="utf-8")
    (tmp_path / "data.csv").write_text("a,b\n1,2", encoding="utf-8")

    pdf = fitz.open()
    for text in ("First page about retrieval.", "Second page about vectors."):
        page = pdf.new_page()
        page.insert_text((72, 72), text)
    pdf.save(str(tmp_path / "guide.pdf"))
    pdf.close()

    return tmp_path


class TestDocumentLoader:

    def test_loads_supported_files(self, docs_dir):
        documents = DocumentLoader(str(docs_dir)).load_documents()

        assert [d.filename for d in documents] == ["guide.pdf", "notes.txt", "readme.md"]

    def test_text_file_is_single_page(self, docs_dir):
        documents = DocumentLoader(str(docs_dir)).load_documents()

        notes = next(d for d in documents if d.filename == "notes.txt")
        assert notes.total_pages == 1
        assert notes.pages[0].text == "LangGraph adds stateful workflows."
        assert notes.pages[0].word_count == 4
        assert notes.source_path.endswith("notes.txt")

    def test_pdf_pages_extracted(self, docs_dir):
        documents = DocumentLoader(str(docs_dir)).load_documents()

        guide = next(d for d in documents if d.filename == "guide.pdf")
        assert guide.total_pages == 2
        assert [p.page_number for p in guide.pages] == [1, 2]
        assert "retrieval" in guide.pages[0].text
        assert "vectors" in guide.pages[1].text

    def test_unreadable_file_skipped(self, docs_dir):
        (docs_dir / "broken.pdf").write_bytes(b"not a pdf")

        documents = DocumentLoader(str(docs_dir)).load_documents()

        assert "broken.pdf" not in [d.filename for d in documents]
        assert len(documents) == 3

    def test_missing_directory(self, tmp_path):
        assert DocumentLoader(str(tmp_path / "missing")).load_documents() == []

    def test_sample_documents(self):
        documents = DocumentLoader.sample_documents()

        assert len(documents) == len(SAMPLE_DOCUMENTS) == 6
        assert documents[0].filename == "sample_0"
        assert documents[2].pages[0].text == SAMPLE_DOCUMENTS[2]
