"""Document loading service for PDF and plain-text sources."""
import logging
import os
from typing import List
import fitz  # PyMuPDF

from models.document import Document, Page

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = (".txt", ".md")

# Fallback corpus used when no source documents are configured
SAMPLE_DOCUMENTS = [
    "LangChain is a framework for developing applications powered by language models. "
    "It helps build chatbots, question answering systems, summarization tools and more.",
    "LangGraph is an extension of LangChain focused on stateful, multi-step AI workflows. "
    "Developers define nodes and edges to build complex state management flows.",
    "Retrieval-augmented generation (RAG) combines large language models with external knowledge sources. "
    "RAG retrieves relevant documents and uses them to generate answers, which improves accuracy.",
    "Message history management is a key part of building chatbots. Without it, chat history "
    "grows without bound and eventually exceeds the model's context window.",
    "Prompt templates turn raw user input into a format better suited to a language model. "
    "In LangChain, ChatPromptTemplate builds complex prompt templates.",
    "Chatbots often need multilingual support to serve users worldwide. In LangChain this can be "
    "done by adding a language parameter to the prompt template.",
]


class DocumentLoader:
    """Loads and extracts text from PDF, .txt and .md files."""

    def __init__(self, docs_directory: str = "knowledge_docs"):
        """
        Initialize DocumentLoader.

        Args:
            docs_directory: Path to directory containing source files
        """
        self.docs_directory = docs_directory

    def load_documents(self) -> List[Document]:
        """
        Load every supported file from the documents directory.

        Returns:
            List of Document objects, empty if the directory is missing
        """
        documents = []

        if not os.path.isdir(self.docs_directory):
            logger.warning(f"Documents directory not found: {self.docs_directory}")
            return documents

        filenames = [
            f for f in os.listdir(self.docs_directory)
            if f.lower().endswith(".pdf") or f.lower().endswith(TEXT_EXTENSIONS)
        ]
        logger.info(f"Found {len(filenames)} source files in {self.docs_directory}")

        for filename in sorted(filenames):
            filepath = os.path.join(self.docs_directory, filename)

            try:
                if filename.lower().endswith(".pdf"):
                    document = self._load_pdf(filepath, filename)
                else:
                    document = self._load_text(filepath, filename)
            except Exception as e:
                # Skip unreadable file and continue
                logger.error(f"Error loading {filename}: {str(e)}", exc_info=True)
                continue

            documents.append(document)
            logger.info(f"Loaded {filename}: {document.total_pages} pages")

        logger.info(f"Successfully loaded {len(documents)} documents")
        return documents

    @staticmethod
    def sample_documents() -> List[Document]:
        """Built-in knowledge base, one document per passage."""
        return [
            Document.from_text(filename=f"sample_{idx}", text=text)
            for idx, text in enumerate(SAMPLE_DOCUMENTS)
        ]

    def _load_pdf(self, filepath: str, filename: str) -> Document:
        """Extract text page-by-page from a PDF."""
        pdf_document = fitz.open(filepath)
        try:
            pages = []
            for page_num in range(len(pdf_document)):
                text = pdf_document[page_num].get_text()
                pages.append(Page(
                    page_number=page_num + 1,  # 1-indexed
                    text=text,
                    word_count=len(text.split())
                ))
        finally:
            pdf_document.close()

        return Document(
            filename=filename,
            pages=pages,
            total_pages=len(pages),
            source_path=filepath
        )

    def _load_text(self, filepath: str, filename: str) -> Document:
        with open(filepath, "r", encoding="utf-8") as f:
            text = f.read()
        return Document.from_text(filename=filename, text=text, source_path=filepath)
