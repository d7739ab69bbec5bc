import asyncio
from pathlib import Path

from docreview.ingestion.exceptions import DocumentLoadError
from docreview.logging.logger import Log
from docreview.pdf.base import BasePdfExtractor
from docreview.pdf.exceptions import PdfExtractionError

PDF_SUFFIXES = frozenset({".pdf"})


class DocumentLoader:
    """Reads a document file and returns its text.

    PDFs go through the configured extractor; anything else is decoded as
    UTF-8, replacing undecodable bytes. File type is otherwise not validated.
    """

    def __init__(self, pdf_extractor: BasePdfExtractor) -> None:
        self._pdf_extractor = pdf_extractor

    async def load_text(self, path: Path) -> str:
        """Load ``path`` off the event loop.

        Raises:
            DocumentLoadError: if the file is missing, unreadable, or the PDF
                cannot be parsed.
        """
        text = await asyncio.to_thread(self._load_sync, path)
        Log.info(f"Loaded {len(text)} chars from {path.name}")
        return text

    def _load_sync(self, path: Path) -> str:
        if not path.is_file():
            raise DocumentLoadError(f"File not found: {path}")
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise DocumentLoadError(f"Failed to read {path}: {exc}") from exc
        if path.suffix.lower() in PDF_SUFFIXES:
            try:
                return self._pdf_extractor.extract(raw)
            except PdfExtractionError as exc:
                raise DocumentLoadError(str(exc)) from exc
        return raw.decode("utf-8", errors="replace")
