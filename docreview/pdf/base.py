from abc import ABC, abstractmethod
from collections.abc import Iterable


class BasePdfExtractor(ABC):
    """Contract for PDF text extraction adapters used by document loading."""

    @abstractmethod
    def extract(self, pdf_bytes: bytes) -> str:
        """Extract plain text from PDF bytes.

        Raises:
            PdfExtractionError: if extraction fails for any reason.
        """

    @staticmethod
    def join_pages(pages: Iterable[str]) -> str:
        """Join page texts with a blank line, skipping pages with no text."""
        return "\n\n".join(text.strip() for text in pages if text and text.strip())
