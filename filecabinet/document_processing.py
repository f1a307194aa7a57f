"""PDF text extraction."""

import io

import pypdf
from pypdf.errors import PyPdfError

from .config import config
from .errors import ValidationError

logger = config.get_logger(__name__)


class DocumentLoader:
    """Extracts text from uploaded PDF documents."""

    @staticmethod
    def extract_text(data: bytes, filename: str = "document.pdf") -> str:
        """Load text content from PDF bytes.

        Args:
            data: Raw bytes of the uploaded file.
            filename: Name used in log and error messages.

        Returns:
            The text of all pages, one page per line block.

        Raises:
            ValidationError: If the file is not a readable PDF or has no text.
        """
        if not data:
            msg = f"Uploaded file '{filename}' is empty"
            raise ValidationError(msg)

        try:
            pdf_reader = pypdf.PdfReader(io.BytesIO(data))
            pages = [page.extract_text() or "" for page in pdf_reader.pages]
        except (PyPdfError, ValueError, OSError) as e:
            logger.exception("Error loading PDF %s", filename)
            msg = f"Could not read '{filename}' as a PDF"
            raise ValidationError(msg, details=str(e)) from e

        text = "\n".join(page.strip() for page in pages if page.strip())
        if not text:
            msg = f"No text could be extracted from '{filename}'"
            raise ValidationError(msg)

        logger.info("Extracted %d characters from %s", len(text), filename)
        return text
