import logging
from io import BytesIO

from pypdf import PdfReader

logger = logging.getLogger(__name__)


class PDFReader:

    MIME_TYPES = {"application/pdf"}

    def supports(self, mime_type: str) -> bool:
        return mime_type in self.MIME_TYPES

    def read(self, data: bytes) -> str:
        reader = PdfReader(BytesIO(data))
        pages = []
        for page in reader.pages:
            text = page.extract_text() or ""
            # Text runs of one page are space-joined; one page per line.
            pages.append(" ".join(text.split()))

        if not any(pages):
            logger.warning(
                f"PDF has {len(pages)} pages but no extractable text (scanned image?)"
            )
            return ""
        return "\n".join(pages)
