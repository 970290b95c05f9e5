import logging
import unicodedata
from typing import Optional

from doc_pipeline.core.exceptions import CorruptInput, UnsupportedFormat
from doc_pipeline.core.protocols.reader import ReaderProtocol

from .docx_reader import DocxReader
from .html_reader import HTMLReader
from .pdf_reader import PDFReader
from .text_reader import TextReader
from .xlsx_reader import XlsxReader

logger = logging.getLogger(__name__)

# Share of control characters above which decoded bytes are not text.
MAX_CONTROL_RATIO = 0.1
_ALLOWED_CONTROLS = set("\n\r\t\f\v")


def normalize_mime_type(mime_type: Optional[str]) -> str:
    """Strip MIME parameters and lower-case: ``Text/HTML; charset=x`` -> ``text/html``."""
    return (mime_type or "").split(";", 1)[0].strip().lower()


class CompositeReader:
    """Dispatch bytes to the reader registered for their MIME type."""

    def __init__(self, readers: Optional[list[ReaderProtocol]] = None):
        self._readers = readers or [
            PDFReader(),
            DocxReader(),
            XlsxReader(),
            HTMLReader(),
            TextReader(),
        ]

    def supports(self, mime_type: str) -> bool:
        return self._find_reader(normalize_mime_type(mime_type)) is not None

    def extract_text(self, data: bytes, mime_type: str) -> str:
        mime = normalize_mime_type(mime_type)
        reader = self._find_reader(mime)
        if reader is None:
            return self._decode_unknown(data, mime or mime_type)

        try:
            return reader.read(data)
        except Exception as e:
            logger.error(f"Failed to read {mime} ({len(data)} bytes): {e}")
            raise CorruptInput(mime, str(e)) from e

    def _find_reader(self, mime: str) -> Optional[ReaderProtocol]:
        for reader in self._readers:
            if reader.supports(mime):
                return reader
        return None

    def _decode_unknown(self, data: bytes, mime: str) -> str:
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise UnsupportedFormat(mime, "content is not UTF-8 text") from e

        if not _is_usable_text(text):
            raise UnsupportedFormat(mime, "content is not text")

        logger.info(f"No reader for '{mime}', decoded {len(data)} bytes as UTF-8")
        return text


def _is_usable_text(text: str) -> bool:
    if "\x00" in text:
        return False
    if not text:
        return True
    controls = sum(
        1 for ch in text if ch not in _ALLOWED_CONTROLS and unicodedata.category(ch) == "Cc"
    )
    return controls / len(text) <= MAX_CONTROL_RATIO
