"""Format readers: raw bytes + MIME type in, plain text out."""
from .composite_reader import CompositeReader, normalize_mime_type
from .docx_reader import DocxReader
from .html_reader import HTMLReader
from .pdf_reader import PDFReader
from .text_reader import TextReader
from .xlsx_reader import XlsxReader

_default_reader = CompositeReader()


def extract_text(data: bytes, mime_type: str) -> str:
    """Extract plain text with the default set of readers.

    Raises:
        UnsupportedFormat: No reader and the bytes are not usable text.
        CorruptInput: The format parser rejected the bytes.
    """
    return _default_reader.extract_text(data, mime_type)


__all__ = [
    "CompositeReader",
    "DocxReader",
    "HTMLReader",
    "PDFReader",
    "TextReader",
    "XlsxReader",
    "extract_text",
    "normalize_mime_type",
]
