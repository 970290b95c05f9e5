"""Document reader protocol for dependency injection."""
from typing import Protocol, runtime_checkable


@runtime_checkable
class ReaderProtocol(Protocol):
    """Protocol for a single-format text reader."""

    def supports(self, mime_type: str) -> bool:
        """Check whether the reader handles a normalized MIME type."""
        ...

    def read(self, data: bytes) -> str:
        """Extract plain text from raw bytes.

        Args:
            data: Raw file content.

        Returns:
            Extracted text.
        """
        ...


@runtime_checkable
class TextExtractorProtocol(Protocol):
    """Protocol for MIME-dispatching text extraction."""

    def extract_text(self, data: bytes, mime_type: str) -> str:
        """Extract plain text from bytes of the declared MIME type.

        Args:
            data: Raw file content.
            mime_type: Declared MIME type, parameters allowed.

        Returns:
            Extracted text.

        Raises:
            UnsupportedFormat: No reader and bytes are not usable text.
            CorruptInput: Reader rejected the bytes.
        """
        ...
