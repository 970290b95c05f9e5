class TextReader:

    MIME_TYPES = {"text/plain", "text/markdown", "text/x-markdown", "text/csv"}

    def supports(self, mime_type: str) -> bool:
        return mime_type in self.MIME_TYPES

    def read(self, data: bytes) -> str:
        return data.decode("utf-8-sig", errors="replace")
