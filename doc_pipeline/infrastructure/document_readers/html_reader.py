from bs4 import BeautifulSoup


class HTMLReader:

    MIME_TYPES = {"text/html", "application/xhtml+xml"}
    SKIPPED_TAGS = ["script", "style", "noscript", "template"]

    def supports(self, mime_type: str) -> bool:
        return mime_type in self.MIME_TYPES

    def read(self, data: bytes) -> str:
        soup = BeautifulSoup(data, "html.parser")
        for tag in soup(self.SKIPPED_TAGS):
            tag.decompose()

        lines = (line.strip() for line in soup.get_text(separator="\n").splitlines())
        return "\n".join(line for line in lines if line)
