from io import BytesIO

from docx import Document
from docx.oxml.ns import qn
from docx.table import Table
from docx.text.paragraph import Paragraph


class DocxReader:
    """Paragraphs and table rows in body order, separated by blank lines."""

    MIME_TYPES = {"application/vnd.openxmlformats-officedocument.wordprocessingml.document"}

    def supports(self, mime_type: str) -> bool:
        return mime_type in self.MIME_TYPES

    def read(self, data: bytes) -> str:
        doc = Document(BytesIO(data))
        parts = []
        for child in doc.element.body.iterchildren():
            if child.tag == qn("w:p"):
                text = Paragraph(child, doc).text.strip()
                if text:
                    parts.append(text)
            elif child.tag == qn("w:tbl"):
                parts.extend(_table_rows(Table(child, doc)))
        return "\n\n".join(parts)


def _table_rows(table: Table) -> list[str]:
    rows = []
    for row in table.rows:
        cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
        if cells:
            rows.append(" | ".join(cells))
    return rows
