import csv
from datetime import date, datetime, time
from io import BytesIO, StringIO

import openpyxl


class XlsxReader:
    """Render every sheet as a ``Sheet: <name>`` header plus CSV rows."""

    MIME_TYPES = {"application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"}

    def supports(self, mime_type: str) -> bool:
        return mime_type in self.MIME_TYPES

    def read(self, data: bytes) -> str:
        workbook = openpyxl.load_workbook(BytesIO(data), read_only=True, data_only=True)
        try:
            sheets = []
            for worksheet in workbook.worksheets:
                buffer = StringIO()
                writer = csv.writer(buffer, lineterminator="\n")
                for row in worksheet.iter_rows(values_only=True):
                    writer.writerow([_format_cell(value) for value in row])
                sheets.append(f"Sheet: {worksheet.title}\n{buffer.getvalue()}".rstrip("\n"))
            return "\n\n".join(sheets)
        finally:
            workbook.close()


def _format_cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)
