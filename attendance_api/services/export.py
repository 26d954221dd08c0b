"""
Report formatter - renders admin attendance listings as Excel or PDF
"""
import io
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Union

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from attendance_api.core.exceptions import InternalError
from attendance_api.services.attendance import LedgerEntry

logger = logging.getLogger(__name__)

REPORT_TITLE = "Employee Attendance Report"
SYSTEM_NAME = "Employee Attendance System"

COLUMNS = [
    ("S.No", 8),
    ("Employee ID", 15),
    ("Name", 20),
    ("Date", 15),
    ("Check-In Time", 20),
    ("Check-In Location", 25),
    ("Check-Out Time", 20),
    ("Check-Out Location", 25),
]

HEADER_COLOR = "4472C4"
STRIPE_COLOR = "F2F2F2"


@dataclass
class ReportFilters:
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    employee_name: Optional[str] = None

    def describe(self, generated_at: datetime) -> str:
        text = "Generated: " + generated_at.strftime("%Y-%m-%d %H:%M:%S")
        if self.date_from or self.date_to:
            text += f" | Date Range: {self.date_from or 'Start'} to {self.date_to or 'Now'}"
        if self.employee_name:
            text += f" | Employee: {self.employee_name}"
        return text


def format_location(latitude: Optional[float], longitude: Optional[float], precision: int) -> str:
    if latitude is None or longitude is None:
        return "N/A"
    return f"{latitude:.{precision}f}, {longitude:.{precision}f}"


def report_row(index: int, entry: LedgerEntry, precision: int, not_out: str) -> List[Union[int, str]]:
    record, user = entry
    return [
        index,
        user.employee_id or "N/A",
        user.name or "Unknown",
        record.check_in_time.strftime("%Y-%m-%d"),
        record.check_in_time.strftime("%H:%M:%S"),
        format_location(record.check_in_latitude, record.check_in_longitude, precision),
        not_out if record.is_open else record.check_out_time.strftime("%H:%M:%S"),
        format_location(record.check_out_latitude, record.check_out_longitude, precision),
    ]


def report_filename(extension: str, today: Optional[datetime] = None) -> str:
    """Dated by the server-local calendar, like the stored timestamps."""
    today = today or datetime.now()
    return f"attendance_report_{today.strftime('%Y-%m-%d')}.{extension}"


# ---------------- Excel ----------------

def _render_excel(entries: Sequence[LedgerEntry], filters: ReportFilters) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Attendance Report"
    wb.properties.creator = SYSTEM_NAME

    last_col = get_column_letter(len(COLUMNS))
    thin = Side(style="thin")
    border = Border(top=thin, left=thin, bottom=thin, right=thin)

    ws.merge_cells(f"A1:{last_col}1")
    ws["A1"] = REPORT_TITLE
    ws["A1"].font = Font(size=16, bold=True)
    ws["A1"].alignment = Alignment(horizontal="center")

    ws.merge_cells(f"A2:{last_col}2")
    ws["A2"] = filters.describe(datetime.now())
    ws["A2"].font = Font(size=10, italic=True)
    ws["A2"].alignment = Alignment(horizontal="center")

    for col, (_, width) in enumerate(COLUMNS, start=1):
        ws.column_dimensions[get_column_letter(col)].width = width

    header_row = 4
    for col, (header, _) in enumerate(COLUMNS, start=1):
        cell = ws.cell(row=header_row, column=col, value=header)
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = PatternFill(fill_type="solid", fgColor=HEADER_COLOR)
        cell.alignment = Alignment(horizontal="center")
        cell.border = border

    stripe = PatternFill(fill_type="solid", fgColor=STRIPE_COLOR)
    row_idx = header_row
    for index, entry in enumerate(entries):
        row_idx += 1
        values = report_row(index + 1, entry, precision=6, not_out="Not checked out")
        for col, value in enumerate(values, start=1):
            cell = ws.cell(row=row_idx, column=col, value=value)
            cell.border = border
            if index % 2 == 1:
                cell.fill = stripe

    summary_row = row_idx + 2
    ws.cell(row=summary_row, column=1, value="Total Records:").font = Font(bold=True)
    ws.cell(row=summary_row, column=2, value=len(entries))

    output = io.BytesIO()
    wb.save(output)
    return output.getvalue()


def build_excel_report(entries: Sequence[LedgerEntry], filters: Optional[ReportFilters] = None) -> bytes:
    try:
        return _render_excel(entries, filters or ReportFilters())
    except Exception as e:
        logger.exception("Excel report generation failed")
        raise InternalError("Failed to generate Excel report") from e


# ---------------- PDF ----------------

PDF_MARGIN = 50
PDF_COL_WIDTHS = [40, 80, 100, 80, 90, 100, 90, 100]
PDF_HEADERS = ["S.No", "Emp ID", "Name", "Date", "Check-In", "Check-In Loc", "Check-Out", "Check-Out Loc"]
PDF_ROW_HEIGHT = 20


class _NumberedCanvas(canvas.Canvas):
    """Defers page output until save() so every footer knows the page count."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_page_states)
        for number, state in enumerate(self._saved_page_states, start=1):
            self.__dict__.update(state)
            self._draw_footer(number, total)
            super().showPage()
        super().save()

    def _draw_footer(self, number: int, total: int):
        width, _ = self._pagesize
        self.setFont("Helvetica", 8)
        self.setFillColor(colors.black)
        self.drawCentredString(width / 2, 30, f"Page {number} of {total} | {SYSTEM_NAME}")


def _fit(text: str, width: float, font: str, size: float) -> str:
    """Truncate text with an ellipsis so it fits in the given width."""
    if stringWidth(text, font, size) <= width:
        return text
    while text and stringWidth(text + "...", font, size) > width:
        text = text[:-1]
    return text + "..."


def _draw_table_header(c: canvas.Canvas, y: float) -> float:
    table_width = sum(PDF_COL_WIDTHS)
    c.setFillColor(colors.HexColor("#" + HEADER_COLOR))
    c.rect(PDF_MARGIN, y - PDF_ROW_HEIGHT, table_width, PDF_ROW_HEIGHT, stroke=0, fill=1)
    c.setFillColor(colors.white)
    c.setFont("Helvetica-Bold", 9)
    x = PDF_MARGIN
    for header, width in zip(PDF_HEADERS, PDF_COL_WIDTHS):
        c.drawString(x + 5, y - 14, _fit(header, width - 10, "Helvetica-Bold", 9))
        x += width
    return y - PDF_ROW_HEIGHT


def _render_pdf(entries: Sequence[LedgerEntry], filters: ReportFilters) -> bytes:
    buffer = io.BytesIO()
    page_size = landscape(A4)
    width, height = page_size
    c = _NumberedCanvas(buffer, pagesize=page_size)
    c.setTitle(REPORT_TITLE)
    c.setAuthor(SYSTEM_NAME)

    y = height - PDF_MARGIN
    c.setFont("Helvetica-Bold", 20)
    c.drawCentredString(width / 2, y - 20, REPORT_TITLE)
    y -= 40
    c.setFont("Helvetica-Oblique", 10)
    c.drawCentredString(width / 2, y - 10, filters.describe(datetime.now()))
    y -= 30

    y = _draw_table_header(c, y)
    table_width = sum(PDF_COL_WIDTHS)
    bottom = PDF_MARGIN + 30

    for index, entry in enumerate(entries):
        if y - PDF_ROW_HEIGHT < bottom:
            c.showPage()
            y = _draw_table_header(c, height - PDF_MARGIN)

        if index % 2 == 1:
            c.setFillColor(colors.HexColor("#" + STRIPE_COLOR))
            c.rect(PDF_MARGIN, y - PDF_ROW_HEIGHT, table_width, PDF_ROW_HEIGHT, stroke=0, fill=1)

        c.setFillColor(colors.black)
        c.setFont("Helvetica", 8)
        x = PDF_MARGIN
        for value, col_width in zip(report_row(index + 1, entry, precision=4, not_out="Not out"), PDF_COL_WIDTHS):
            c.drawString(x + 5, y - 13, _fit(str(value), col_width - 10, "Helvetica", 8))
            x += col_width

        c.setStrokeColor(colors.HexColor("#CCCCCC"))
        c.rect(PDF_MARGIN, y - PDF_ROW_HEIGHT, table_width, PDF_ROW_HEIGHT, stroke=1, fill=0)
        y -= PDF_ROW_HEIGHT

    if y - 30 < bottom:
        c.showPage()
        y = height - PDF_MARGIN
    c.setFillColor(colors.black)
    c.setFont("Helvetica-Bold", 10)
    c.drawString(PDF_MARGIN, y - 25, f"Total Records: {len(entries)}")

    c.showPage()
    c.save()
    return buffer.getvalue()


def build_pdf_report(entries: Sequence[LedgerEntry], filters: Optional[ReportFilters] = None) -> bytes:
    try:
        return _render_pdf(entries, filters or ReportFilters())
    except Exception as e:
        logger.exception("PDF report generation failed")
        raise InternalError("Failed to generate PDF report") from e
