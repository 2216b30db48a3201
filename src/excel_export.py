"""FinancialAnalysis -> .xlsx bytes (openpyxl)."""
from __future__ import annotations
import io
from datetime import datetime
from typing import List

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from schema import Confidence, FinancialAnalysis, LineItemEntry

SHEET_TITLES = {
    "income_statement": "Income Statement",
    "balance_sheet": "Balance Sheet",
    "cash_flow": "Cash Flow",
}

HDR_FILL = PatternFill("solid", start_color="1E3A5F")
HDR_FONT = Font(bold=True, color="FFFFFF")
THIN = Side(style="thin")
HDR_BORDER = Border(top=THIN, left=THIN, bottom=THIN, right=THIN)
CONFIDENCE_FILLS = {
    Confidence.HIGH: PatternFill("solid", start_color="90EE90"),
    Confidence.MEDIUM: PatternFill("solid", start_color="FFE4B5"),
}
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def period_headers(analysis: FinancialAnalysis, entries: List[LineItemEntry]) -> List[str]:
    """Declared years, padded with "Period N" when entries carry more values."""
    headers = list(analysis.years)
    widest = max((len(e.values) for e in entries), default=0)
    for i in range(len(headers), widest):
        headers.append(f"Period {i + 1}")
    return headers


def _style_header(ws, ncols: int) -> None:
    ws.row_dimensions[1].height = 25
    for c in range(1, ncols + 1):
        cell = ws.cell(row=1, column=c)
        cell.font = HDR_FONT
        cell.fill = HDR_FILL
        cell.border = HDR_BORDER
        cell.alignment = Alignment(horizontal="center", vertical="center")


def write_statement_sheet(wb: Workbook, title: str, analysis: FinancialAnalysis, entries: List[LineItemEntry]) -> None:
    ws = wb.create_sheet(title)
    periods = period_headers(analysis, entries)
    ws.append(["Line Item", *periods, "Unit", "Confidence"])
    _style_header(ws, len(periods) + 3)

    conf_col = len(periods) + 3
    for entry in entries:
        values = list(entry.values) + [""] * (len(periods) - len(entry.values))
        # values stay literal text: "(1,234)" must not become -1234
        ws.append([entry.line_item, *values, entry.unit or analysis.unit, entry.confidence.value])
        r = ws.max_row
        for c in range(2, len(periods) + 2):
            ws.cell(row=r, column=c).alignment = Alignment(horizontal="right")
        fill = CONFIDENCE_FILLS.get(entry.confidence)
        if fill is not None:
            ws.cell(row=r, column=conf_col).fill = fill

    ws.column_dimensions["A"].width = 40
    for i in range(len(periods)):
        ws.column_dimensions[get_column_letter(i + 2)].width = 20
    ws.column_dimensions[get_column_letter(conf_col - 1)].width = 15
    ws.column_dimensions[get_column_letter(conf_col)].width = 15
    ws.freeze_panes = "B2"


def write_metadata_sheet(wb: Workbook, analysis: FinancialAnalysis) -> None:
    ws = wb.create_sheet("Metadata")
    ws.append(["Property", "Value"])
    for c in (1, 2):
        ws.cell(row=1, column=c).font = Font(bold=True)
    rows = [
        ("Currency", analysis.currency),
        ("Unit", analysis.unit),
        ("Overall Confidence", analysis.overall_confidence.value),
        ("Extraction Date", datetime.now().strftime("%Y-%m-%d %H:%M:%S")),
        ("Income Statement Items", len(analysis.income_statement)),
        ("Balance Sheet Items", len(analysis.balance_sheet)),
        ("Cash Flow Items", len(analysis.cash_flow)),
        ("Notes", analysis.extraction_notes or "None"),
    ]
    for row in rows:
        ws.append(list(row))
    ws.column_dimensions["A"].width = 25
    ws.column_dimensions["B"].width = 60


def build_workbook(analysis: FinancialAnalysis) -> bytes:
    wb = Workbook()
    wb.remove(wb.active)
    for field, title in SHEET_TITLES.items():
        entries = getattr(analysis, field)
        if entries:
            write_statement_sheet(wb, title, analysis, entries)
    write_metadata_sheet(wb, analysis)

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()
