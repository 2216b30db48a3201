"""Detect financial tables in extracted text and sort them into statements."""
from __future__ import annotations
import re
from typing import Dict, List, Optional

from pdf_utils import TABLE_ROW_TAG
from schema import ParsedTable, TableClassification, TableRow

TABLE_BANNER = "DETECTED TABLES:"

# a leading minus only counts when it starts a column, so "2023-24" keeps "24"
VALUE_RE = re.compile(r"(?:(?<![^\s|:])-)?(?:\(\d[\d,]*(?:\.\d+)?\)|\d[\d,]*(?:\.\d+)?)")
_VALUES_ONLY_RE = re.compile(r"(?:\(\d[\d,]*(?:\.\d+)?\)|\d[\d,]*(?:\.\d+)?|[\s|%\-–])+")
_SEPARATOR_RE = re.compile(r"^[=\-_]{20,}$")
_PAGE_RE = re.compile(r"^-{2,}\s*page\s+\d+\s*-{2,}$", re.IGNORECASE)
_COLUMN_SPLIT_RE = re.compile(r"\s{2,}|\t|\|")

_MONTH = r"(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\.?"
PERIOD_RE = re.compile(
    rf"\b\d{{1,2}}(?:st|nd|rd|th)?[\s\-/]+{_MONTH}[\s\-/,]+(?:19|20)\d{{2}}\b"
    rf"|\b{_MONTH}[\s\-/,]+(?:19|20)\d{{2}}\b"
    r"|\bQ[1-4]\s*FY\s?\d{2,4}\b"
    r"|\bFY\s?(?:19|20)?\d{2}(?:-\d{2})?\b"
    r"|\b(?:19|20)\d{2}(?:-\d{2})?\b",
    re.IGNORECASE,
)
HEADER_RE = re.compile(r"\b(?:quarter|ended|as at|year|month|period)", re.IGNORECASE)
MAX_HEADER_CHUNK = 40
MAX_PERIOD_CHUNK = 20

# order matters: ties go to the earlier statement
CATEGORY_KEYWORDS: Dict[str, List[str]] = {
    "income_statement": ["revenue", "income", "cost", "expense", "profit", "ebitda", "eps"],
    "balance_sheet": ["asset", "liabilit", "equity", "share capital", "reserve", "borrowing"],
    "cash_flow": ["cash flow", "operating", "investing", "financing", "net cash"],
}

CATEGORY_TITLES = {
    "income_statement": "INCOME STATEMENT",
    "balance_sheet": "BALANCE SHEET",
    "cash_flow": "CASH FLOW",
}


def _add_unique(seq: List[str], value: str) -> None:
    if value and value not in seq:
        seq.append(value)


def _columns(row: str) -> List[str]:
    return [c.strip() for c in _COLUMN_SPLIT_RE.split(row) if c.strip()]


def _header_labels(row: str) -> tuple[list[str], list[str]]:
    headers: List[str] = []
    periods: List[str] = []
    for chunk in _columns(row):
        if HEADER_RE.search(chunk) and len(chunk) <= MAX_HEADER_CHUNK:
            _add_unique(headers, chunk)
        found = PERIOD_RE.findall(chunk)
        if len(found) == 1 and len(chunk) <= MAX_PERIOD_CHUNK:
            # short column such as "31.03.2024" or "Mar 2024 (Audited)"
            _add_unique(periods, chunk)
        else:
            for p in found:
                _add_unique(periods, p.strip())
    return headers, periods


def is_period_header(row: str) -> bool:
    headers, periods = _header_labels(row)
    return bool(periods) and (bool(headers) or len(periods) >= 2)


def is_column_header(row: str) -> bool:
    """Period header standing on its own: two or more short columns, no prose."""
    columns = _columns(row)
    if len(columns) < 2 or any(len(c) > MAX_HEADER_CHUNK for c in columns):
        return False
    return is_period_header(row)


def is_tabular_row(line: str) -> bool:
    """A label followed only by two or more numeric columns."""
    values = VALUE_RE.findall(line)
    if len(values) < 2:
        return False
    first = VALUE_RE.search(line)
    return _VALUES_ONLY_RE.fullmatch(line[first.start():]) is not None


def parse_row(row: str, index: int) -> Optional[TableRow]:
    first = VALUE_RE.search(row)
    if first is None:
        return None
    values = [v.rstrip(",") for v in VALUE_RE.findall(row)]
    label = row[: first.start()].strip(" \t:|-–")
    return TableRow(line_item=label or f"Line Item {index}", values=values)


def parse_table(rows: List[str]) -> ParsedTable:
    table = ParsedTable()
    for row in rows:
        # header rows can only precede the first data row
        if not table.rows and is_period_header(row):
            headers, periods = _header_labels(row)
            for h in headers:
                _add_unique(table.headers, h)
            for p in periods:
                _add_unique(table.periods, p)
            continue
        parsed = parse_row(row, len(table.rows) + 1)
        if parsed is not None:
            table.rows.append(parsed)
    return table


def _table_text(table: ParsedTable) -> str:
    parts = table.headers + table.periods + [r.line_item for r in table.rows]
    return " ".join(parts).lower()


def category_scores(table: ParsedTable) -> Dict[str, int]:
    text = _table_text(table)
    return {
        category: sum(len(re.findall(rf"\b{re.escape(kw)}", text)) for kw in keywords)
        for category, keywords in CATEGORY_KEYWORDS.items()
    }


def classify_table(table: ParsedTable) -> Optional[str]:
    scores = category_scores(table)
    best = max(scores.values())
    if best == 0:
        return None
    return next(category for category in CATEGORY_KEYWORDS if scores[category] == best)


def extract_tables(text: str) -> TableClassification:
    result = TableClassification()
    buffer: List[str] = []
    in_block = False

    def flush() -> None:
        if not buffer:
            return
        table = parse_table(buffer)
        buffer.clear()
        if not table.rows:
            return
        result.all.append(table)
        category = classify_table(table)
        if category:
            getattr(result, category).append(table)

    for raw in text.splitlines():
        line = raw.strip()
        if TABLE_BANNER in line:
            flush()
            in_block = True
            continue
        if _SEPARATOR_RE.match(line):
            flush()
            in_block = False
            continue
        if not line or _PAGE_RE.match(line):
            continue
        if line.startswith(TABLE_ROW_TAG):
            buffer.append(line[len(TABLE_ROW_TAG):].strip())
        elif in_block or is_tabular_row(line) or is_column_header(line):
            buffer.append(line)
        else:
            flush()
    flush()
    return result


def format_for_prompt(tables: TableClassification, max_rows: int = 5) -> str:
    if tables.is_empty():
        return ""
    lines = ["--- EXTRACTED TABLES ---"]
    for category, title in CATEGORY_TITLES.items():
        group = getattr(tables, category)
        if not group:
            continue
        lines.append("")
        lines.append(f"{title} TABLES:")
        for idx, table in enumerate(group, 1):
            lines.append(f"Table {idx}:")
            lines.append(f"Periods: {', '.join(table.periods) or 'not detected'}")
            lines.append(f"Rows: {len(table.rows)}")
            for row in table.rows[:max_rows]:
                lines.append(f"  {row.line_item}: {' | '.join(row.values)}")
    return "\n".join(lines)
