from __future__ import annotations
from typing import Optional

from analyzer.base import AnalyzerProfile, StructuredAnalyzer
from enhancer import enhance_with_tables, fill_years
from extract_common import detect_currency, detect_unit
from prompt_loader import PromptLoader
from schema import STATEMENT_FIELDS, Confidence, FinancialAnalysis, LineItemEntry, TableClassification
from table_extractor import format_for_prompt

MIN_LINE_ITEMS = 1


def has_line_items(analysis: FinancialAnalysis) -> bool:
    return analysis.line_item_count() >= MIN_LINE_ITEMS


def _short_reason(reason: str) -> str:
    first = reason.splitlines()[0] if reason else "unknown"
    return first[:200]


def table_entries(tables: TableClassification, category: str, unit: str) -> list[LineItemEntry]:
    """Every row of every table in one statement, duplicates included."""
    return [
        LineItemEntry(line_item=row.line_item, values=list(row.values), unit=unit, confidence=Confidence.MEDIUM)
        for table in getattr(tables, category)
        for row in table.rows
    ]


def financial_fallback(text: str, tables: TableClassification, reason: str) -> FinancialAnalysis:
    """Rebuild the statements from detected tables; placeholder when there are none."""
    analysis = FinancialAnalysis(
        currency=detect_currency(text),
        unit=detect_unit(text),
        overall_confidence=Confidence.MEDIUM,
    )
    added = 0
    for category in STATEMENT_FIELDS:
        entries = table_entries(tables, category, analysis.unit)
        getattr(analysis, category).extend(entries)
        added += len(entries)
    if added:
        fill_years(analysis, tables)
        analysis.extraction_notes = (
            f"Used fallback extraction method ({_short_reason(reason)}); "
            f"{added} line items taken from detected tables."
        )
    else:
        analysis.overall_confidence = Confidence.LOW
        analysis.extraction_notes = (
            f"Used fallback extraction method ({_short_reason(reason)}); "
            "no financial tables detected. Manual review required."
        )
    return analysis


class FinancialAnalyzer(StructuredAnalyzer):
    """Income statement / balance sheet / cash flow line items"""

    def __init__(self, prompt_loader: Optional[PromptLoader] = None, max_chars: int = 25000) -> None:
        loader = prompt_loader or PromptLoader()
        super().__init__(
            AnalyzerProfile(
                name="financial",
                description="Exact financial statement line items with per-period values",
                schema=FinancialAnalysis,
                build_prompt=lambda text, tables: loader.create_financial_prompt(
                    text, format_for_prompt(tables), max_chars
                ),
                temperature=0.0,
                max_tokens=6000,
                is_rich=has_line_items,
                fallback=financial_fallback,
                enhance=enhance_with_tables,
            )
        )
