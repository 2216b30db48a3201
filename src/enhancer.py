"""Fill gaps in a model-extracted FinancialAnalysis from detected tables."""
from __future__ import annotations
import logging
from typing import Dict

from schema import Confidence, FinancialAnalysis, LineItemEntry, TableClassification

logger = logging.getLogger(__name__)

# below this many entries a statement counts as sparse
RICHNESS_THRESHOLDS: Dict[str, int] = {
    "income_statement": 5,
    "balance_sheet": 5,
    "cash_flow": 3,
}


def sparse_categories(analysis: FinancialAnalysis, tables: TableClassification) -> list[str]:
    return [
        category
        for category, minimum in RICHNESS_THRESHOLDS.items()
        if getattr(tables, category) and len(getattr(analysis, category)) < minimum
    ]


def merge_category(analysis: FinancialAnalysis, tables: TableClassification, category: str) -> int:
    """Append table rows missing from one statement; returns how many were added."""
    entries: list[LineItemEntry] = getattr(analysis, category)
    seen = {e.line_item.lower() for e in entries}
    unit = analysis.unit or "crores"
    added = 0
    for table in getattr(tables, category):
        for row in table.rows:
            key = row.line_item.lower()
            if key in seen:
                continue
            entries.append(
                LineItemEntry(line_item=row.line_item, values=list(row.values), unit=unit, confidence=Confidence.MEDIUM)
            )
            seen.add(key)
            added += 1
    return added


def fill_years(analysis: FinancialAnalysis, tables: TableClassification) -> None:
    if analysis.years:
        return
    for table in tables.all:
        if table.periods:
            analysis.years = list(table.periods)
            return


def enhance_with_tables(analysis: FinancialAnalysis, tables: TableClassification) -> FinancialAnalysis:
    """Mutates and returns ``analysis``; existing entries are never touched."""
    categories = sparse_categories(analysis, tables)
    if not categories:
        return analysis
    logger.info("Model extraction sparse for %s, enhancing with table data", ", ".join(categories))
    total = 0
    for category in categories:
        total += merge_category(analysis, tables, category)
    if total:
        fill_years(analysis, tables)
        logger.info("Added %d line items from detected tables", total)
    return analysis
