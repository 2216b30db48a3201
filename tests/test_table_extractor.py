"""Tests for table detection, row parsing and statement classification."""
import pytest

from schema import ParsedTable, TableRow
from table_extractor import (
    classify_table,
    extract_tables,
    format_for_prompt,
    is_column_header,
    is_period_header,
    is_tabular_row,
    parse_row,
    parse_table,
)


class TestParseRow:
    def test_indian_format_values_are_kept_whole(self):
        row = parse_row("Revenue from operations 3,558.65 3,191.32", 1)
        assert row.line_item == "Revenue from operations"
        assert row.values == ["3,558.65", "3,191.32"]

    def test_parenthesized_negative_stays_literal(self):
        row = parse_row("Finance costs (1,234) 987", 1)
        assert row.values == ["(1,234)", "987"]

    def test_missing_label_gets_positional_name(self):
        assert parse_row("1,000  2,000", 3).line_item == "Line Item 3"

    def test_leading_minus_stays_literal(self):
        row = parse_row("Other income  -1,234  900", 1)
        assert row.line_item == "Other income"
        assert row.values == ["-1,234", "900"]
        assert is_tabular_row("Other income  -1,234  900") is True

    def test_hyphen_inside_a_range_is_not_a_sign(self):
        assert parse_row("Period 2023-24  100  90", 1).values == ["2023", "24", "100", "90"]

    def test_row_without_numbers(self):
        assert parse_row("Particulars", 1) is None


class TestRowShapes:
    @pytest.mark.parametrize(
        "line, expected",
        [
            ("Revenue from operations  1,000  900", True),
            ("Finance costs  (120)  (98)", True),
            ("Revenue grew 12% to 1,200 crore this quarter", False),
            ("Total assets 5,000", False),
        ],
    )
    def test_is_tabular_row(self, line, expected):
        assert is_tabular_row(line) is expected

    def test_column_header_rejects_prose(self):
        assert is_column_header("Particulars  Quarter ended  Mar 2024  Mar 2023") is True
        assert is_column_header("FY2024  FY2023") is True
        assert is_column_header("For the year 2024 we delivered strong results across all businesses.") is False
        assert is_column_header("Year ended  For the year 2024 we delivered strong results across all businesses") is False

    def test_period_header(self):
        assert is_period_header("Particulars  Quarter ended  Mar 2024  Mar 2023") is True
        assert is_period_header("FY2024  FY2023") is True
        assert is_period_header("We had a good quarter") is False


class TestParseTable:
    def test_headers_only_before_first_data_row(self):
        table = parse_table(
            [
                "Year ended  31 March 2024  31 March 2023",
                "Revenue from operations  3,558.65  3,191.32",
                "FY2024  FY2023",
            ]
        )
        assert table.headers == ["Year ended"]
        assert table.periods == ["31 March 2024", "31 March 2023"]
        assert [r.line_item for r in table.rows] == ["Revenue from operations", "FY"]

    def test_prose_column_contributes_only_its_period(self):
        table = parse_table(
            ["Year ended  Audited results for the period ended 31 March 2024", "Revenue  10  20"]
        )
        assert table.headers == ["Year ended"]
        assert table.periods == ["31 March 2024"]
        assert [r.line_item for r in table.rows] == ["Revenue"]


class TestClassification:
    def test_balance_sheet_despite_income_in_header(self):
        text = "\n".join(
            [
                "DETECTED TABLES:",
                "Income details for the year ended  Mar 2024  Mar 2023",
                "Total assets  5,000  4,500",
                "Total liabilities  2,000  1,800",
                "Shareholders equity  3,000  2,700",
                "=" * 30,
            ]
        )
        tables = extract_tables(text)

        assert len(tables.all) == 1
        assert tables.balance_sheet == tables.all
        assert tables.income_statement == []
        assert tables.all[0].periods == ["Mar 2024", "Mar 2023"]

    def test_unclassified_table_only_in_all(self):
        table = ParsedTable(rows=[TableRow(line_item="Headcount", values=["1,200", "1,100"])])
        assert classify_table(table) is None
        tables = extract_tables("Headcount  1,200  1,100\nOffices  14  12")
        assert len(tables.all) == 1
        assert tables.income_statement == tables.balance_sheet == tables.cash_flow == []


class TestExtractTables:
    def test_implicit_rows_in_plain_text(self):
        text = (
            "Some narrative about the company's quarter.\n"
            "Revenue from operations  1,000  900\n"
            "Total expenses  700  650\n"
            "The board met on Friday."
        )
        tables = extract_tables(text)
        assert len(tables.income_statement) == 1
        assert [r.line_item for r in tables.income_statement[0].rows] == ["Revenue from operations", "Total expenses"]

    def test_tagged_rows_across_page_markers(self):
        text = (
            "--- Page 1 ---\n"
            "[TABLE] Net cash from operating activities  1,200  900\n"
            "--- Page 2 ---\n"
            "[TABLE] Net cash used in investing activities  (300)  (250)\n"
        )
        tables = extract_tables(text)
        assert len(tables.cash_flow) == 1
        assert tables.cash_flow[0].rows[1].values == ["(300)", "(250)"]

    def test_separator_closes_block(self):
        text = "DETECTED TABLES:\nRevenue  10  20\n" + "-" * 25 + "\nSegment notes follow here\nEBITDA was 5 crore"
        tables = extract_tables(text)
        assert len(tables.all) == 1
        assert [r.line_item for r in tables.all[0].rows] == ["Revenue"]

    def test_block_rows_without_labels(self):
        tables = extract_tables("DETECTED TABLES:\n1,000  2,000\nRevenue  10  20\n" + "=" * 20)
        assert [r.line_item for r in tables.all[0].rows] == ["Line Item 1", "Revenue"]

    def test_narrative_sentence_above_statement(self):
        text = (
            "For the year 2024 we delivered strong results across all businesses.\n"
            "Revenue from operations  1,000  900\n"
            "Total expenses  700  650\n"
        )
        tables = extract_tables(text)
        assert len(tables.all) == 1
        assert tables.all[0].headers == []
        assert tables.all[0].periods == []
        assert len(tables.all[0].rows) == 2

    def test_narrative_only(self):
        assert extract_tables("Management discussed demand trends and pricing.").is_empty()


class TestFormatForPrompt:
    def test_empty(self):
        assert format_for_prompt(extract_tables("")) == ""

    def test_summary_lists_rows(self):
        tables = extract_tables("Revenue from operations  3,558.65  3,191.32\nOther income  42.10  38.75")
        summary = format_for_prompt(tables)
        assert summary.startswith("--- EXTRACTED TABLES ---")
        assert "INCOME STATEMENT TABLES:" in summary
        assert "  Revenue from operations: 3,558.65 | 3,191.32" in summary


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
