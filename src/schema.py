from __future__ import annotations
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ManagementTone(str, Enum):
    OPTIMISTIC = "optimistic"
    CAUTIOUS = "cautious"
    NEUTRAL = "neutral"


class ExtractionMethod(str, Enum):
    PRIMARY_PARSER = "primary-parser"
    LAYOUT_PARSER = "structured-layout-parser"
    OCR = "ocr"
    RAW_FILTERED = "raw-filtered"
    PLAIN_TEXT = "plain-text"
    FAILED = "failed"


def _coerce_enum_text(value: Any) -> Any:
    # models answer "High", "HIGH " or "high/medium"
    if isinstance(value, str):
        return value.strip().lower().split("/")[0].strip()
    return value


def _coerce_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (str, int, float)):
        value = [value]
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


class StrategyAttempt(BaseModel):
    method: ExtractionMethod
    error: str


class ExtractionResult(BaseModel):
    success: bool
    text: str
    method: ExtractionMethod
    requires_manual_review: bool = False
    artifact_file: Optional[str] = None
    attempts: List[StrategyAttempt] = Field(default_factory=list)


class OcrCapability(BaseModel):
    available: bool
    reason: str = ""


class TableRow(BaseModel):
    line_item: str
    values: List[str] = Field(default_factory=list)


class ParsedTable(BaseModel):
    headers: List[str] = Field(default_factory=list)
    periods: List[str] = Field(default_factory=list)
    rows: List[TableRow] = Field(default_factory=list)


class TableClassification(BaseModel):
    income_statement: List[ParsedTable] = Field(default_factory=list)
    balance_sheet: List[ParsedTable] = Field(default_factory=list)
    cash_flow: List[ParsedTable] = Field(default_factory=list)
    all: List[ParsedTable] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.all


class LineItemEntry(BaseModel):
    line_item: str
    values: List[str] = Field(default_factory=list)
    unit: str = ""
    confidence: Confidence = Confidence.HIGH

    @field_validator("line_item", mode="before")
    @classmethod
    def _strip_name(cls, v: Any) -> str:
        return str(v or "").strip()

    @field_validator("values", mode="before")
    @classmethod
    def _values_as_text(cls, v: Any) -> List[str]:
        # keep "(1,234)" and "3,558.65" exactly as written; numbers become text
        if v is None:
            return []
        if isinstance(v, (str, int, float)):
            v = [v]
        return ["" if x is None else str(x).strip() for x in v]

    @field_validator("unit", mode="before")
    @classmethod
    def _unit_text(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, v: Any) -> Any:
        return _coerce_enum_text(v) or Confidence.HIGH


STATEMENT_FIELDS = ("income_statement", "balance_sheet", "cash_flow")


class FinancialAnalysis(BaseModel):
    currency: str = "INR"
    unit: str = "crores"
    years: List[str] = Field(default_factory=list)
    income_statement: List[LineItemEntry] = Field(default_factory=list)
    balance_sheet: List[LineItemEntry] = Field(default_factory=list)
    cash_flow: List[LineItemEntry] = Field(default_factory=list)
    overall_confidence: Confidence = Confidence.HIGH
    extraction_notes: str = ""

    @field_validator("years", mode="before")
    @classmethod
    def _years(cls, v: Any) -> List[str]:
        return _coerce_str_list(v)

    @field_validator("income_statement", "balance_sheet", "cash_flow", mode="before")
    @classmethod
    def _statement(cls, v: Any) -> Any:
        if v is None:
            return []
        # drop entries without a usable name instead of failing the whole answer
        if isinstance(v, list):
            return [item for item in v if not isinstance(item, dict) or str(item.get("line_item") or "").strip()]
        return v

    @field_validator("currency", mode="before")
    @classmethod
    def _currency(cls, v: Any) -> str:
        return str(v or "").strip().upper() or "INR"

    @field_validator("unit", mode="before")
    @classmethod
    def _unit(cls, v: Any) -> str:
        return str(v or "").strip() or "crores"

    @field_validator("extraction_notes", mode="before")
    @classmethod
    def _notes(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("overall_confidence", mode="before")
    @classmethod
    def _confidence(cls, v: Any) -> Any:
        return _coerce_enum_text(v) or Confidence.MEDIUM

    @model_validator(mode="after")
    def _default_units(self) -> "FinancialAnalysis":
        for name in STATEMENT_FIELDS:
            for entry in getattr(self, name):
                if not entry.unit:
                    entry.unit = self.unit
        return self

    def line_item_count(self) -> int:
        return sum(len(getattr(self, name)) for name in STATEMENT_FIELDS)


class ForwardGuidance(BaseModel):
    revenue: str = ""
    margin: str = ""
    capex: str = ""
    other: str = ""

    @field_validator("revenue", "margin", "capex", "other", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        if v is None:
            return ""
        if isinstance(v, list):
            return "; ".join(str(x) for x in v)
        return str(v).strip()


class EarningsAnalysis(BaseModel):
    management_tone: ManagementTone = ManagementTone.NEUTRAL
    confidence_level: Confidence = Confidence.MEDIUM
    tone_explanation: str = ""
    key_positives: List[str] = Field(default_factory=list)
    key_concerns: List[str] = Field(default_factory=list)
    forward_guidance: ForwardGuidance = Field(default_factory=ForwardGuidance)
    capacity_utilization: str = ""
    growth_initiatives: List[str] = Field(default_factory=list)
    notable_quotes: List[str] = Field(default_factory=list)
    analysis_confidence: Confidence = Confidence.MEDIUM

    @field_validator("management_tone", "confidence_level", "analysis_confidence", mode="before")
    @classmethod
    def _enum_text(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None or v == "":
            return ManagementTone.NEUTRAL if info.field_name == "management_tone" else Confidence.MEDIUM
        return _coerce_enum_text(v)

    @field_validator("key_positives", "key_concerns", "growth_initiatives", "notable_quotes", mode="before")
    @classmethod
    def _lists(cls, v: Any) -> List[str]:
        return _coerce_str_list(v)

    @field_validator("tone_explanation", "capacity_utilization", mode="before")
    @classmethod
    def _text(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("forward_guidance", mode="before")
    @classmethod
    def _guidance(cls, v: Any) -> Any:
        if v is None or isinstance(v, str):
            return {"other": v or ""}
        return v
