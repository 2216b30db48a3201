from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple, Type

from pydantic import BaseModel, ValidationError

from ai_client import BaseAIClient
from ai_utils import parse_json_response
from errors import ResponseParseError
from schema import TableClassification
from table_extractor import extract_tables

logger = logging.getLogger(__name__)

PromptBuilder = Callable[[str, TableClassification], Tuple[str, str]]
Fallback = Callable[[str, TableClassification, str], BaseModel]


@dataclass(frozen=True)
class AnalyzerProfile:
    """Everything that differs between the financial and earnings extractors."""

    name: str
    description: str
    schema: Type[BaseModel]
    build_prompt: PromptBuilder
    temperature: float
    max_tokens: int
    is_rich: Callable[[Any], bool]
    fallback: Fallback
    enhance: Optional[Callable[[Any, TableClassification], Any]] = None


@dataclass
class AnalysisOutcome:
    analysis: BaseModel
    source: str  # "model" or "fallback"
    error: Optional[str] = None


class StructuredAnalyzer:
    """Prompt the completion service for a JSON answer, fall back to heuristics."""

    def __init__(self, profile: AnalyzerProfile):
        self.profile = profile
        self.name = profile.name
        self.description = profile.description

    def analyze(
        self,
        text: str,
        ai_client: Optional[BaseAIClient],
        tables: Optional[TableClassification] = None,
    ) -> AnalysisOutcome:
        profile = self.profile
        if tables is None:
            tables = extract_tables(text)
        if ai_client is None:
            return self._fallback(text, tables, "completion service not configured")
        system, user = profile.build_prompt(text, tables)
        logger.debug("[%s] prompting %s (%d chars)", profile.name, ai_client.model_name, len(user))

        try:
            raw = ai_client.complete(
                system, user, temperature=profile.temperature, max_tokens=profile.max_tokens
            )
        except Exception as exc:  # noqa: BLE001
            return self._fallback(text, tables, f"completion failed: {exc}")

        try:
            analysis = profile.schema.model_validate(parse_json_response(raw))
        except (ResponseParseError, ValidationError) as exc:
            return self._fallback(text, tables, f"unusable model response: {exc}")

        if not profile.is_rich(analysis):
            return self._fallback(text, tables, "model response too sparse")

        if profile.enhance is not None:
            analysis = profile.enhance(analysis, tables)
        return AnalysisOutcome(analysis=analysis, source="model")

    def _fallback(self, text: str, tables: TableClassification, reason: str) -> AnalysisOutcome:
        logger.warning("[%s] using fallback extraction: %s", self.profile.name, reason.splitlines()[0])
        analysis = self.profile.fallback(text, tables, reason)
        return AnalysisOutcome(analysis=analysis, source="fallback", error=reason)
