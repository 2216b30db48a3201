from __future__ import annotations
import re
from typing import Optional

from analyzer.base import AnalyzerProfile, StructuredAnalyzer
from extract_common import (
    CAPACITY_RE,
    CAPEX_RE,
    MARGIN_RE,
    NEGATIVE_RE,
    REVENUE_RE,
    detect_tone,
    find_quotes,
    first_group,
    sentences_matching,
)
from prompt_loader import PromptLoader
from schema import Confidence, EarningsAnalysis, ForwardGuidance, TableClassification

INITIATIVE_RE = re.compile(
    r"\b(?:expan(?:d|ding|sion)|launch(?:ed|ing)?|new products?|acquisition|capacity addition|greenfield|brownfield)\b",
    re.IGNORECASE,
)
NOT_FOUND = "See transcript"


def is_rich_earnings(analysis: EarningsAnalysis) -> bool:
    return bool(analysis.key_positives or analysis.key_concerns)


def earnings_fallback(text: str, tables: TableClassification, reason: str) -> EarningsAnalysis:
    revenue = first_group(REVENUE_RE, text)
    margin = first_group(MARGIN_RE, text)
    capacity = first_group(CAPACITY_RE, text)
    capex = first_group(CAPEX_RE, text)

    positives = [
        f"Revenue: {revenue}" if revenue else "Revenue growth mentioned",
        f"Margin: {margin}" if margin else "Strong performance indicators",
    ]
    if capacity:
        positives.append(f"Capacity utilization: {capacity}")
    concerns = sentences_matching(NEGATIVE_RE, text) or ["Market challenges referenced", "Competitive pressures"]
    initiatives = sentences_matching(INITIATIVE_RE, text, limit=3) or ["Expansion plans", "New products"]

    return EarningsAnalysis(
        management_tone=detect_tone(text),
        confidence_level=Confidence.MEDIUM,
        tone_explanation=(
            "Based on keyword patterns (pattern-based fallback, model analysis unavailable: "
            f"{reason.splitlines()[0][:200] if reason else 'unknown'})"
        ),
        key_positives=positives,
        key_concerns=concerns,
        forward_guidance=ForwardGuidance(
            revenue=revenue or NOT_FOUND,
            margin=margin or NOT_FOUND,
            capex=capex or NOT_FOUND,
            other=NOT_FOUND,
        ),
        capacity_utilization=capacity or "Discussed in transcript",
        growth_initiatives=initiatives,
        notable_quotes=find_quotes(text, limit=3),
        analysis_confidence=Confidence.MEDIUM,
    )


class EarningsAnalyzer(StructuredAnalyzer):
    """Earnings-call tone, guidance and quotes"""

    def __init__(self, prompt_loader: Optional[PromptLoader] = None, max_chars: int = 15000) -> None:
        loader = prompt_loader or PromptLoader()
        super().__init__(
            AnalyzerProfile(
                name="earnings",
                description="Management tone, positives/concerns, guidance and verbatim quotes",
                schema=EarningsAnalysis,
                build_prompt=lambda text, tables: loader.create_earnings_prompt(text, max_chars),
                temperature=0.3,
                max_tokens=3000,
                is_rich=is_rich_earnings,
                fallback=earnings_fallback,
            )
        )
