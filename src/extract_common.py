"""Keyword and pattern heuristics used when the model answer is unusable."""
from __future__ import annotations
import re
from typing import List, Optional

from schema import ManagementTone

CURRENCY_PATTERNS = [
    ("INR", re.compile(r"₹|\brs\.?(?=\s|\d)|\binr\b|\brupees?\b", re.IGNORECASE)),
    ("USD", re.compile(r"\$|\busd\b|\bdollars?\b", re.IGNORECASE)),
    ("EUR", re.compile(r"€|\beur\b|\beuros?\b", re.IGNORECASE)),
]
DEFAULT_CURRENCY = "INR"

UNIT_PATTERNS = [
    ("crores", re.compile(r"\bcrores?\b|\bcr\b\.?", re.IGNORECASE)),
    ("millions", re.compile(r"\bmillions?\b|\bmn\b", re.IGNORECASE)),
    ("billions", re.compile(r"\bbillions?\b|\bbn\b", re.IGNORECASE)),
    ("lakhs", re.compile(r"\blakhs?\b|\blacs?\b", re.IGNORECASE)),
]
DEFAULT_UNIT = "crores"

POSITIVE_RE = re.compile(r"\b(?:growth|grew|increase[ds]?|strong|record|exceed(?:ed|s)?|success(?:ful)?|robust|improv(?:e|ed|ement))\b", re.IGNORECASE)
NEGATIVE_RE = re.compile(r"\b(?:decline[ds]?|concerns?|challeng(?:e|es|ing)|decrease[ds]?|weak(?:er|ness)?|headwinds?|pressure)\b", re.IGNORECASE)

_AMOUNT = r"((?:rs\.?|₹|\$|inr|usd)?\s?\d[\d,]*(?:\.\d+)?\s?(?:crores?|cr|million|mn|billion|bn|lakhs?|%)?)"
REVENUE_RE = re.compile(r"\b(?:revenue|sales|topline|top line)\b[^.\n]{0,60}?" + _AMOUNT, re.IGNORECASE)
MARGIN_RE = re.compile(r"\bmargins?\b[^.\n]{0,40}?(\d+(?:\.\d+)?\s?%)", re.IGNORECASE)
CAPACITY_RE = re.compile(r"\bcapacity(?:\s+utili[sz]ation)?\b[^.\n]{0,40}?(\d+(?:\.\d+)?\s?%)", re.IGNORECASE)
CAPEX_RE = re.compile(r"\bcapex\b[^.\n]{0,40}?" + _AMOUNT, re.IGNORECASE)
QUOTE_RE = re.compile(r"[\"“]([^\"”\n]{10,300})[\"”]")
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")


def detect_currency(text: str) -> str:
    for code, pattern in CURRENCY_PATTERNS:
        if pattern.search(text):
            return code
    return DEFAULT_CURRENCY


def detect_unit(text: str) -> str:
    for unit, pattern in UNIT_PATTERNS:
        if pattern.search(text):
            return unit
    return DEFAULT_UNIT


def detect_tone(text: str) -> ManagementTone:
    positive = POSITIVE_RE.search(text) is not None
    negative = NEGATIVE_RE.search(text) is not None
    if positive and not negative:
        return ManagementTone.OPTIMISTIC
    if negative and not positive:
        return ManagementTone.CAUTIOUS
    return ManagementTone.NEUTRAL


def first_group(pattern: re.Pattern, text: str) -> Optional[str]:
    m = pattern.search(text)
    if not m:
        return None
    value = m.group(1).strip()
    return value or None


def find_quotes(text: str, limit: int = 3) -> List[str]:
    return [q.strip() for q in QUOTE_RE.findall(text)[:limit]]


def sentences_matching(pattern: re.Pattern, text: str, limit: int = 2, max_len: int = 240) -> List[str]:
    found: List[str] = []
    for sentence in _SENTENCE_SPLIT_RE.split(text.replace("\n", " ")):
        sentence = sentence.strip()
        if sentence and pattern.search(sentence) and len(sentence) <= max_len:
            found.append(sentence)
            if len(found) >= limit:
                break
    return found
