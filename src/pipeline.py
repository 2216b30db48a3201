from __future__ import annotations
import logging
import threading
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel

from ai_client import BaseAIClient
from analyzer.base import StructuredAnalyzer
from analyzer.earnings import EarningsAnalyzer
from analyzer.financial import FinancialAnalyzer
from errors import InvalidRequestError
from form_parser import boundary_from_content_type, decode, find_part
from pdf_utils import MIN_TEXT_LENGTH, SUPPORTED_EXTENSIONS, TextExtractor
from prompt_loader import PromptLoader
from schema import ExtractionResult, FinancialAnalysis
from settings import Settings, get_settings
from table_extractor import extract_tables

logger = logging.getLogger(__name__)

ANALYSIS_TYPES = ("financial", "earnings")
DEFAULT_ANALYSIS_TYPE = "earnings"
FILE_FIELDS = ("file", "document")


@dataclass
class Upload:
    filename: str
    data: bytes
    analysis_type: str = DEFAULT_ANALYSIS_TYPE


def parse_upload(body: bytes, content_type: Optional[str]) -> Upload:
    """Raw request body -> Upload; every malformed shape is an InvalidRequestError."""
    boundary = boundary_from_content_type(content_type)
    if not boundary:
        raise InvalidRequestError("Invalid content type: expected multipart/form-data with a boundary")
    parts = decode(body, boundary)

    part = find_part(parts, FILE_FIELDS, require_file=True)
    if part is None:
        part = next((p for p in parts if p.is_file), None)
    if part is None:
        raise InvalidRequestError("No file uploaded")

    type_part = find_part(parts, ("analysisType",))
    analysis_type = DEFAULT_ANALYSIS_TYPE
    if type_part is not None:
        raw = type_part.content.decode("utf-8", "replace") if isinstance(type_part.content, bytes) else type_part.content
        analysis_type = raw.strip() or DEFAULT_ANALYSIS_TYPE

    content = part.content if isinstance(part.content, bytes) else part.content.encode("utf-8")
    return Upload(filename=part.filename or "document", data=content, analysis_type=analysis_type)


@dataclass
class PipelineResult:
    filename: str
    analysis_type: str
    extraction: ExtractionResult
    analysis: Optional[BaseModel] = None
    source: Optional[str] = None
    error: Optional[str] = None

    @property
    def needs_ocr(self) -> bool:
        return not self.extraction.success


@dataclass
class _SessionSlot:
    analysis: Optional[FinancialAnalysis] = None
    artifact_file: Optional[str] = None


class SessionStore:
    """Last financial analysis and last extraction artifact, per session id."""

    def __init__(self, max_sessions: int = 256) -> None:
        self.max_sessions = max_sessions
        self._slots: "OrderedDict[str, _SessionSlot]" = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def new_session_id() -> str:
        return uuid.uuid4().hex

    def _slot(self, session_id: str) -> _SessionSlot:
        slot = self._slots.get(session_id)
        if slot is None:
            slot = self._slots[session_id] = _SessionSlot()
            while len(self._slots) > self.max_sessions:
                evicted, _ = self._slots.popitem(last=False)
                logger.debug("Evicted session %s", evicted)
        self._slots.move_to_end(session_id)
        return slot

    def record(self, session_id: str, result: PipelineResult) -> None:
        with self._lock:
            slot = self._slot(session_id)
            if result.extraction.artifact_file:
                slot.artifact_file = result.extraction.artifact_file
            if isinstance(result.analysis, FinancialAnalysis):
                slot.analysis = result.analysis

    def last_analysis(self, session_id: Optional[str]) -> Optional[FinancialAnalysis]:
        with self._lock:
            slot = self._slots.get(session_id) if session_id else None
            return slot.analysis if slot else None

    def last_artifact(self, session_id: Optional[str]) -> Optional[str]:
        with self._lock:
            slot = self._slots.get(session_id) if session_id else None
            return slot.artifact_file if slot else None

    def __len__(self) -> int:
        return len(self._slots)


class DocumentPipeline:
    """extract text -> detect tables -> structured analysis"""

    def __init__(
        self,
        extractor: TextExtractor,
        ai_client: Optional[BaseAIClient],
        settings: Optional[Settings] = None,
        prompt_loader: Optional[PromptLoader] = None,
    ) -> None:
        settings = settings or get_settings()
        loader = prompt_loader or PromptLoader()
        self.extractor = extractor
        self.ai_client = ai_client
        self.analyzers: Dict[str, StructuredAnalyzer] = {
            "financial": FinancialAnalyzer(loader, max_chars=settings.financial_max_chars),
            "earnings": EarningsAnalyzer(loader, max_chars=settings.earnings_max_chars),
        }

    def run(self, filename: str, data: bytes, analysis_type: str = DEFAULT_ANALYSIS_TYPE) -> PipelineResult:
        if analysis_type not in ANALYSIS_TYPES:
            raise InvalidRequestError(
                f"Invalid analysisType '{analysis_type}'. Use one of: {', '.join(ANALYSIS_TYPES)}"
            )
        extension = Path(filename).suffix.lower().lstrip(".")
        if extension not in SUPPORTED_EXTENSIONS:
            raise InvalidRequestError("Unsupported file type. Please upload a PDF or TXT file.")

        logger.info("Analyzing %s (%s, %d bytes)", filename, analysis_type, len(data))
        extraction = self.extractor.extract(data, extension, filename)
        if not extraction.success:
            logger.warning("All extraction strategies failed for %s", filename)
            return PipelineResult(filename=filename, analysis_type=analysis_type, extraction=extraction)

        text = extraction.text.strip()
        if len(text) < MIN_TEXT_LENGTH:
            raise InvalidRequestError("Document too short or empty")

        tables = extract_tables(text)
        logger.info(
            "Detected %d tables (income %d, balance %d, cash flow %d)",
            len(tables.all), len(tables.income_statement), len(tables.balance_sheet), len(tables.cash_flow),
        )
        outcome = self.analyzers[analysis_type].analyze(text, self.ai_client, tables)
        return PipelineResult(
            filename=filename,
            analysis_type=analysis_type,
            extraction=extraction,
            analysis=outcome.analysis,
            source=outcome.source,
            error=outcome.error,
        )

    def run_upload(self, upload: Upload) -> PipelineResult:
        return self.run(upload.filename, upload.data, upload.analysis_type)
