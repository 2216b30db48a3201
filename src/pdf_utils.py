from __future__ import annotations
import logging
import re
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional

import fitz  # PyMuPDF
import pytesseract
from PIL import Image, ImageFilter, ImageOps

from errors import InvalidRequestError
from schema import ExtractionMethod, ExtractionResult, OcrCapability, StrategyAttempt

logger = logging.getLogger(__name__)

TABLE_ROW_TAG = "[TABLE]"
MIN_TEXT_LENGTH = 100
SUPPORTED_EXTENSIONS = ("pdf", "txt")

WORD_RE = re.compile(r"[A-Za-z]{3,}")
NUMBER_RE = re.compile(r"\d+(?:[,.]\d+)*")

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f�]")
_NON_PRINTABLE_RE = re.compile(r"[^\x20-\x7E\n\r\t]")
# object syntax that survives in uncompressed PDF byte soup
_PDF_SYNTAX_RE = re.compile(r"\b(?:obj|endobj|stream|endstream|xref|trailer|startxref)\b|/[A-Z][A-Za-z]+")

FAILED_TEXT = """ERROR: Could not extract text from PDF.

Please try:
1. Convert the PDF to TXT using Adobe Acrobat or another tool
2. Upload the TXT file instead
3. Ensure the PDF is not scanned/image-only (this one might be scanned)

Filename: {filename}
Date: {date}"""


def page_marker(page_number: int) -> str:
    return f"--- Page {page_number} ---"


def count_words(text: str) -> int:
    return len(WORD_RE.findall(text))


def count_numbers(text: str) -> int:
    return len(NUMBER_RE.findall(text))


def is_valid_text(text: Optional[str]) -> bool:
    """At least 100 chars and either more than 5 words or more than 3 numbers."""
    if not text or len(text) < MIN_TEXT_LENGTH:
        return False
    return count_words(text) > 5 or count_numbers(text) > 3


def clean_text(text: str) -> str:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _CONTROL_RE.sub("", text)
    text = text.replace("\t", "  ")
    # two spaces survive: they separate table columns downstream
    text = re.sub(r" {3,}", "  ", text)
    text = re.sub(r" +\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def ocr_capability() -> OcrCapability:
    try:
        version = pytesseract.get_tesseract_version()
    except pytesseract.TesseractNotFoundError:
        return OcrCapability(available=False, reason="tesseract binary not found on PATH")
    except OSError as exc:
        return OcrCapability(available=False, reason=f"tesseract not usable: {exc}")
    return OcrCapability(available=True, reason=f"tesseract {version}")


def extract_text_per_page(data: bytes) -> List[Dict]:
    pages = []
    with fitz.open(stream=data, filetype="pdf") as doc:
        for i, page in enumerate(doc, start=1):
            pages.append({"page": i, "text": page.get_text("text") or ""})
    return pages


def extract_with_pymupdf(data: bytes) -> str:
    pages = extract_text_per_page(data)
    return clean_text("\n".join(p["text"] for p in pages))


def _join_row(words: List[tuple], column_gap: float) -> str:
    out = ""
    prev_x1: Optional[float] = None
    for w in words:
        if prev_x1 is not None:
            out += "  " if (w[0] - prev_x1) > column_gap else " "
        out += w[4]
        prev_x1 = w[2]
    return out


def extract_with_layout(data: bytes, y_tolerance: float = 5.0, column_gap: float = 12.0) -> str:
    """Rebuild rows from word coordinates and tag numeric rows as table rows."""
    lines: List[str] = []
    with fitz.open(stream=data, filetype="pdf") as doc:
        for i, page in enumerate(doc, start=1):
            rows: Dict[float, List[tuple]] = {}
            for w in page.get_text("words"):
                key = round(w[1] / y_tolerance) * y_tolerance
                rows.setdefault(key, []).append(w)

            lines.append("")
            lines.append(page_marker(i))
            lines.append("")
            for key in sorted(rows):
                row_text = _join_row(sorted(rows[key], key=lambda w: w[0]), column_gap)
                if count_numbers(row_text) >= 2:
                    lines.append(f"{TABLE_ROW_TAG} {row_text}")
                else:
                    lines.append(row_text)
    return clean_text("\n".join(lines))


def rasterize_pages(data: bytes, dpi: int = 200) -> Iterator[Image.Image]:
    with fitz.open(stream=data, filetype="pdf") as doc:
        mat = fitz.Matrix(dpi / 72, dpi / 72)
        for page in doc:
            pix = page.get_pixmap(matrix=mat, alpha=False)
            yield Image.frombytes("RGB", (pix.width, pix.height), pix.samples)


def preprocess_for_ocr(image: Image.Image) -> Image.Image:
    grey = ImageOps.grayscale(image)
    return ImageOps.autocontrast(grey).filter(ImageFilter.SHARPEN)


def extract_with_ocr(data: bytes, dpi: int = 200, lang: str = "eng") -> str:
    chunks = []
    for i, image in enumerate(rasterize_pages(data, dpi), start=1):
        logger.info("OCR processing page %d", i)
        text = pytesseract.image_to_string(preprocess_for_ocr(image), lang=lang)
        chunks.append(f"\n{page_marker(i)}\n{text}\n")
    return clean_text("".join(chunks))


def extract_raw_filtered(data: bytes) -> str:
    text = _NON_PRINTABLE_RE.sub(" ", data.decode("latin-1"))
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    kept = []
    for line in text.split("\n"):
        line = re.sub(r"[ \t]+", " ", line).strip()
        if not line or _PDF_SYNTAX_RE.search(line):
            continue
        if count_words(line) >= 3 or count_numbers(line) >= 2:
            kept.append(line)
    return "\n".join(kept)


class ArtifactSink:
    """Audit trail: one text file per extraction attempt."""

    def __init__(self, output_dir: Path | str = "./ocr_output"):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def save(self, text: str, filename: str, method: ExtractionMethod, success: bool) -> str:
        stem = re.sub(r"[^A-Za-z0-9._-]+", "_", Path(filename).stem) or "document"
        name = f"{stem}_{method.value}_{int(time.time() * 1000)}.txt"
        header = (
            "=== EXTRACTION REPORT ===\n"
            f"File: {filename}\n"
            f"Method: {method.value}\n"
            f"Date: {datetime.now().isoformat()}\n"
            f"Status: {'SUCCESS' if success else 'FAILED'}\n"
            f"{'=' * 50}\n\n"
        )
        path = self.output_dir / name
        path.write_text(header + text, encoding="utf-8")
        logger.info("Saved extraction artifact %s (%d KB)", name, round(path.stat().st_size / 1024))
        return name

    def _resolve(self, name: str) -> Optional[Path]:
        path = (self.output_dir / name).resolve()
        if path.parent != self.output_dir.resolve() or path.suffix != ".txt":
            return None
        return path

    def read_artifact(self, name: str) -> Optional[str]:
        path = self._resolve(name)
        if path is None or not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def list_artifacts(self) -> List[Dict]:
        files = []
        for path in self.output_dir.glob("*.txt"):
            stat = path.stat()
            files.append({"name": path.name, "size": stat.st_size, "modified": stat.st_mtime})
        return sorted(files, key=lambda f: f["modified"], reverse=True)


class TextExtractor:
    """PDF/TXT to plain text, trying PDF strategies until one yields valid text."""

    def __init__(
        self,
        sink: Optional[ArtifactSink] = None,
        ocr_lang: str = "eng",
        ocr_dpi: int = 200,
        ocr_check: Callable[[], OcrCapability] = ocr_capability,
    ) -> None:
        self.sink = sink
        self.ocr_lang = ocr_lang
        self.ocr_dpi = ocr_dpi
        self.ocr_check = ocr_check

    def extract(self, data: bytes, extension: str, filename: str = "document") -> ExtractionResult:
        ext = extension.lower().lstrip(".")
        if ext == "txt":
            text = data.decode("utf-8-sig", errors="replace").replace("\r\n", "\n")
            return ExtractionResult(success=True, text=text, method=ExtractionMethod.PLAIN_TEXT)
        if ext == "pdf":
            return self._extract_pdf(data, filename)
        raise InvalidRequestError(f"Unsupported file type '.{ext}'. Use PDF or TXT.")

    def _strategies(self):
        return [
            (ExtractionMethod.PRIMARY_PARSER, extract_with_pymupdf),
            (ExtractionMethod.LAYOUT_PARSER, extract_with_layout),
            (ExtractionMethod.OCR, lambda data: extract_with_ocr(data, self.ocr_dpi, self.ocr_lang)),
            (ExtractionMethod.RAW_FILTERED, extract_raw_filtered),
        ]

    def _extract_pdf(self, data: bytes, filename: str) -> ExtractionResult:
        logger.info("Processing PDF %s (%d bytes)", filename, len(data))
        attempts: List[StrategyAttempt] = []

        for method, strategy in self._strategies():
            if method is ExtractionMethod.OCR:
                capability = self.ocr_check()
                if not capability.available:
                    logger.warning("Skipping OCR: %s", capability.reason)
                    attempts.append(StrategyAttempt(method=method, error=f"unavailable: {capability.reason}"))
                    continue
            try:
                text = strategy(data)
            except Exception as exc:  # noqa: BLE001
                logger.warning("%s failed: %s", method.value, exc)
                attempts.append(StrategyAttempt(method=method, error=str(exc) or type(exc).__name__))
                continue
            if is_valid_text(text):
                logger.info("%s succeeded (%d chars)", method.value, len(text))
                return self._finish(text, filename, method, True, attempts)
            logger.info("%s produced no usable text (%d chars)", method.value, len(text or ""))
            attempts.append(StrategyAttempt(method=method, error="text failed validation"))

        text = FAILED_TEXT.format(filename=filename, date=datetime.now().isoformat())
        return self._finish(text, filename, ExtractionMethod.FAILED, False, attempts)

    def _finish(
        self,
        text: str,
        filename: str,
        method: ExtractionMethod,
        success: bool,
        attempts: List[StrategyAttempt],
    ) -> ExtractionResult:
        artifact = None
        if self.sink is not None:
            try:
                artifact = self.sink.save(text, filename, method, success)
            except OSError as exc:
                logger.error("Could not write extraction artifact: %s", exc)
        return ExtractionResult(
            success=success,
            text=text,
            method=method,
            requires_manual_review=not success,
            artifact_file=artifact,
            attempts=attempts,
        )
