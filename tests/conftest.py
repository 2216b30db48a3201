"""Shared fixtures: in-memory PDFs, multipart bodies, scripted completion clients."""
from typing import Dict, List, Optional, Tuple

import fitz  # PyMuPDF
import pytest

from ai_client import BaseAIClient
from errors import CompletionError
from schema import OcrCapability


class FailingAIClient(BaseAIClient):
    """Completion service that is always down."""

    def __init__(self) -> None:
        super().__init__()
        self.model_name = "failing"
        self.calls = 0

    def complete(self, system: str, user: str, *, temperature: float, max_tokens: int) -> str:
        self.calls += 1
        raise CompletionError("service unavailable")


def make_pdf(lines: Optional[List[str]] = None) -> bytes:
    doc = fitz.open()
    page = doc.new_page()
    y = 72
    for line in lines or []:
        page.insert_text((72, y), line, fontsize=10)
        y += 14
    data = doc.tobytes()
    doc.close()
    return data


def multipart_body(
    fields: Dict[str, str],
    files: List[Tuple[str, str, bytes]],
    boundary: str = "----TestBoundary7MA4YWxk",
) -> bytes:
    chunks = []
    for name, value in fields.items():
        chunks.append(
            f"--{boundary}\r\nContent-Disposition: form-data; name=\"{name}\"\r\n\r\n{value}\r\n".encode()
        )
    for name, filename, content in files:
        head = (
            f"--{boundary}\r\nContent-Disposition: form-data; name=\"{name}\"; filename=\"{filename}\"\r\n"
            "Content-Type: application/octet-stream\r\n\r\n"
        ).encode()
        chunks.append(head + content + b"\r\n")
    chunks.append(f"--{boundary}--\r\n".encode())
    return b"".join(chunks)


def no_ocr() -> OcrCapability:
    return OcrCapability(available=False, reason="tesseract binary not found on PATH")


def with_ocr() -> OcrCapability:
    return OcrCapability(available=True, reason="tesseract 5.3.0")


STATEMENT_TEXT = (
    "Quarterly results of the company for the period, all figures in Rs crores unless stated otherwise.\n"
    "Revenue from operations  1,000  900\n"
    "Total assets  5,000  4,500\n"
)

EARNINGS_TEXT = (
    "Good morning everyone. Revenue grew 12% to Rs 1,200 crore this quarter, a record for us. "
    "EBITDA margin improved to 18.5% on better pricing. Capacity utilization stood at 82% across plants. "
    "We are expanding our Pune facility and launched two new products. "
    'Our CEO said "we expect the momentum to continue into the next fiscal year" on the call.'
)


@pytest.fixture
def financial_report_pdf() -> bytes:
    return make_pdf(
        [
            "Statement of Profit and Loss for the quarter ended 31 March 2024 (Rs in crores)",
            "Particulars      Mar 2024      Mar 2023",
            "Revenue from operations      3,558.65      3,191.32",
            "Other income      42.10      38.75",
            "Total expenses      3,002.40      2,745.90",
            "Profit before tax      598.35      484.17",
        ]
    )
