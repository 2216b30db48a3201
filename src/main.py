from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path

from ai_client import get_ai_client
from errors import InvalidRequestError
from excel_export import build_workbook
from pdf_utils import ArtifactSink, TextExtractor
from pipeline import ANALYSIS_TYPES, DocumentPipeline
from schema import FinancialAnalysis
from settings import configure_logging, get_settings

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Financial PDF/TXT -> structured analysis")
    ap.add_argument("--file", required=True, help="Path to input PDF or TXT")
    ap.add_argument("--type", choices=ANALYSIS_TYPES, default="earnings", help="Analysis type (default: earnings)")
    ap.add_argument("--provider", default=None, help="Completion provider: openai or mock (default: AI_PROVIDER)")
    ap.add_argument("--excel", default=None, help="Write financial analysis spreadsheet to this path")
    ap.add_argument("--json", default=None, help="Write analysis JSON to this path (default: stdout)")
    return ap.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)

    src = Path(args.file).expanduser().resolve()
    if not src.exists():
        raise FileNotFoundError(src)

    extractor = TextExtractor(
        sink=ArtifactSink(settings.ocr_output_dir), ocr_lang=settings.ocr_lang, ocr_dpi=settings.ocr_dpi
    )
    pipeline = DocumentPipeline(extractor, get_ai_client(args.provider, settings), settings=settings)
    try:
        result = pipeline.run(src.name, src.read_bytes(), args.type)
    except InvalidRequestError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 2

    if result.needs_ocr:
        print(f"Text extraction failed for {src.name}; see {result.extraction.artifact_file}", file=sys.stderr)
        return 1

    payload = result.analysis.model_dump_json(indent=2)
    if args.json:
        Path(args.json).write_text(payload, encoding="utf-8")
        print(f"Output: {args.json}")
    else:
        print(payload)

    if args.excel:
        if isinstance(result.analysis, FinancialAnalysis):
            Path(args.excel).write_bytes(build_workbook(result.analysis))
            print(f"Excel: {args.excel}")
        else:
            logger.warning("--excel ignored: only financial analyses can be exported")

    print(f"Done. method={result.extraction.method.value}, source={result.source}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
