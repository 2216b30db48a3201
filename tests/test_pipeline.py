"""Tests for upload parsing, the document pipeline and the session store."""
import pytest

from conftest import STATEMENT_TEXT, FailingAIClient, make_pdf, multipart_body, no_ocr
from errors import InvalidRequestError
from pdf_utils import TextExtractor
from pipeline import DocumentPipeline, PipelineResult, SessionStore, parse_upload
from schema import ExtractionMethod, ExtractionResult, FinancialAnalysis
from settings import Settings

CONTENT_TYPE = "multipart/form-data; boundary=----TestBoundary7MA4YWxk"


@pytest.fixture
def pipeline() -> DocumentPipeline:
    return DocumentPipeline(TextExtractor(ocr_check=no_ocr), FailingAIClient(), settings=Settings())


class TestParseUpload:
    def test_file_and_type(self):
        body = multipart_body({"analysisType": " financial "}, [("file", "q.pdf", b"%PDF")])
        upload = parse_upload(body, CONTENT_TYPE)
        assert (upload.filename, upload.data, upload.analysis_type) == ("q.pdf", b"%PDF", "financial")

    def test_any_file_part_is_accepted(self):
        upload = parse_upload(multipart_body({}, [("attachment", "notes.txt", b"x")]), CONTENT_TYPE)
        assert upload.filename == "notes.txt"
        assert upload.analysis_type == "earnings"

    def test_missing_boundary(self):
        with pytest.raises(InvalidRequestError) as exc:
            parse_upload(b"", "application/json")
        assert exc.value.status_code == 400


class TestDocumentPipeline:
    def test_txt_financial(self, pipeline):
        result = pipeline.run("results.txt", STATEMENT_TEXT.encode(), "financial")
        assert result.needs_ocr is False
        assert result.source == "fallback"
        assert result.extraction.method is ExtractionMethod.PLAIN_TEXT
        assert isinstance(result.analysis, FinancialAnalysis)

    def test_pdf_report(self, pipeline, financial_report_pdf):
        result = pipeline.run("q4.PDF", financial_report_pdf, "financial")
        assert result.extraction.method is ExtractionMethod.PRIMARY_PARSER
        names = [e.line_item for e in result.analysis.income_statement]
        assert "Revenue from operations" in names

    def test_blank_pdf_needs_ocr(self, pipeline):
        result = pipeline.run("scan.pdf", make_pdf(), "earnings")
        assert result.needs_ocr is True
        assert result.analysis is None

    @pytest.mark.parametrize(
        "filename, data, analysis_type",
        [
            ("a.txt", STATEMENT_TEXT.encode(), "summary"),
            ("a.csv", STATEMENT_TEXT.encode(), "financial"),
            ("noext", STATEMENT_TEXT.encode(), "financial"),
            ("a.txt", b"   \n  ", "financial"),
        ],
    )
    def test_invalid_requests(self, pipeline, filename, data, analysis_type):
        with pytest.raises(InvalidRequestError):
            pipeline.run(filename, data, analysis_type)


def _result(analysis=None, artifact=None) -> PipelineResult:
    extraction = ExtractionResult(success=True, text="x", method=ExtractionMethod.OCR, artifact_file=artifact)
    return PipelineResult(filename="f.pdf", analysis_type="financial", extraction=extraction, analysis=analysis)


class TestSessionStore:
    def test_slots_are_per_session(self):
        store = SessionStore()
        first = FinancialAnalysis(currency="USD")
        store.record("a", _result(first, "a.txt"))
        store.record("b", _result(None, "b.txt"))

        assert store.last_analysis("a") is first
        assert store.last_analysis("b") is None
        assert store.last_artifact("b") == "b.txt"
        assert store.last_analysis(None) is None

    def test_next_analysis_overwrites(self):
        store = SessionStore()
        store.record("a", _result(FinancialAnalysis(currency="USD")))
        store.record("a", _result(FinancialAnalysis(currency="EUR")))
        assert store.last_analysis("a").currency == "EUR"

    def test_bounded(self):
        store = SessionStore(max_sessions=2)
        for sid in ("a", "b", "c"):
            store.record(sid, _result(FinancialAnalysis()))
        assert len(store) == 2
        assert store.last_analysis("a") is None
        assert store.last_analysis("c") is not None

    def test_new_session_ids_are_unique(self):
        assert SessionStore.new_session_id() != SessionStore.new_session_id()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
