"""HTTP shell: upload -> analysis JSON, spreadsheet and extraction-artifact downloads.

Usage:
    finanalyze-server
    # or
    uvicorn server:create_app --factory --app-dir src --port 3016
"""
from __future__ import annotations
import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.concurrency import run_in_threadpool

from ai_client import BaseAIClient, get_ai_client
from errors import InvalidRequestError
from excel_export import XLSX_MEDIA_TYPE, build_workbook
from pdf_utils import ArtifactSink, TextExtractor, ocr_capability
from pipeline import DocumentPipeline, SessionStore, parse_upload
from settings import Settings, configure_logging, get_settings

logger = logging.getLogger(__name__)

SESSION_COOKIE = "session_id"


def _resolve_client(settings: Settings) -> Optional[BaseAIClient]:
    try:
        return get_ai_client(settings=settings)
    except ValueError as exc:
        logger.error("Completion service unavailable, analyses will use fallback extraction: %s", exc)
        return None


def create_app(
    settings: Optional[Settings] = None,
    ai_client: Optional[BaseAIClient] = None,
    extractor: Optional[TextExtractor] = None,
) -> FastAPI:
    settings = settings or get_settings()
    if ai_client is None:
        ai_client = _resolve_client(settings)
    if extractor is None:
        extractor = TextExtractor(
            sink=ArtifactSink(settings.ocr_output_dir), ocr_lang=settings.ocr_lang, ocr_dpi=settings.ocr_dpi
        )
    sink = extractor.sink or ArtifactSink(settings.ocr_output_dir)
    pipeline = DocumentPipeline(extractor, ai_client, settings=settings)
    sessions = SessionStore()

    app = FastAPI(
        title="Financial Document Analyzer",
        description="Earnings-call sentiment and financial statement extraction from PDF/TXT",
        version="0.1.0",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.pipeline = pipeline
    app.state.sessions = sessions
    app.state.sink = sink

    @app.exception_handler(InvalidRequestError)
    async def invalid_request(request: Request, exc: InvalidRequestError):
        logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.post("/analyze")
    @app.post("/api/analyze")
    async def analyze(request: Request):
        upload = parse_upload(await request.body(), request.headers.get("content-type"))
        session_id = request.cookies.get(SESSION_COOKIE) or sessions.new_session_id()
        try:
            result = await run_in_threadpool(pipeline.run_upload, upload)
        except InvalidRequestError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.exception("Analysis of %s failed", upload.filename)
            return JSONResponse({"error": str(exc) or "Analysis failed"}, status_code=500)

        sessions.record(session_id, result)
        artifact = result.extraction.artifact_file
        if result.needs_ocr:
            body = {
                "success": False,
                "needsOcr": True,
                "filename": result.filename,
                "ocrFile": artifact,
                "attempts": [a.model_dump(mode="json") for a in result.extraction.attempts],
                "message": "PDF text extraction failed. The document may be scanned; "
                "convert it to TXT or install Tesseract OCR and retry.",
            }
            response = JSONResponse(body, status_code=202)
        else:
            body = {
                "success": True,
                "analysisType": result.analysis_type,
                "filename": result.filename,
                "analysis": result.analysis.model_dump(mode="json"),
                "extractionMethod": result.extraction.method.value,
                "analysisSource": result.source,
                "ocrAvailable": artifact is not None,
                "sessionId": session_id,
            }
            if artifact:
                body["ocrFile"] = artifact
            response = JSONResponse(body)
        response.set_cookie(SESSION_COOKIE, session_id, httponly=True, samesite="lax")
        return response

    @app.get("/download-excel")
    @app.get("/api/download-excel")
    def download_excel(request: Request, session: Optional[str] = None):
        session_id = session or request.cookies.get(SESSION_COOKIE)
        analysis = sessions.last_analysis(session_id)
        if analysis is None:
            return JSONResponse({"error": "No financial analysis available"}, status_code=404)
        try:
            payload = build_workbook(analysis)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Excel export failed")
            return JSONResponse({"error": f"Excel generation failed: {exc}"}, status_code=500)
        return Response(
            content=payload,
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": 'attachment; filename="financial_analysis.xlsx"'},
        )

    @app.get("/download-ocr")
    @app.get("/api/download-ocr")
    def download_ocr(request: Request, session: Optional[str] = None):
        session_id = session or request.cookies.get(SESSION_COOKIE)
        name = sessions.last_artifact(session_id)
        text = sink.read_artifact(name) if name else None
        if text is None:
            return JSONResponse({"error": "No extraction output available"}, status_code=404)
        return PlainTextResponse(text, headers={"Content-Disposition": f'attachment; filename="{name}"'})

    @app.get("/ocr-files")
    @app.get("/api/ocr-files")
    def ocr_files():
        return {"files": sink.list_artifacts()}

    @app.get("/health")
    def health():
        capability = ocr_capability()
        return {
            "status": "ok",
            "provider": settings.ai_provider,
            "model": ai_client.model_name if ai_client else None,
            "ocr": capability.model_dump(),
        }

    return app


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Starting server on http://%s:%d", settings.host, settings.port)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
