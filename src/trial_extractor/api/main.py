"""FastAPI application."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from trial_extractor import __version__
from trial_extractor.config import get_settings
from trial_extractor.data_sources.base_client import (
    ClientConfig,
    DataSourceError,
    RetryConfig,
)
from trial_extractor.data_sources.pubmed import PubMedClient
from trial_extractor.db.article_store import ArticleStore
from trial_extractor.db.session import get_db, init_db
from trial_extractor.models.model_clinical_trial import (
    ClinicalTrialCreate,
    ClinicalTrialRecord,
    ExtractRequest,
)
from trial_extractor.models.model_pubmed_abstract import AbstractRecord
from trial_extractor.models.model_search import SearchRequest, SearchResult
from trial_extractor.services.exporter import (
    export_filename,
    export_json,
    render_html_report,
    report_filename,
)
from trial_extractor.services.llm import LLMError, LLMParseError
from trial_extractor.services.trial_extraction import ExtractionService
from trial_extractor.utils.log import configure_logging

logger = logging.getLogger(__name__)

# Failures on these paths get a route-specific message.
_ERROR_MESSAGES: dict[str, str] = {
    "/articles": "Failed to save article",
    "/search": "Failed to search PubMed",
    "/extract": "Failed to extract clinical trial data",
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the shared clients; a missing API key aborts startup."""
    settings = get_settings()
    configure_logging(settings.log_level)
    init_db()
    app.state.extraction_service = ExtractionService.from_settings(settings)
    app.state.pubmed_client = PubMedClient(
        ClientConfig(
            retry=RetryConfig(max_retries=settings.max_retries),
            timeout_seconds=settings.request_timeout_seconds,
        ),
        api_key=settings.ncbi_api_key,
    )
    logger.info("Trial extractor API %s started", __version__)
    try:
        yield
    finally:
        await app.state.pubmed_client.close()
        logger.info("Trial extractor API shut down")


app = FastAPI(
    title="Trial Extractor API",
    description="Search PubMed and extract structured clinical-trial records",
    version=__version__,
    lifespan=lifespan,
)


# -- Dependencies ------------------------------------------------------------


def get_pubmed_client(request: Request) -> PubMedClient:
    return request.app.state.pubmed_client


def get_extraction_service(request: Request) -> ExtractionService:
    return request.app.state.extraction_service


def get_store(db: Session = Depends(get_db)) -> ArticleStore:
    return ArticleStore(db)


# -- Errors ------------------------------------------------------------------


def error_response(status_code: int, message: str, error: Exception | str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"message": message, "error": str(error)}
    )


def _not_found() -> JSONResponse:
    return JSONResponse(status_code=404, content={"message": "Article not found"})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in exc.errors()
    )
    message = _ERROR_MESSAGES.get(request.url.path, "Invalid request")
    logger.info("Rejected %s %s: %s", request.method, request.url.path, details)
    return error_response(400, message, details)


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    message = _ERROR_MESSAGES.get(request.url.path, "Database error")
    return error_response(500, message, exc)


# -- Routes ------------------------------------------------------------------


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


@app.post("/search", response_model=list[SearchResult])
async def search(
    body: SearchRequest,
    client: PubMedClient = Depends(get_pubmed_client),
):
    try:
        return await client.search(
            body.query,
            article_type=body.article_type,
            max_results=body.max_results,
            date_filter=body.date_filter,
        )
    except DataSourceError as e:
        logger.error("Search %r failed: %s", body.query, e)
        return error_response(500, "Failed to search PubMed", e)


@app.get("/article/{external_id}", response_model=None)
async def get_article(
    external_id: str,
    store: ArticleStore = Depends(get_store),
    client: PubMedClient = Depends(get_pubmed_client),
):
    """The stored record if there is one, else the freshly fetched article."""
    record = store.get_by_pmcid(external_id)
    if record is not None:
        return record
    try:
        return await client.fetch_article(external_id)
    except DataSourceError as e:
        logger.error("Fetching article %s failed: %s", external_id, e)
        return error_response(500, "Failed to fetch article", e)


@app.post("/articles", response_model=ClinicalTrialRecord)
async def save_article(
    body: ClinicalTrialCreate,
    store: ArticleStore = Depends(get_store),
):
    return store.upsert(body)


@app.get("/abstract/{external_id}", response_model=AbstractRecord)
async def get_abstract(
    external_id: str,
    client: PubMedClient = Depends(get_pubmed_client),
):
    try:
        return await client.fetch_abstract(external_id)
    except DataSourceError as e:
        logger.error("Fetching abstract %s failed: %s", external_id, e)
        return error_response(500, "Failed to fetch abstract data", e)


@app.post("/extract", response_model=ClinicalTrialRecord)
async def extract(
    body: ExtractRequest,
    service: ExtractionService = Depends(get_extraction_service),
    store: ArticleStore = Depends(get_store),
):
    """Run the extraction and store the result under the request's id."""
    try:
        record = await service.extract(
            body.title, body.abstract_text, body.pmcid, doi=body.doi
        )
    except (LLMError, LLMParseError) as e:
        logger.error("Extraction for %s failed: %s", body.pmcid, e)
        return error_response(500, "Failed to extract clinical trial data", e)
    return store.upsert(record)


@app.get("/export/{external_id}")
async def export_article(
    external_id: str,
    store: ArticleStore = Depends(get_store),
):
    record = store.get_by_pmcid(external_id)
    if record is None:
        return _not_found()
    return Response(
        content=export_json(record),
        media_type="application/json",
        headers={
            "Content-Disposition": f'attachment; filename="{export_filename(record)}"'
        },
    )


@app.get("/export/{external_id}/report")
async def export_report(
    external_id: str,
    store: ArticleStore = Depends(get_store),
):
    record = store.get_by_pmcid(external_id)
    if record is None:
        return _not_found()
    return HTMLResponse(
        content=render_html_report(record),
        headers={
            "Content-Disposition": f'attachment; filename="{report_filename(record)}"'
        },
    )
