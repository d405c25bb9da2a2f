"""
FastAPI wrapper for the Page Proofreader - Vercel Serverless Function.

This module exposes content selection and proofreading of posted HTML
pages as a REST API.
"""

import os
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from page_proofreader import __version__
from page_proofreader.config import DEFAULT_MODEL, ProofreaderConfig
from page_proofreader.content_selector import ContentSelector
from page_proofreader.correction_service import (
    AnthropicCorrectionService,
    StaticCorrectionService,
)
from page_proofreader.errors import (
    ConfigError,
    ContentLoadError,
    CorrectionServiceError,
    ProofreaderError,
)
from page_proofreader.layout import StaticLayout
from page_proofreader.page_sources import fetch_url_html, parse_html
from page_proofreader.pipeline import ProofreadSession

app = FastAPI(
    title="Page Proofreader API",
    description="AI proofreading of web pages with inline correction annotations",
    version=__version__,
)

# Enable CORS for all origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class CorrectionInput(BaseModel):
    """A recorded correction over an element's original text."""
    start_index: int
    end_index: int
    correction_text: str = ""
    type: Optional[str] = None
    explanation: Optional[str] = None


class RecordedResult(BaseModel):
    """Recorded service result for one element's text."""
    text: str = Field(..., description="Element text the result applies to")
    corrected_text: Optional[str] = None
    corrections: list[CorrectionInput] = Field(default_factory=list)


class PageRequest(BaseModel):
    """Request model shared by the selection and proofreading endpoints."""
    html: Optional[str] = Field(None, description="Page HTML to process")
    source_url: Optional[str] = Field(None, description="URL to fetch the page from")
    max_candidates: int = Field(20, description="Maximum number of elements to select")


class ProofreadRequest(PageRequest):
    """Request model for proofreading a page."""
    max_processed: int = Field(50, description="Maximum elements sent to the service")
    max_annotations: int = Field(80, description="Maximum annotations per element")
    model: str = Field(DEFAULT_MODEL, description="Model used for proofreading")
    corrections: Optional[list[RecordedResult]] = Field(
        None,
        description="Recorded results to replay instead of calling the API",
    )


class CandidateInfo(BaseModel):
    """One selected element."""
    index: int
    tag: str
    type: str
    priority: int
    text: str


class CandidatesResponse(BaseModel):
    """Response model for content selection."""
    success: bool
    count: int
    candidates: list[CandidateInfo]


class ElementResult(BaseModel):
    """Outcome for one processed element."""
    index: int
    type: str
    status: str
    annotations: int = 0
    used_fallback: bool = False
    error: Optional[str] = None


class ProofreadResponse(BaseModel):
    """Response model for proofreading results."""
    success: bool
    message: str
    html: str
    summary: dict
    elements: list[ElementResult]


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str


def _load_page(request: PageRequest):
    if request.html and request.source_url:
        raise HTTPException(status_code=400, detail="Provide only one of html or source_url")
    if request.html:
        return parse_html(request.html)
    if request.source_url:
        try:
            return fetch_url_html(request.source_url)
        except ContentLoadError as e:
            raise HTTPException(status_code=400, detail=str(e))
    raise HTTPException(status_code=400, detail="Must provide either html or source_url")


@app.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        version=__version__,
    )


@app.post("/api/candidates", response_model=CandidatesResponse)
async def select_candidates(request: PageRequest):
    """Preview which elements of a page would be proofread."""
    document = _load_page(request)
    try:
        config = ProofreaderConfig(max_candidates=request.max_candidates)
    except ConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))

    candidates = ContentSelector(config, StaticLayout()).select_candidates(document)
    return CandidatesResponse(
        success=True,
        count=len(candidates),
        candidates=[
            CandidateInfo(
                index=index,
                tag=candidate.element.name,
                type=candidate.type.value,
                priority=candidate.priority,
                text=candidate.text,
            )
            for index, candidate in enumerate(candidates)
        ],
    )


@app.post("/api/proofread", response_model=ProofreadResponse)
async def proofread_page(request: ProofreadRequest):
    """
    Proofread a page and return it with inline annotations.

    Uses the recorded corrections when posted, otherwise the Anthropic
    service (requires ANTHROPIC_API_KEY).
    """
    document = _load_page(request)
    try:
        config = ProofreaderConfig(
            max_candidates=request.max_candidates,
            max_processed=request.max_processed,
            max_annotations=request.max_annotations,
            model=request.model,
        )
    except ConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        if request.corrections is not None:
            service = StaticCorrectionService({
                recorded.text: recorded.model_dump(exclude={"text"})
                for recorded in request.corrections
            })
        else:
            service = AnthropicCorrectionService(
                api_key=os.environ.get("ANTHROPIC_API_KEY"),
                model=config.model,
                max_tokens=config.max_tokens,
            )
    except CorrectionServiceError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        session = ProofreadSession(service, config=config, layout=StaticLayout())
        summary = await session.run(document)
    except ProofreaderError as e:
        raise HTTPException(status_code=500, detail=str(e))
    finally:
        await service.aclose()

    return ProofreadResponse(
        success=True,
        message=f"Proofread {summary.processed} elements, {summary.changed} changed",
        html=str(document),
        summary=summary.as_dict(),
        elements=[
            ElementResult(
                index=outcome.index,
                type=outcome.candidate.type.value,
                status=outcome.status.value,
                annotations=outcome.annotations,
                used_fallback=outcome.used_fallback,
                error=outcome.error,
            )
            for outcome in summary.outcomes
        ],
    )


@app.get("/api/info")
async def api_info():
    """API information endpoint."""
    return {
        "name": "Page Proofreader API",
        "version": __version__,
        "endpoints": {
            "GET /api/health": "Health check",
            "POST /api/candidates": "List the elements of a page that would be proofread",
            "POST /api/proofread": "Proofread a page and return annotated HTML",
            "GET /api/info": "This endpoint",
        },
        "documentation": "/docs",
    }
