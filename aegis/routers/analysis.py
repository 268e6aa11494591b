"""
Analysis API: feasibility analysis, blueprints and report export.

POST /api/analysis          Run the AEGIS protocol on a concept
POST /api/blueprint         Decompose an object into 3D primitives
POST /api/analysis/report   Export an analysis as Markdown or PDF
GET  /api/domains           List supported physics domains
"""

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from ..config import settings
from ..errors import (
    ConfigurationError,
    DeadlineExceededError,
    GenerationError,
    QuotaExceededError,
)
from ..generation import GenerationService
from ..report import generate_report_pdf, render_markdown, report_filename
from ..schemas import (
    AnalysisRequest,
    AnalysisResult,
    BlueprintRequest,
    BlueprintResponse,
    PhysicsDomain,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["analysis"])


@lru_cache(maxsize=1)
def get_generation_service() -> GenerationService:
    """One service (and one credential pool) per process."""
    return GenerationService.from_settings(settings)


def _status_for(error: GenerationError) -> int:
    if isinstance(error, ConfigurationError):
        return 503
    if isinstance(error, QuotaExceededError):
        return 429
    if isinstance(error, DeadlineExceededError):
        return 504
    return 502


def _raise_http(error: GenerationError):
    status = _status_for(error)
    logger.warning("Generation failed (%s): %s", error.kind, error.message)
    raise HTTPException(status_code=status, detail=error.to_dict()) from error


def get_service() -> GenerationService:
    try:
        return get_generation_service()
    except ConfigurationError as e:
        _raise_http(e)


# --- Endpoints ---

@router.post("/analysis", response_model=AnalysisResult)
def analyze(request: AnalysisRequest, service: GenerationService = Depends(get_service)):
    """
    Evaluate a concept against physics, engineering, economics and safety.

    The returned domain is always the one requested.
    """
    try:
        return service.analyze_idea(request)
    except GenerationError as e:
        _raise_http(e)


@router.post("/blueprint", response_model=BlueprintResponse)
def blueprint(request: BlueprintRequest, service: GenerationService = Depends(get_service)):
    """
    Decompose an object into up to 12 geometric primitives.

    An empty parts list is a successful result, not an error.
    """
    try:
        parts = service.generate_blueprint(request.description)
    except GenerationError as e:
        _raise_http(e)
    return BlueprintResponse(parts=parts, count=len(parts))


@router.post("/analysis/report")
def export_report(result: AnalysisResult, format: str = Query("markdown", pattern="^(markdown|pdf)$")):
    """Download an analysis as a Markdown or PDF report."""
    if format == "pdf":
        content = generate_report_pdf(result)
        media_type = "application/pdf"
        filename = report_filename("pdf")
    else:
        content = render_markdown(result)
        media_type = "text/markdown"
        filename = report_filename("md")

    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/domains")
def list_domains():
    return {"domains": [d.value for d in PhysicsDomain]}
