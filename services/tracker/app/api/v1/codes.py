"""Tracked code CRUD, analytics and QR image endpoints."""

import re
from typing import Annotated

import structlog
from fastapi import APIRouter, Query, Request, Response, status
from qrtrack_shared import TrackedCodeReplace, utcnow

from app.aggregators import compute_analytics
from app.core.config import get_settings
from app.core.deps import AnalyticsZoneDep, RepositoryDep
from app.core.observability import record_code_operation
from app.core.rate_limit import RATE_LIMIT_API, RATE_LIMIT_CREATE_CODE, limiter
from app.schemas.analytics import CodeAnalyticsResponse
from app.schemas.code import CodeCreate, CodeListResponse, CodeResponse
from app.services import code_service
from app.services.qr_image import QROptions, render_qr_png

settings = get_settings()
logger = structlog.get_logger()

router = APIRouter(prefix="/codes", tags=["codes"])


def download_filename(name: str) -> str:
    """File name offered when a QR image is downloaded."""
    slug = re.sub(r"[^A-Za-z0-9_-]+", "-", name).strip("-")
    return f"qr-code-{slug or 'download'}.png"


@router.post("", response_model=CodeResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMIT_CREATE_CODE)
async def create_code(
    request: Request,
    code_data: CodeCreate,
    repository: RepositoryDep,
) -> CodeResponse:
    """Create a tracked code with a fresh tracking URL and no scans."""
    code = await code_service.create_code(
        repository,
        name=code_data.name,
        target_url=code_data.target_url,
        base_url=settings.public_base_url,
    )
    logger.info("Code created", code_id=code.id, target_url=code.target_url)
    record_code_operation("create")
    return CodeResponse.model_validate(code)


@router.get("", response_model=CodeListResponse)
@limiter.limit(RATE_LIMIT_API)
async def list_codes(
    request: Request,
    repository: RepositoryDep,
) -> CodeListResponse:
    """List every tracked code."""
    codes = await code_service.list_codes(repository)
    return CodeListResponse(
        items=[CodeResponse.model_validate(code) for code in codes],
        total=len(codes),
    )


@router.get("/{code_id}", response_model=CodeResponse)
@limiter.limit(RATE_LIMIT_API)
async def get_code(
    request: Request,
    code_id: str,
    repository: RepositoryDep,
) -> CodeResponse:
    """Get a specific tracked code by ID."""
    code = await code_service.get_code(repository, code_id)
    return CodeResponse.model_validate(code)


@router.put("/{code_id}", response_model=CodeResponse)
@limiter.limit(RATE_LIMIT_API)
async def replace_code(
    request: Request,
    code_id: str,
    replacement: TrackedCodeReplace,
    repository: RepositoryDep,
) -> CodeResponse:
    """Replace a tracked code's whole record.

    `total_scans` is always recomputed from the submitted scans.
    """
    code = await code_service.replace_code(repository, code_id, replacement)
    logger.info("Code replaced", code_id=code_id, total_scans=code.total_scans)
    record_code_operation("replace")
    return CodeResponse.model_validate(code)


@router.delete("/{code_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(RATE_LIMIT_API)
async def delete_code(
    request: Request,
    code_id: str,
    repository: RepositoryDep,
) -> None:
    """Delete a tracked code and its scan history."""
    await code_service.delete_code(repository, code_id)
    logger.info("Code deleted", code_id=code_id)
    record_code_operation("delete")


@router.get("/{code_id}/analytics", response_model=CodeAnalyticsResponse)
@limiter.limit(RATE_LIMIT_API)
async def get_code_analytics(
    request: Request,
    code_id: str,
    repository: RepositoryDep,
    tz: AnalyticsZoneDep,
) -> CodeAnalyticsResponse:
    """Get today/week/month counts and date/hour histograms for a code."""
    code = await code_service.get_code(repository, code_id)
    summary = compute_analytics(code, now=utcnow(), tz=tz)

    logger.debug(
        "Analytics computed",
        code_id=code_id,
        total_scans=summary.total_scans,
    )

    return CodeAnalyticsResponse(
        code_id=code.id,
        name=code.name,
        timezone=str(tz),
        **summary.model_dump(),
    )


@router.get("/{code_id}/qr.png")
@limiter.limit(RATE_LIMIT_API)
async def get_code_qr(
    request: Request,
    code_id: str,
    repository: RepositoryDep,
    size: Annotated[int, Query(ge=64, le=2048, description="Image width in pixels")] = 256,
    margin: Annotated[int, Query(ge=0, le=16, description="Quiet zone in modules")] = 2,
    dark: Annotated[str, Query(description="Foreground colour, #RRGGBB")] = "#1F2937",
    light: Annotated[str, Query(description="Background colour, #RRGGBB")] = "#FFFFFF",
) -> Response:
    """Render the code's tracking URL as a downloadable PNG."""
    code = await code_service.get_code(repository, code_id)
    png = render_qr_png(
        code.tracking_url,
        QROptions(size=size, margin=margin, dark=dark, light=light),
    )
    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{download_filename(code.name)}"'},
    )
