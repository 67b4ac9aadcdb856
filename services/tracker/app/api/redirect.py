"""Redirect endpoint for tracking URLs."""

import structlog
from fastapi import APIRouter, Request, status
from fastapi.responses import RedirectResponse

from app.core.config import get_settings
from app.core.deps import CoordinatorDep
from app.core.observability import record_redirect
from app.core.rate_limit import RATE_LIMIT_REDIRECT, limiter

settings = get_settings()
logger = structlog.get_logger()

router = APIRouter(tags=["redirect"])


@router.get("/track/{code_id}")
@limiter.limit(RATE_LIMIT_REDIRECT)
async def track_and_redirect(
    request: Request,
    code_id: str,
    coordinator: CoordinatorDep,
) -> RedirectResponse:
    """Record a scan of a tracked code and redirect to its target.

    Unknown codes redirect to the fallback URL instead of failing.
    """
    resolution = await coordinator.resolve(
        code_id,
        user_agent=request.headers.get("User-Agent"),
    )

    if not resolution.found:
        record_redirect("not_found")
        return RedirectResponse(
            url=settings.fallback_url,
            status_code=status.HTTP_307_TEMPORARY_REDIRECT,
        )

    record_redirect("found")
    return RedirectResponse(
        url=resolution.target_url,
        status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    )
