"""API v1 router - aggregates all v1 endpoints."""

from fastapi import APIRouter

from app.api.v1.codes import router as codes_router

router = APIRouter(prefix="/api/v1")

router.include_router(codes_router)


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
