"""
Stream Classification Service - Health API Routes

Patterns Applied:
- Health Check Pattern
- HealthService held on app.state and resolved per request
- Pydantic response models

Anti-Patterns Avoided:
- Bare except clauses
- Module-level service singleton
"""

from typing import Any

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from stream_classifier.core.config import DEFAULT_SERVICE_NAME
from stream_classifier.core.logging import get_logger

router = APIRouter(tags=["health"])

logger = get_logger(__name__)


# =============================================================================
# Response Models
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    version: str
    service: str


class ReadinessResponse(BaseModel):
    """Readiness check response model."""
    status: str
    checks: dict[str, bool]
    combinations: int | None = None


# =============================================================================
# Health Service
# =============================================================================


class HealthService:
    """Service class for health check operations.

    Returns structured {"status": "healthy", ...} response
    """

    def __init__(self, version: str = "0.1.0", service: str = DEFAULT_SERVICE_NAME):
        """Initialize health service.

        Args:
            version: Service version string
            service: Service name reported by /health
        """
        self._version = version
        self._service = service
        self._reference_data_loaded = False
        self._combinations = 0

    def check_health(self) -> dict[str, Any]:
        """Check basic service health.

        Returns:
            Health status dictionary with status, version, service
        """
        return {
            "status": "healthy",
            "version": self._version,
            "service": self._service,
        }

    def check_readiness(self) -> tuple[dict[str, Any], bool]:
        """Check if service is ready to accept requests.

        Returns 503 until reference data is loaded.

        Returns:
            Tuple of (readiness dict, is_ready bool)
        """
        checks = {
            "reference_data_loaded": self._reference_data_loaded,
        }

        is_ready = all(checks.values())
        status = "ready" if is_ready else "not_ready"

        result: dict[str, Any] = {
            "status": status,
            "checks": checks,
            "combinations": self._combinations,
        }

        return result, is_ready

    def set_reference_data_loaded(self, loaded: bool, combinations: int = 0) -> None:
        """Set reference data status.

        Args:
            loaded: Whether the combination store is available
            combinations: Number of valid combinations loaded
        """
        self._reference_data_loaded = loaded
        self._combinations = combinations


def get_health_service(request: Request) -> HealthService:
    """Resolve the health service from application state."""
    service: HealthService | None = getattr(request.app.state, "health", None)
    if service is None:
        service = HealthService()
        request.app.state.health = service
    return service


# =============================================================================
# Endpoints
# =============================================================================


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Basic health check endpoint for liveness probe",
)
async def health_check(request: Request) -> HealthResponse:
    """Health check endpoint (liveness probe)."""
    service = get_health_service(request)
    data = service.check_health()
    logger.debug("health_check", status=data["status"])
    return HealthResponse(**data)


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={
        200: {"description": "Service is ready"},
        503: {"description": "Service is not ready"},
    },
    summary="Readiness Check",
    description="Readiness check endpoint for Kubernetes readiness probe",
)
async def readiness_check(request: Request) -> JSONResponse:
    """Readiness check endpoint.

    Returns:
        200 if ready, 503 if not ready
    """
    service = get_health_service(request)
    data, is_ready = service.check_readiness()

    status_code = status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE

    logger.debug("readiness_check", status=data["status"], is_ready=is_ready)
    return JSONResponse(content=data, status_code=status_code)
