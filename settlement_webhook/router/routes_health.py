from fastapi import APIRouter

from settlement_webhook.dto.health import HealthResponse
from settlement_webhook.utils.time import utcnow

router = APIRouter()


@router.get("/", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    return HealthResponse(status="HEALTHY", current_time=utcnow())
