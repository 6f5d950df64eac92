from datetime import datetime, timezone

from dishka import FromDishka
from dishka.integrations.fastapi import DishkaRoute
from fastapi import APIRouter

from app.domain.events import isoformat_utc
from app.schemas_pydantic.health import LivenessResponse
from app.settings import Settings

router = APIRouter(tags=["Health"], route_class=DishkaRoute)


@router.get("/health", response_model=LivenessResponse)
async def liveness(settings: FromDishka[Settings]) -> LivenessResponse:
    """Basic liveness probe. Does not touch external deps."""
    return LivenessResponse(
        status="OK",
        timestamp=isoformat_utc(datetime.now(timezone.utc)),
        service=settings.SERVICE_NAME,
    )
