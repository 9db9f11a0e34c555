#cart_service/api/routers/health.py
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from cart_service.api.routers.carts import get_context
from cart_service.domain.schemas import HealthOut
from cart_service.services.context import AppContext

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthOut)
def health(ctx: AppContext = Depends(get_context)):
    status = ctx.health()
    code = 503 if status["status"] == "unhealthy" else 200
    return JSONResponse(status_code=code, content=HealthOut(**status).model_dump())
