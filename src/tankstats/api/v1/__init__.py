from fastapi import APIRouter

from api.v1.endpoints.health import router as health_router
from api.v1.endpoints.packets import router as packet_router
from api.v1.endpoints.tasks import router as task_router
from api.v1.endpoints.wells import router as well_router

__all__ = ["api_router"]

api_router = APIRouter()
api_router.include_router(health_router, prefix="/health", tags=["health"])
api_router.include_router(packet_router, prefix="/packets", tags=["packets"])
api_router.include_router(well_router, prefix="/wells", tags=["wells"])
api_router.include_router(task_router, prefix="/tasks", tags=["tasks"])
