from fastapi import APIRouter

from output_tracker.api.routes import production, targets, reconciliation, realtime

api_router = APIRouter()


api_router.include_router(production.router)
api_router.include_router(targets.router)
api_router.include_router(reconciliation.router)
api_router.include_router(realtime.router)
