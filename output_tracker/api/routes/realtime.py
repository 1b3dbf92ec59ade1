import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from output_tracker.core.schemas.production import ProductionGrid
from output_tracker.modules.production.production_service import ProductionService


logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])

PRODUCTION_EVENT = "productionData"


def _message(grid: ProductionGrid) -> dict:
    return {
        "event": PRODUCTION_EVENT,
        "data": grid.model_dump(mode="json", by_alias=True),
    }


@router.websocket("/ws/production")
async def production_updates(websocket: WebSocket):
    """
    Push the current production grid on connect, then every time it changes.

    Messages: {"event": "productionData", "data": <same shape as GET /production/current>}
    """
    await websocket.accept()
    logger.info("Client connected")

    state = websocket.app.state
    store = getattr(state, "store", None)
    poller = getattr(state, "poller", None)

    async def push(grid: ProductionGrid):
        await websocket.send_json(_message(grid))

    # Subscribe first so a change made while the initial grid loads still arrives
    unsubscribe = poller.subscribe(push) if poller is not None else None

    try:
        # Initial data
        if store is not None:
            try:
                grid = await ProductionService(store).get_current_grid()
                await websocket.send_json(_message(grid))
            except Exception as e:
                logger.error(f"Error getting initial data: {e}")

        while True:
            # Clients do not send anything meaningful; this only waits for disconnect
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("Client disconnected")
    finally:
        if unsubscribe is not None:
            unsubscribe()
