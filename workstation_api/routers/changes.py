"""
Change feed WebSocket.

Forwards change-bus topics to browser workstations as ``{"type": topic}`` so
they re-fetch without waiting for their refresh timer. Topics carry no data;
the client always reloads through the REST endpoints.
"""

import asyncio

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool

from shared.config.logging import api_logger as logger, mask_scope
from shared.infrastructure.events import ALL_TOPICS
from shared.infrastructure.store import SessionStore
from shared.security.auth import verify_scope_token
from shared.utils.exceptions import SessionRequiredError
from workstation_api.services.domain import EmployeeAuthGuard

router = APIRouter(tags=["changes"])

# Application close codes (4000-4999)
CLOSE_SESSION_REQUIRED = 4401


async def _forward(websocket: WebSocket, queue: "asyncio.Queue[str]") -> None:
    while True:
        topic = await queue.get()
        await websocket.send_json({"type": topic})


async def _heartbeat(websocket: WebSocket) -> None:
    while True:
        data = await websocket.receive_text()
        if data == "ping":
            await websocket.send_text("pong")


@router.websocket("/ws/changes/{restaurant_id}")
async def change_feed(
    websocket: WebSocket,
    restaurant_id: str,
    token: str = Query(..., alias="scope", min_length=1, max_length=2048),
) -> None:
    try:
        scope = verify_scope_token(token, restaurant_id)["sub"]
    except SessionRequiredError:
        await websocket.close(code=CLOSE_SESSION_REQUIRED, reason="Employee session required")
        return

    store: SessionStore = websocket.app.state.store
    guard = EmployeeAuthGuard(store, scope)
    # Store reads are blocking (SQL or Redis)
    if await run_in_threadpool(guard.validate_session, restaurant_id) is None:
        await websocket.close(code=CLOSE_SESSION_REQUIRED, reason="Employee session required")
        return

    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[str] = asyncio.Queue()

    # Publishers may run in worker threads or the Redis listener thread
    def on_change(topic: str) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, topic)

    unsubscribes = [store.subscribe(topic, on_change) for topic in ALL_TOPICS]
    logger.info("Change feed connected", restaurant_id=restaurant_id, scope=mask_scope(scope))

    tasks = [
        asyncio.create_task(_forward(websocket, queue), name="change_feed_forward"),
        asyncio.create_task(_heartbeat(websocket), name="change_feed_heartbeat"),
    ]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            error = task.exception()
            if error is not None and not isinstance(error, WebSocketDisconnect):
                logger.error("Change feed failed", restaurant_id=restaurant_id, error=str(error))
    finally:
        for unsubscribe in unsubscribes:
            unsubscribe()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Change feed disconnected", restaurant_id=restaurant_id, scope=mask_scope(scope))
