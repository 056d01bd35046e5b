"""
WebSocket endpoints streaming live movement lists.

Each connection holds one subscription. Snapshots arrive on
whichever thread committed the change, so they are handed to
the connection's event loop through a queue and sent from there.
The subscription is released when the client disconnects.
"""

import asyncio

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
from starlette.concurrency import run_in_threadpool

from chronos_ledger.exceptions import AccountNotFoundError
from chronos_ledger.logging_config import get_logger
from chronos_ledger.services.subscription_service import SubscriptionService

router = APIRouter(prefix="/bancos", tags=["Realtime"])

logger = get_logger("realtime.ws")

# Close code for "the requested banco does not exist"
WS_NOT_FOUND = 4404


def _service(websocket: WebSocket) -> SubscriptionService:
    state = websocket.app.state
    return SubscriptionService(state.change_feed, state.session_factory)


async def _stream(websocket: WebSocket, banco_id: str, subscribe) -> None:
    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def push(snapshot) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, snapshot)

    try:
        unsubscribe = await run_in_threadpool(subscribe, banco_id, push)
    except AccountNotFoundError as e:
        await websocket.close(code=WS_NOT_FOUND, reason=str(e))
        return

    async def send_snapshots() -> None:
        while True:
            snapshot = await queue.get()
            await websocket.send_json(jsonable_encoder(snapshot))

    async def wait_for_disconnect() -> None:
        # Clients only listen; reading is how we notice they left
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                return

    sender = asyncio.create_task(send_snapshots())
    receiver = asyncio.create_task(wait_for_disconnect())
    try:
        done, pending = await asyncio.wait(
            {sender, receiver}, return_when=asyncio.FIRST_COMPLETED
        )
        for task in pending:
            task.cancel()
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                raise exc
    finally:
        unsubscribe()
        logger.debug("Subscription closed", extra={"banco_id": banco_id})


@router.websocket("/{banco_id}/ingresos/ws")
async def ingresos_ws(websocket: WebSocket, banco_id: str):
    await _stream(
        websocket, banco_id, _service(websocket).subscribe_to_ingresos
    )


@router.websocket("/{banco_id}/gastos/ws")
async def gastos_ws(websocket: WebSocket, banco_id: str):
    await _stream(
        websocket, banco_id, _service(websocket).subscribe_to_gastos
    )
