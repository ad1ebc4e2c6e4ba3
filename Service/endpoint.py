"""
HTTP endpoint exposing the batch sync to other clients.

The handler calls SyncExecutor.sync_batch() directly on the event loop, so
requests are served one at a time and the catalog only ever has one writer.
A long batch blocks the loop until it finishes.

Failed syncs are not HTTP errors: they answer 200 with
{"status": "error", "message": "Sync failed: ..."}. Only malformed requests
get a 400.
"""

import logging

from aiohttp import web

from SyncEngine import BatchSyncError, SyncExecutor

logger = logging.getLogger(__name__)

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


def _error(message: str, status: int = 200) -> web.Response:
    return web.json_response({"status": "error", "message": message}, status=status)


def parse_ids(payload: object) -> list:
    """
    Extract the id list from a request payload.

    Accepts {"ids": [...]} or a bare list. Entries that are not integers are
    passed through and rejected by the sync itself, like any invalid id.

    Raises:
        ValueError: if there is no list, or an integer doesn't fit in 32 bits
    """
    if isinstance(payload, dict):
        payload = payload.get("ids")
    if not isinstance(payload, list):
        raise ValueError("expected a list of track ids")

    for value in payload:
        if isinstance(value, int) and not isinstance(value, bool):
            if not INT32_MIN <= value <= INT32_MAX:
                raise ValueError(f"track id {value} is out of range")
    return payload


async def handle_sync(request: web.Request) -> web.Response:
    try:
        payload = await request.json()
    except ValueError:
        return _error("request body is not valid JSON", status=400)

    try:
        ids = parse_ids(payload)
    except ValueError as e:
        return _error(str(e), status=400)

    executor: SyncExecutor = request.app["sync_executor"]
    logger.info(f"Sync requested for {len(ids)} tracks")

    try:
        result = executor.sync_batch(ids)
    except BatchSyncError as e:
        logger.error(str(e))
        return _error(str(e))

    return web.json_response({"status": "ok", "added": result.tracks_added})


async def handle_health(request: web.Request) -> web.Response:
    executor: SyncExecutor = request.app["sync_executor"]
    return web.json_response({
        "status": "ok",
        "tracks": len(executor.context.catalog.tracks),
    })


def create_app(executor: SyncExecutor) -> web.Application:
    """Build the aiohttp application around a SyncExecutor."""
    app = web.Application()
    app["sync_executor"] = executor
    app.router.add_post("/sync", handle_sync)
    app.router.add_get("/health", handle_health)
    return app


def run_service(executor: SyncExecutor, host: str, port: int) -> None:
    """Serve until interrupted."""
    logger.info(f"Sync service listening on http://{host}:{port}")
    web.run_app(create_app(executor), host=host, port=port, print=None)
