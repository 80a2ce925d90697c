"""FastAPI status app: GET / (service health + mint history), OPTIONS * (CORS preflight), 404 otherwise.

Served in-process by uvicorn on the service event loop; the handler only reads StatusState.
"""

import contextlib
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterator

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mint_service.connector.base import RemoteEndpoint
from mint_service.core.errors import StatusQueryError
from mint_service.engine.state import StatusState, utc_now

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

NOT_FOUND_BODY = {"status": "error", "message": "Not found"}


def iso_utc(dt: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and Z suffix (2024-05-01T12:00:00.000Z)."""
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_status_payload(state: StatusState, contract_address: str, holders_count: int) -> Dict[str, Any]:
    """Status body from a StatusState snapshot and a live holder count."""
    now = utc_now()
    snap = state.snapshot()
    return {
        "status": "ok",
        "timestamp": iso_utc(now),
        "contract": contract_address,
        "holdersCount": str(holders_count),
        "lastMintTime": iso_utc(snap.last_success_time),
        "timeSinceLastMint": f"{snap.seconds_since_last_success(now)} seconds",
        "totalMints": snap.invocation_count,
    }


def create_app(endpoint: RemoteEndpoint, state: StatusState, contract_address: str) -> FastAPI:
    """Build the status app. No docs/openapi routes: the HTTP surface is exactly GET / and OPTIONS."""
    app = FastAPI(
        title="Mint Service Status",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.middleware("http")
    async def cors(request: Request, call_next: Any) -> Response:
        if request.method == "OPTIONS":
            response = Response(status_code=204)
        else:
            response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # 405 on / is reported as 404 as well: only GET / exists
        if exc.status_code in (404, 405):
            return JSONResponse(status_code=404, content=NOT_FOUND_BODY)
        return JSONResponse(
            status_code=exc.status_code,
            content={"status": "error", "message": str(exc.detail)},
        )

    @app.get("/")
    async def get_status() -> JSONResponse:
        """Health, contract, live holder count, last mint time and total mints."""
        try:
            try:
                holders_count = await endpoint.holder_count()
            except Exception as e:
                raise StatusQueryError(str(e), function="getHoldersCount") from e
            payload = build_status_payload(state, contract_address, holders_count)
        except Exception as e:
            logger.warning("Status request failed: %s", e)
            return JSONResponse(
                status_code=500,
                content={"status": "error", "message": str(e), "timestamp": iso_utc(utc_now())},
            )
        return JSONResponse(status_code=200, content=payload)

    return app


class EmbeddedServer(uvicorn.Server):
    """uvicorn server whose SIGINT/SIGTERM handling is left to the supervisor."""

    def install_signal_handlers(self) -> None:
        return

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


def build_server(app: FastAPI, host: str, port: int) -> EmbeddedServer:
    """uvicorn server for app; call `await server.serve()` and set `should_exit` to stop."""
    config = uvicorn.Config(
        app,
        host=host,
        port=int(port),
        log_level="info",
        log_config=None,
        lifespan="off",
    )
    return EmbeddedServer(config)
