"""Status server: FastAPI app answering GET / with service health, embedded uvicorn server."""

from mint_service.status_server.app import build_server, create_app

__all__ = ["create_app", "build_server"]
