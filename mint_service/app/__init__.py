"""Application entry: MintService supervisor and run_service."""

from mint_service.app.supervisor import MintService, run_service

__all__ = ["MintService", "run_service"]
