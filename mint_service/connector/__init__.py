"""Remote contract endpoint: abstract call contract and web3 implementation."""

from mint_service.connector.base import Confirmation, RemoteEndpoint

# Lazy import so the core loads without web3 provider setup (tests use fakes)
def __getattr__(name: str):
    if name == "ContractConnector":
        from mint_service.connector.contract import ContractConnector
        return ContractConnector
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["Confirmation", "RemoteEndpoint", "ContractConnector"]
