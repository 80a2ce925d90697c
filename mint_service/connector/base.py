"""RemoteEndpoint abstract interface: the contract calls the minting core depends on."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional


@dataclass(frozen=True)
class Confirmation:
    """Receipt summary for a confirmed transaction."""

    tx_hash: str
    block_number: int
    status: int = 1
    gas_used: Optional[int] = None


class RemoteEndpoint(ABC):
    """Abstract contract endpoint.

    Read-only queries raise RemoteQueryError (or a subclass); invoke() raises
    SubmissionError and await_confirmation() raises ConfirmationError.
    Implementations: ContractConnector (web3.py). Tests use AsyncMock fakes.
    """

    async def connect(self) -> bool:
        """Verify connectivity. Default: nothing to check."""
        return True

    async def disconnect(self) -> None:
        return

    @abstractmethod
    async def can_invoke(self) -> bool:
        """canMint(): whether mintAndDistribute() is currently allowed."""
        ...

    @abstractmethod
    async def time_until_next_allowed(self) -> int:
        """timeUntilNextMint() in seconds. Diagnostic only."""
        ...

    @abstractmethod
    async def holder_count(self) -> int:
        ...

    @abstractmethod
    async def list_holders(self) -> List[str]:
        ...

    @abstractmethod
    async def balance_of(self, address: str) -> Decimal:
        """Token balance of address in ether units (18 decimals)."""
        ...

    @abstractmethod
    async def invoke(self) -> str:
        """Submit mintAndDistribute(). Returns the transaction hash (0x-hex)."""
        ...

    @abstractmethod
    async def await_confirmation(self, tx_hash: str) -> Confirmation:
        """Wait for the receipt of tx_hash. Raises ConfirmationError on timeout or revert."""
        ...
