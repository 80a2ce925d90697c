"""Contract connector: canMint / mintAndDistribute / holder reads over JSON-RPC (web3.py)."""

import logging
from decimal import Decimal
from typing import Any, List, Optional

from web3 import AsyncWeb3, Web3
from web3.exceptions import TimeExhausted

from mint_service.connector.base import Confirmation, RemoteEndpoint
from mint_service.core.errors import (
    ConfirmationError,
    PreconditionQueryError,
    RemoteQueryError,
    SubmissionError,
)

logger = logging.getLogger(__name__)

# Only the functions the service calls
MINT_CONTRACT_ABI: List[dict] = [
    {
        "name": "mintAndDistribute",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [],
        "outputs": [],
    },
    {
        "name": "canMint",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "name": "timeUntilNextMint",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "getHoldersCount",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "getHolders",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "address[]"}],
    },
    {
        "name": "balanceOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]


class ContractConnector(RemoteEndpoint):
    """Minimal web3 connector for the minting service. One signer, one contract."""

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        private_key: str,
        confirmation_timeout: float = 120.0,
        poll_latency: float = 2.0,
        w3: Optional[AsyncWeb3] = None,
    ):
        self.rpc_url = rpc_url
        self.contract_address = Web3.to_checksum_address(contract_address)
        self.confirmation_timeout = confirmation_timeout
        self.poll_latency = poll_latency
        self.w3 = w3 or AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))
        self._account = self.w3.eth.account.from_key(private_key)
        self.contract = self.w3.eth.contract(address=self.contract_address, abi=MINT_CONTRACT_ABI)
        self.chain_id: Optional[int] = None
        self._connected = False

    @property
    def signer_address(self) -> str:
        return self._account.address

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> bool:
        """Check the RPC node answers and a contract is deployed at the configured address."""
        try:
            if not await self.w3.is_connected():
                logger.error("RPC endpoint not reachable")
                return False
            self.chain_id = await self.w3.eth.chain_id
            code = await self.w3.eth.get_code(self.contract_address)
        except Exception as e:
            logger.error("RPC connectivity check failed: %s", e)
            return False
        if not code:
            logger.error("No contract code at %s (chain_id=%s)", self.contract_address, self.chain_id)
            return False
        self._connected = True
        logger.info(
            "Connected to chain_id=%s contract=%s signer=%s",
            self.chain_id,
            self.contract_address,
            self.signer_address,
        )
        return True

    async def disconnect(self) -> None:
        disconnect = getattr(self.w3.provider, "disconnect", None)
        if disconnect is not None:
            try:
                await disconnect()
            except Exception as e:
                logger.debug("Provider disconnect: %s", e)
        self._connected = False

    async def _call(self, function: str, *args: Any, error_cls: type = RemoteQueryError) -> Any:
        """Run a view function; translate any failure into error_cls."""
        try:
            return await getattr(self.contract.functions, function)(*args).call()
        except Exception as e:
            raise error_cls(f"{function}() failed: {e}", function=function) from e

    async def can_invoke(self) -> bool:
        return bool(await self._call("canMint", error_cls=PreconditionQueryError))

    async def time_until_next_allowed(self) -> int:
        return int(await self._call("timeUntilNextMint"))

    async def holder_count(self) -> int:
        return int(await self._call("getHoldersCount"))

    async def list_holders(self) -> List[str]:
        return list(await self._call("getHolders"))

    async def balance_of(self, address: str) -> Decimal:
        raw = await self._call("balanceOf", Web3.to_checksum_address(address))
        return Web3.from_wei(raw, "ether")

    async def invoke(self) -> str:
        """Build, sign and send mintAndDistribute() from the signer account."""
        try:
            nonce = await self.w3.eth.get_transaction_count(self.signer_address, "pending")
            tx = await self.contract.functions.mintAndDistribute().build_transaction(
                {"from": self.signer_address, "nonce": nonce}
            )
            signed = self._account.sign_transaction(tx)
            tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        except Exception as e:
            raise SubmissionError(f"mintAndDistribute() submission failed: {e}") from e
        return Web3.to_hex(tx_hash)

    async def await_confirmation(self, tx_hash: str) -> Confirmation:
        try:
            receipt = await self.w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=self.confirmation_timeout,
                poll_latency=self.poll_latency,
            )
        except TimeExhausted as e:
            raise ConfirmationError(
                f"Transaction {tx_hash} not confirmed within {self.confirmation_timeout:.0f}s",
                tx_hash=tx_hash,
            ) from e
        except Exception as e:
            raise ConfirmationError(f"Receipt for {tx_hash} failed: {e}", tx_hash=tx_hash) from e
        status = int(receipt.get("status", 0))
        block_number = int(receipt["blockNumber"])
        if status != 1:
            raise ConfirmationError(
                f"Transaction {tx_hash} reverted in block {block_number}", tx_hash=tx_hash
            )
        return Confirmation(
            tx_hash=tx_hash,
            block_number=block_number,
            status=status,
            gas_used=receipt.get("gasUsed"),
        )
