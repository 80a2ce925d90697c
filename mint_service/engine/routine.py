"""One mint attempt: canMint -> holder snapshot -> mintAndDistribute -> receipt -> state update."""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from mint_service.connector.base import RemoteEndpoint
from mint_service.core.errors import DiagnosticQueryError
from mint_service.core.logging_utils import (
    log_attempt,
    log_holder_snapshot,
    log_transaction,
    new_trace_id,
)
from mint_service.engine.state import StatusState, utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AttemptOutcome(str, enum.Enum):
    """Result of one InvocationRoutine.attempt()."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class HolderSnapshot:
    """Holder count and balances (ether units) at one point in time. Log-only."""

    holders_count: int
    balances: Dict[str, Decimal]


@dataclass
class InvocationAttempt:
    """Everything observed during one attempt; logged, then discarded."""

    trace_id: str
    started_at: datetime
    can_invoke: Optional[bool] = None
    wait_seconds: Optional[int] = None
    before: Optional[HolderSnapshot] = None
    after: Optional[HolderSnapshot] = None
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None
    error: Optional[str] = None
    outcome: Optional[AttemptOutcome] = None


async def best_effort(label: str, fn: Callable[..., Awaitable[T]], *args: Any) -> Optional[T]:
    """Run a read-only diagnostic; return None (and log) instead of raising."""
    try:
        return await fn(*args)
    except Exception as e:
        err = DiagnosticQueryError(f"{label} failed: {e}", function=label)
        logger.warning("Diagnostic %s", err)
        return None


class InvocationRoutine:
    """Performs a single mint attempt against a RemoteEndpoint and records success in StatusState."""

    def __init__(
        self,
        endpoint: RemoteEndpoint,
        state: StatusState,
        capture_holders: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.endpoint = endpoint
        self.state = state
        self.capture_holders = capture_holders
        self._clock = clock
        self.last_attempt: Optional[InvocationAttempt] = None

    async def _holder_snapshot(self) -> Optional[HolderSnapshot]:
        async def _read() -> HolderSnapshot:
            count = await self.endpoint.holder_count()
            holders = await self.endpoint.list_holders()
            balances: Dict[str, Decimal] = {}
            for holder in holders:
                balances[holder] = await self.endpoint.balance_of(holder)
            return HolderSnapshot(holders_count=int(count), balances=balances)

        return await best_effort("holder snapshot", _read)

    def _finish(self, attempt: InvocationAttempt, outcome: AttemptOutcome) -> AttemptOutcome:
        attempt.outcome = outcome
        log_attempt(
            trace_id=attempt.trace_id,
            outcome=outcome.value,
            can_invoke=attempt.can_invoke,
            wait_seconds=attempt.wait_seconds,
            tx_hash=attempt.tx_hash,
            block_number=attempt.block_number,
            error=attempt.error,
        )
        self.last_attempt = attempt
        return outcome

    async def attempt(self) -> AttemptOutcome:
        """Run one attempt. Never raises; failures become AttemptOutcome.FAILED."""
        attempt = InvocationAttempt(trace_id=new_trace_id(), started_at=self._clock())
        logger.info("Starting mint and distribute process... (trace_id=%s)", attempt.trace_id)

        # 1. Precondition
        try:
            attempt.can_invoke = bool(await self.endpoint.can_invoke())
        except Exception as e:
            attempt.error = str(e)
            logger.error("Error checking minting status: %s", e)
            return self._finish(attempt, AttemptOutcome.FAILED)

        # 2. Not allowed yet: diagnostic wait only
        if not attempt.can_invoke:
            attempt.wait_seconds = await best_effort(
                "timeUntilNextMint", self.endpoint.time_until_next_allowed
            )
            if attempt.wait_seconds is not None:
                logger.info(
                    "Cannot mint yet. Time until next mint: %s seconds", attempt.wait_seconds
                )
            else:
                logger.info("Cannot mint yet. Time until next mint: unknown")
            return self._finish(attempt, AttemptOutcome.SKIPPED)

        # 3. Holder info before minting
        if self.capture_holders:
            attempt.before = await self._holder_snapshot()
            if attempt.before is not None:
                log_holder_snapshot(
                    "before", attempt.before.holders_count, attempt.before.balances, attempt.trace_id
                )

        # 4. Submit
        logger.info("Executing mintAndDistribute transaction...")
        try:
            attempt.tx_hash = await self.endpoint.invoke()
        except Exception as e:
            attempt.error = str(e)
            logger.error("Error in mintAndDistribute: %s", e)
            return self._finish(attempt, AttemptOutcome.FAILED)
        logger.info("Transaction sent: %s", attempt.tx_hash)
        log_transaction("sent", tx_hash=attempt.tx_hash, trace_id=attempt.trace_id)

        # 5. Confirmation; unconfirmed counts as failed
        try:
            confirmation = await self.endpoint.await_confirmation(attempt.tx_hash)
        except Exception as e:
            attempt.error = str(e)
            logger.error("Error waiting for confirmation of %s: %s", attempt.tx_hash, e)
            return self._finish(attempt, AttemptOutcome.FAILED)
        attempt.block_number = confirmation.block_number
        logger.info("Transaction confirmed in block %s", attempt.block_number)
        log_transaction(
            "confirmed",
            tx_hash=attempt.tx_hash,
            block_number=attempt.block_number,
            trace_id=attempt.trace_id,
        )

        # 6. Holder info after minting
        if self.capture_holders:
            attempt.after = await self._holder_snapshot()
            if attempt.after is not None:
                log_holder_snapshot(
                    "after", attempt.after.holders_count, attempt.after.balances, attempt.trace_id
                )

        # 7. Record
        total = self.state.record_success(self._clock())
        logger.info("Mint recorded. Total mints: %s", total)
        return self._finish(attempt, AttemptOutcome.SUCCESS)
