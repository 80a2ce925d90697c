"""Structured logging for invocation attempts, holder snapshots and transactions."""

import logging
import uuid
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)


def new_trace_id() -> str:
    return str(uuid.uuid4())[:8]


def _ensure_trace_id(extra: dict) -> str:
    trace_id = extra.get("trace_id")
    if not trace_id:
        trace_id = new_trace_id()
        extra["trace_id"] = trace_id
    return trace_id


def _format(kind: str, extra: Dict[str, Any]) -> str:
    return kind + " " + " ".join(f"{k}={v}" for k, v in sorted(extra.items()))


def log_attempt(
    trace_id: Optional[str] = None,
    outcome: Optional[str] = None,
    can_invoke: Optional[bool] = None,
    wait_seconds: Optional[int] = None,
    tx_hash: Optional[str] = None,
    block_number: Optional[int] = None,
    error: Optional[str] = None,
    extra: Optional[dict] = None,
) -> None:
    """Log the result of one invocation attempt as key=value pairs."""
    extra = extra or {}
    if trace_id:
        extra["trace_id"] = trace_id
    _ensure_trace_id(extra)
    if outcome:
        extra["outcome"] = outcome
    if can_invoke is not None:
        extra["can_invoke"] = can_invoke
    if wait_seconds is not None:
        extra["wait_seconds"] = wait_seconds
    if tx_hash:
        extra["tx_hash"] = tx_hash
    if block_number is not None:
        extra["block"] = block_number
    if error:
        extra["error"] = repr(error)
    level = logging.WARNING if outcome == "failed" else logging.INFO
    logger.log(level, _format("invocation_attempt", extra))


def log_holder_snapshot(
    label: str,
    holders_count: Optional[int],
    balances: Mapping[str, Any],
    trace_id: Optional[str] = None,
) -> None:
    """Log holder count and one line per holder balance (ether units)."""
    extra: Dict[str, Any] = {"phase": label, "holders_count": holders_count}
    if trace_id:
        extra["trace_id"] = trace_id
    _ensure_trace_id(extra)
    logger.info(_format("holder_snapshot", extra))
    for address, balance in balances.items():
        logger.info("  %s: %s", address, balance)


def log_transaction(
    status: str,
    tx_hash: Optional[str] = None,
    block_number: Optional[int] = None,
    trace_id: Optional[str] = None,
) -> None:
    """Log a transaction lifecycle step (sent, confirmed, reverted)."""
    extra: Dict[str, Any] = {"tx_status": status}
    if trace_id:
        extra["trace_id"] = trace_id
    _ensure_trace_id(extra)
    if tx_hash:
        extra["tx_hash"] = tx_hash
    if block_number is not None:
        extra["block"] = block_number
    logger.info(_format("transaction", extra))
