#!/usr/bin/env python3
"""
Read-only probe of the configured contract: connectivity, canMint, timeUntilNextMint, holders.
Never sends a transaction.
Run with: python scripts/check_contract.py [config_path]
Use --debug for verbose web3 logs.
"""

import asyncio
import logging
import os
import sys

_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _PROJECT_ROOT)
os.chdir(_PROJECT_ROOT)

# Parse args before imports
debug = "--debug" in sys.argv
args = [a for a in sys.argv[1:] if not a.startswith("--")]
config_path = args[0] if args else None
if config_path and not os.path.isabs(config_path):
    config_path = os.path.join(_PROJECT_ROOT, config_path)

logging.basicConfig(
    level=logging.DEBUG if debug else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
if not debug:
    logging.getLogger("web3").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


async def main() -> int:
    from mint_service.config.settings import get_service_config, read_config, validate_service_config
    from mint_service.connector.contract import ContractConnector
    from mint_service.core.errors import MintServiceError

    try:
        config, _ = read_config(config_path)
        cfg = validate_service_config(get_service_config(config))
    except MintServiceError as e:
        logger.error("Config %s: %s", config_path or "default", e)
        return 1
    connector = ContractConnector(
        rpc_url=cfg["rpc_url"],
        contract_address=cfg["contract_address"],
        private_key=cfg["private_key"],
    )

    logger.info("Step 1: connect()...")
    if not await connector.connect():
        logger.error("Connect failed")
        return 1
    try:
        logger.info("Step 2: canMint()...")
        can_mint = await connector.can_invoke()
        logger.info("canMint: %s", can_mint)
        if not can_mint:
            logger.info("timeUntilNextMint: %s seconds", await connector.time_until_next_allowed())

        logger.info("Step 3: holders...")
        logger.info("Holders count: %s", await connector.holder_count())
        for holder in await connector.list_holders():
            logger.info("  %s: %s", holder, await connector.balance_of(holder))
    except MintServiceError as e:
        logger.error("Query failed: %s", e)
        return 1
    finally:
        logger.info("Step 4: disconnect()...")
        await connector.disconnect()
    logger.info("Done.")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
