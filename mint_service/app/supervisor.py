"""Process supervisor: config -> connector -> scheduler + status server, signals, exit code."""

import asyncio
import logging
import signal
import time
from typing import Any, Dict, Optional

from mint_service.config.settings import (
    get_service_config,
    read_config,
    redacted,
    validate_service_config,
)
from mint_service.connector.base import RemoteEndpoint
from mint_service.core.errors import StartupConfigurationError, UnhandledBackgroundError
from mint_service.engine.routine import InvocationRoutine
from mint_service.engine.scheduler import Scheduler
from mint_service.engine.state import StatusState
from mint_service.engine.state_machine import ServiceState, ServiceStateMachine
from mint_service.status_server.app import build_server, create_app

logger = logging.getLogger(__name__)

_SERVER_READY_TIMEOUT = 10.0


class MintService:
    """Single-process minting service: periodic mintAndDistribute plus GET / status server."""

    def __init__(
        self,
        config: dict,
        config_path: Optional[str] = None,
        endpoint: Optional[RemoteEndpoint] = None,
    ):
        # 1. Config (raises StartupConfigurationError)
        self.config = config
        self._config_path = config_path
        self.settings: Dict[str, Any] = validate_service_config(get_service_config(config))

        # 2. Remote endpoint
        if endpoint is None:
            from mint_service.connector.contract import ContractConnector

            try:
                endpoint = ContractConnector(
                    rpc_url=self.settings["rpc_url"],
                    contract_address=self.settings["contract_address"],
                    private_key=self.settings["private_key"],
                    confirmation_timeout=self.settings["confirmation_timeout_sec"],
                    poll_latency=self.settings["poll_latency_sec"],
                )
            except Exception as e:
                # malformed private key (eth_account) or RPC URL
                raise StartupConfigurationError(f"Invalid signer configuration: {e}") from e
        self.endpoint = endpoint

        # 3. Object references
        self.state = StatusState()
        self.routine = InvocationRoutine(
            self.endpoint, self.state, capture_holders=self.settings["capture_holders"]
        )
        self.scheduler = Scheduler(
            self.routine,
            interval_sec=self.settings["interval_minutes"] * 60.0,
            mode=self.settings["schedule_mode"],
            on_first_attempt=self._log_running,
        )
        self.app = create_app(self.endpoint, self.state, self.settings["contract_address"])
        self.server = build_server(self.app, self.settings["host"], self.settings["port"])
        self._fsm = ServiceStateMachine()
        self._stop_event = asyncio.Event()
        self._server_task: Optional[asyncio.Task] = None
        self._scheduler_task: Optional[asyncio.Task] = None
        self.exit_code = 0

    @property
    def current_state(self) -> ServiceState:
        return self._fsm.current

    def log_startup(self) -> None:
        logger.info("Minting service started")
        logger.info("Contract address: %s", self.settings["contract_address"])
        logger.info(
            "Mint interval: %g minutes (mode=%s)",
            self.settings["interval_minutes"],
            self.settings["schedule_mode"],
        )
        logger.info("Config: %s (%s)", redacted(self.settings), self._config_path or "default")

    def _log_running(self, delay: float) -> None:
        logger.info("Service running. Next mint scheduled in %g minutes.", round(delay / 60.0, 2))

    def _on_loop_exception(self, loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
        """Log unobserved background failures; the service keeps running."""
        exc = context.get("exception")
        err = UnhandledBackgroundError(context.get("message") or repr(exc))
        if exc is not None:
            logger.error("Unhandled rejection: %s: %s", err, exc, exc_info=exc)
        else:
            logger.error("Unhandled rejection: %s", err)

    # --- State handlers: each runs its logic and returns the next state ---

    async def _handle_idle(self) -> ServiceState:
        self.log_startup()
        return ServiceState.CONNECTING

    async def _handle_connecting(self) -> ServiceState:
        """CONNECTING: RPC + contract check. Failure is fatal (exit 1)."""
        ok = await self.endpoint.connect()
        if not ok:
            logger.error("Fatal error: could not reach RPC endpoint or contract; exiting")
            self.exit_code = 1
            await self.endpoint.disconnect()
            return ServiceState.STOPPED
        if self._stop_event.is_set():
            return ServiceState.STOPPING
        return ServiceState.RUNNING

    async def _wait_server_started(self) -> None:
        start = time.monotonic()
        while not self.server.started:
            if self._server_task is None or self._server_task.done():
                return
            if time.monotonic() - start > _SERVER_READY_TIMEOUT:
                logger.warning("Status server not started after %.0fs", _SERVER_READY_TIMEOUT)
                return
            await asyncio.sleep(0.05)
        logger.info("Health check server running on port %s", self.settings["port"])

    async def _handle_running(self) -> ServiceState:
        """RUNNING: status server and scheduler run concurrently until stop or a task ends."""
        self._server_task = asyncio.create_task(self.server.serve(), name="status-server")
        self._scheduler_task = asyncio.create_task(self.scheduler.run(), name="mint-scheduler")
        stop_waiter = asyncio.create_task(self._stop_event.wait(), name="stop-waiter")
        await self._wait_server_started()
        done, _ = await asyncio.wait(
            {self._server_task, self._scheduler_task, stop_waiter},
            return_when=asyncio.FIRST_COMPLETED,
        )
        if stop_waiter not in done:
            stop_waiter.cancel()
            for task in done:
                if task.exception() is not None:
                    logger.error("Task %s failed: %s", task.get_name(), task.exception())
                    self.exit_code = 1
                else:
                    logger.warning("Task %s ended unexpectedly", task.get_name())
        return ServiceState.STOPPING

    async def _handle_stopping(self) -> ServiceState:
        """STOPPING: cancel pending timer, drain HTTP, give the in-flight attempt a grace period."""
        logger.info("Service shutting down...")
        self.scheduler.stop()
        self.server.should_exit = True
        if self._server_task is not None:
            try:
                await self._server_task
            except Exception as e:
                logger.debug("Status server task raised on shutdown: %s", e)
        if self._scheduler_task is not None and not self._scheduler_task.done():
            grace = self.settings["attempt_grace_sec"]
            if self.scheduler.in_flight:
                logger.info("Waiting up to %.0fs for in-flight mint attempt", grace)
            try:
                await asyncio.wait_for(asyncio.shield(self._scheduler_task), timeout=grace)
            except asyncio.TimeoutError:
                logger.warning("In-flight mint attempt still running after %.0fs; cancelling", grace)
                self._scheduler_task.cancel()
                try:
                    await self._scheduler_task
                except asyncio.CancelledError:
                    pass
        await self.endpoint.disconnect()
        return ServiceState.STOPPED

    def _get_state_handlers(self) -> dict:
        """Map state -> async handler that returns next state."""
        return {
            ServiceState.IDLE: self._handle_idle,
            ServiceState.CONNECTING: self._handle_connecting,
            ServiceState.RUNNING: self._handle_running,
            ServiceState.STOPPING: self._handle_stopping,
        }

    async def run(self) -> int:
        """State-driven loop. Returns the process exit code."""
        asyncio.get_running_loop().set_exception_handler(self._on_loop_exception)
        handlers = self._get_state_handlers()
        try:
            while not self._fsm.is_stopped():
                current = self._fsm.current
                handler = handlers.get(current)
                if handler is None:
                    logger.warning("No handler for state %s; stopping", current.value)
                    break
                try:
                    next_state = await handler()
                    self._fsm.transition(next_state)
                except Exception as e:
                    logger.exception("Handler %s raised: %s", current.value, e)
                    self.exit_code = 1
                    if self._fsm.can_transition_to(ServiceState.STOPPING):
                        self._fsm.transition(ServiceState.STOPPING)
                    else:
                        self._fsm.transition(ServiceState.STOPPED)
        finally:
            if not self._fsm.is_stopped():
                if self._fsm.current != ServiceState.STOPPING:
                    self._fsm.transition(ServiceState.STOPPING)
                try:
                    await self._handle_stopping()
                except Exception as e:
                    logger.exception("Cleanup (_handle_stopping) failed: %s", e)
                self._fsm.transition(ServiceState.STOPPED)
        return self.exit_code

    def stop(self) -> None:
        """Request graceful shutdown (signal handler entry point)."""
        self._stop_event.set()
        self.scheduler.stop()
        if self._fsm.current == ServiceState.IDLE:
            self._fsm.request_stop()


async def _run_service_main(config_path: Optional[str] = None) -> int:
    """Load config, register signals, run MintService. SIGTERM/SIGINT call service.stop()."""
    try:
        config, resolved_path = read_config(config_path)
        service = MintService(config, config_path=resolved_path)
    except StartupConfigurationError as e:
        logger.error("Fatal error: %s", e)
        return 1
    loop = asyncio.get_running_loop()

    def _on_stop_signal(*_args: Any) -> None:
        logger.info("Received SIGTERM/SIGINT; requesting stop")
        service.stop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, _on_stop_signal)
        except (NotImplementedError, OSError):
            pass  # add_signal_handler not supported on Windows
    return await service.run()


def run_service(config_path: Optional[str] = None) -> int:
    """Entry: run the minting service until SIGTERM/SIGINT. Returns the exit code."""
    return asyncio.run(_run_service_main(config_path))
