"""Service lifecycle: IDLE -> CONNECTING -> RUNNING -> STOPPING -> STOPPED.

- IDLE -> CONNECTING: startup (config already validated)
- CONNECTING -> RUNNING: RPC reachable and contract code present
- CONNECTING -> STOPPED: connectivity failure (fatal, exit 1)
- RUNNING -> STOPPING: SIGTERM/SIGINT or server/scheduler task ended
- STOPPING -> STOPPED: tasks drained, connector closed
"""

import enum
import logging

logger = logging.getLogger(__name__)


class ServiceState(str, enum.Enum):
    """Mint service lifecycle states."""

    IDLE = "idle"
    CONNECTING = "connecting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


# Valid transitions: from_state -> set of allowed to_states
_TRANSITIONS: dict[ServiceState, set[ServiceState]] = {
    ServiceState.IDLE: {ServiceState.CONNECTING, ServiceState.STOPPED},
    ServiceState.CONNECTING: {ServiceState.RUNNING, ServiceState.STOPPING, ServiceState.STOPPED},
    ServiceState.RUNNING: {ServiceState.STOPPING},
    ServiceState.STOPPING: {ServiceState.STOPPED},
    ServiceState.STOPPED: set(),
}


class ServiceStateMachine:
    """Manages service lifecycle state and transitions."""

    def __init__(self):
        self._current = ServiceState.IDLE

    @property
    def current(self) -> ServiceState:
        return self._current

    def can_transition_to(self, to_state: ServiceState) -> bool:
        """Check if transition from current state to to_state is valid."""
        allowed = _TRANSITIONS.get(self._current, set())
        return to_state in allowed

    def transition(self, to_state: ServiceState) -> bool:
        """Move to to_state if allowed; an invalid transition is logged and refused."""
        if not self.can_transition_to(to_state):
            logger.warning(
                "Invalid transition: %s -> %s (allowed: %s)",
                self._current.value,
                to_state.value,
                sorted(s.value for s in _TRANSITIONS.get(self._current, set())),
            )
            return False
        logger.info("Service state: %s -> %s", self._current.value, to_state.value)
        self._current = to_state
        return True

    def is_stopped(self) -> bool:
        return self._current == ServiceState.STOPPED

    def request_stop(self) -> bool:
        """RUNNING/CONNECTING -> STOPPING, IDLE -> STOPPED. Returns True if a transition applied."""
        if self._current in (ServiceState.RUNNING, ServiceState.CONNECTING):
            return self.transition(ServiceState.STOPPING)
        if self._current == ServiceState.IDLE:
            return self.transition(ServiceState.STOPPED)
        return False
