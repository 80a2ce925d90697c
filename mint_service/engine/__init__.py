"""Mint engine: status state, invocation routine, scheduler, lifecycle state machine."""

from .state import StatusSnapshot, StatusState
from .routine import AttemptOutcome, HolderSnapshot, InvocationAttempt, InvocationRoutine
from .scheduler import Scheduler
from .state_machine import ServiceState, ServiceStateMachine

__all__ = [
    "StatusState",
    "StatusSnapshot",
    "AttemptOutcome",
    "HolderSnapshot",
    "InvocationAttempt",
    "InvocationRoutine",
    "Scheduler",
    "ServiceState",
    "ServiceStateMachine",
]
