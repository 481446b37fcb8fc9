"""
Historical replay: merge engine and replay-backed exchange provider.
"""

from .exchange import DEFAULT_BALANCE, Simulation
from .replay import NOT_STARTED, ReplayEngine, ReplayFault, ReplayStatus, validate_pairs

__all__ = [
    "ReplayEngine",
    "ReplayStatus",
    "ReplayFault",
    "NOT_STARTED",
    "validate_pairs",
    "Simulation",
    "DEFAULT_BALANCE",
]
