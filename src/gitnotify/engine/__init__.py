"""Polling and reconciliation of GitHub notifications against the local inbox."""

from .engine import (
    MAX_INDIVIDUAL_ALERTS,
    EngineState,
    Outcome,
    PollState,
    ReconciliationEngine,
    new_items,
)
from .scheduler import PollScheduler

__all__ = [
    "MAX_INDIVIDUAL_ALERTS",
    "EngineState",
    "Outcome",
    "PollScheduler",
    "PollState",
    "ReconciliationEngine",
    "new_items",
]
