"""Timeout policy, confirmation poller and retry controller."""

from .poller import PredicateError, wait_until
from .retry import AttemptPlan, RetryController
from .timeouts import LatencySource, TimeoutBudget, compute_budget

__all__ = [
    "AttemptPlan",
    "LatencySource",
    "PredicateError",
    "RetryController",
    "TimeoutBudget",
    "compute_budget",
    "wait_until",
]
