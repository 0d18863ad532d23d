"""Retry scheduling primitives."""

from .backoff import (
    BackoffScheduler,
    DelayFn,
    ScheduledRetry,
    constant_delay,
    exponential_delay,
    linear_delay,
)

__all__ = [
    "BackoffScheduler",
    "DelayFn",
    "ScheduledRetry",
    "constant_delay",
    "exponential_delay",
    "linear_delay",
]
