"""
Readiness component for the Page Renderer service.

Decides when a loaded page is ready to be captured.
"""
from .detector import (
    DefaultDomReady,
    FixedDelay,
    ReadinessResult,
    ReadinessStrategy,
    TargetElementSize,
    TextPoll,
    select_readiness_strategy,
)
from .retry import BoundedRetry, CancellationToken, RetriesExhausted, RetryableError

__all__ = [
    "DefaultDomReady",
    "FixedDelay",
    "ReadinessResult",
    "ReadinessStrategy",
    "TargetElementSize",
    "TextPoll",
    "select_readiness_strategy",
    "BoundedRetry",
    "CancellationToken",
    "RetriesExhausted",
    "RetryableError",
]
