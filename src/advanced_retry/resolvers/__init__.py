"""
Error resolvers - the chain elements deciding whether and how to retry.

This module provides:
- RetryContext / ErrorResolution: Data flowing through the chain
- ErrorResolver: The resolver call protocol
- DelayedResolver: Delay-then-retry with linear backoff and a cap
- CustomResolver: Caller-computed resolution with context rewriting
"""

from advanced_retry.resolvers.base import (
    BaseResolver,
    ErrorResolution,
    ErrorResolver,
    ResolutionKind,
    RetryContext,
)
from advanced_retry.resolvers.custom import (
    CustomResolution,
    CustomResolver,
    custom_resolver,
)
from advanced_retry.resolvers.delayed import (
    DelayedResolver,
    DelayPolicy,
    delayed_resolver,
)

__all__ = [
    "BaseResolver",
    "CustomResolution",
    "CustomResolver",
    "DelayPolicy",
    "DelayedResolver",
    "ErrorResolution",
    "ErrorResolver",
    "ResolutionKind",
    "RetryContext",
    "custom_resolver",
    "delayed_resolver",
]
