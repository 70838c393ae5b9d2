"""Completion endpoint client and request throttle."""

from anima.providers.openai_compatible import CompletionClient
from anima.providers.throttle import RequestThrottle, ThrottleStats

__all__ = ["CompletionClient", "RequestThrottle", "ThrottleStats"]
