"""gha-guard Control Layer.

Decides whether a request may reach the remote API, and makes sure it
finishes or fails in bounded time.

Components:
- patterns: owner/name scope pattern matching
- access: Permission levels and repository whitelist/blacklist
- deadline: Deadline-bounded awaiting
- circuit_breaker: Fail fast after repeated remote failures
- rate_limit: Quota header parsing
"""

from .access import AccessController
from .circuit_breaker import CircuitBreaker, CircuitBreakerRegistry
from .deadline import DeadlineGuard, with_deadline
from .patterns import matches, matches_any, parse_resource
from .rate_limit import parse_rate_limit_headers

__all__ = [
    # Patterns
    "matches",
    "matches_any",
    "parse_resource",
    # Access control
    "AccessController",
    # Deadlines
    "DeadlineGuard",
    "with_deadline",
    # Circuit breakers
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    # Rate limits
    "parse_rate_limit_headers",
]
