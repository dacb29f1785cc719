"""gha-guard - Access control and resilience for agent-driven GitHub Actions calls.

Usage:
    from gha_guard import Guard, PermissionLevel, load_config

    guard = Guard(load_config())
    result = await guard.call(
        lambda: client.trigger_workflow("acme/web", "ci.yml", ref="main"),
        repo="acme/web",
        level=PermissionLevel.TRIGGER,
    )

Building blocks:
    from gha_guard import AccessController, CircuitBreaker, with_deadline
"""

__version__ = "0.1.0"

from .config import load_config, resolve_token
from .guard import CallRecord, Guard, GuardedResult

# Types
from .types import (
    AccessDecision,
    AuthConfig,
    CircuitBreakerConfig,
    CircuitState,
    Config,
    DenialCause,
    NeverhangConfig,
    PermissionLevel,
    PermissionSet,
    PermissionsConfig,
    RateLimitSnapshot,
    RepoScope,
    TimeoutClass,
)

# Exceptions
from .exceptions import (
    AccessDeniedError,
    CircuitOpenError,
    ConfigError,
    DeadlineExceededError,
    GhaGuardError,
    MalformedResourceError,
    PermissionDeniedError,
    RepoAccessDeniedError,
)

# Control Layer
from .control import (
    AccessController,
    CircuitBreaker,
    CircuitBreakerRegistry,
    DeadlineGuard,
    matches,
    matches_any,
    parse_rate_limit_headers,
    parse_resource,
    with_deadline,
)

from .utils import StructuredLogger, configure_logging, format_duration, get_logger, status_icon

__all__ = [
    "__version__",
    # Entry points
    "Guard",
    "GuardedResult",
    "CallRecord",
    "load_config",
    "resolve_token",
    # Types
    "AccessDecision",
    "AuthConfig",
    "CircuitBreakerConfig",
    "CircuitState",
    "Config",
    "DenialCause",
    "NeverhangConfig",
    "PermissionLevel",
    "PermissionSet",
    "PermissionsConfig",
    "RateLimitSnapshot",
    "RepoScope",
    "TimeoutClass",
    # Exceptions
    "GhaGuardError",
    "AccessDeniedError",
    "PermissionDeniedError",
    "RepoAccessDeniedError",
    "MalformedResourceError",
    "DeadlineExceededError",
    "CircuitOpenError",
    "ConfigError",
    # Control Layer
    "AccessController",
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "DeadlineGuard",
    "with_deadline",
    "matches",
    "matches_any",
    "parse_resource",
    "parse_rate_limit_headers",
    # Utils
    "configure_logging",
    "get_logger",
    "StructuredLogger",
    "format_duration",
    "status_icon",
]
