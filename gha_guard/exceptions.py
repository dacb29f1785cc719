"""Custom exceptions for gha-guard."""

import math

from .types import DenialCause, PermissionLevel


class GhaGuardError(Exception):
    """Base exception for all gha-guard errors."""

    pass


# =============================================================================
# Access Control Exceptions
# =============================================================================


class AccessDeniedError(GhaGuardError):
    """Base exception for requests rejected before any remote call."""

    pass


class PermissionDeniedError(AccessDeniedError):
    """Raised when a permission level is not enabled and bypass is off."""

    def __init__(self, level: PermissionLevel | str):
        self.level = PermissionLevel(level)
        super().__init__(
            f'Permission denied: "{self.level.value}" access is not enabled. '
            f"Enable it in config or use --bypass-permissions."
        )


class RepoAccessDeniedError(AccessDeniedError):
    """Raised when a repository is blacklisted or missing from the whitelist."""

    def __init__(self, resource: str, cause: DenialCause | str):
        self.resource = resource
        self.cause = DenialCause(cause)
        if self.cause == DenialCause.BLACKLISTED:
            detail = "is blacklisted"
        else:
            detail = "is not in the whitelist"
        super().__init__(f'Access denied: repository "{resource}" {detail}.')


class MalformedResourceError(AccessDeniedError):
    """Raised when a repository identifier is not in owner/name form."""

    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(f'Invalid repo format: "{resource}". Expected "owner/repo"')


# =============================================================================
# Resilience Exceptions
# =============================================================================


class DeadlineExceededError(GhaGuardError):
    """Raised when the deadline guard stops waiting for an operation."""

    def __init__(self, timeout_ms: float, message: str | None = None):
        self.timeout_ms = timeout_ms
        self.message = message
        super().__init__(message or f"Operation timed out after {timeout_ms:g}ms")


class CircuitOpenError(GhaGuardError):
    """Raised when circuit breaker is open."""

    def __init__(self, breaker_id: str, retry_after_ms: float):
        self.breaker_id = breaker_id
        self.retry_after_ms = retry_after_ms
        retry_after_s = math.ceil(retry_after_ms / 1000)
        super().__init__(
            f"Circuit breaker '{breaker_id}' is OPEN: too many failures. "
            f"Retry after {retry_after_s}s"
        )


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigError(GhaGuardError):
    """Raised when configuration cannot be loaded or is invalid."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        prefix = f"[{path}] " if path else ""
        super().__init__(f"{prefix}{message}")
