"""Core types and data models for gha-guard."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enums
# =============================================================================


class PermissionLevel(str, Enum):
    """Capability classes gating remote operations. Levels are unordered."""

    READ = "read"
    TRIGGER = "trigger"
    CANCEL = "cancel"
    ADMIN = "admin"


class DenialCause(str, Enum):
    """Why a repository was refused."""

    BLACKLISTED = "blacklisted"
    NOT_WHITELISTED = "not_whitelisted"


class TimeoutClass(str, Enum):
    """Latency profile of a remote call."""

    API = "api"  # Metadata and control calls
    LOGS = "logs"  # Bulk log retrieval


class CircuitState(str, Enum):
    """State of a circuit breaker."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing fast until cooldown elapses


# =============================================================================
# Access Control
# =============================================================================


class PermissionSet(BaseModel):
    """Independent capability flags. Only ``read`` is on by default."""

    model_config = ConfigDict(frozen=True)

    read: bool = True
    trigger: bool = False
    cancel: bool = False
    admin: bool = False

    def allows(self, level: PermissionLevel | str) -> bool:
        return bool(getattr(self, PermissionLevel(level).value))


class RepoScope(BaseModel):
    """Whitelist and blacklist of repository patterns."""

    model_config = ConfigDict(frozen=True)

    whitelist_repos: frozenset[str] = Field(default_factory=frozenset)
    blacklist_repos: frozenset[str] = Field(default_factory=frozenset)


class AccessDecision(BaseModel):
    """Outcome of one access check."""

    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: str
    level: PermissionLevel | None = None
    resource: str | None = None
    cause: DenialCause | None = None

    def __bool__(self) -> bool:
        return self.allowed


# =============================================================================
# Rate Limits
# =============================================================================


class RateLimitSnapshot(BaseModel):
    """Point-in-time read of the remote quota."""

    model_config = ConfigDict(frozen=True)

    remaining: int
    limit: int
    reset_at: datetime

    @property
    def used(self) -> int:
        return max(0, self.limit - self.remaining)

    @property
    def exhausted(self) -> bool:
        return self.remaining <= 0

    def retry_after_ms(self, now: datetime | None = None) -> float:
        """Milliseconds until the quota resets, or 0 if quota remains."""
        if not self.exhausted:
            return 0.0
        now = now or datetime.now(timezone.utc)
        return max(0.0, (self.reset_at - now).total_seconds() * 1000)


# =============================================================================
# Configuration
# =============================================================================


class AuthConfig(BaseModel):
    """Where the API token comes from."""

    token_env: str = Field(default="GITHUB_TOKEN", description="Env var holding the token")


class PermissionsConfig(BaseModel):
    """Permission flags and repository scope, as written in the config file."""

    read: bool = True
    trigger: bool = False
    cancel: bool = False
    admin: bool = False
    whitelist_repos: list[str] = Field(default_factory=list)
    blacklist_repos: list[str] = Field(default_factory=list)

    def permission_set(self) -> PermissionSet:
        return PermissionSet(
            read=self.read, trigger=self.trigger, cancel=self.cancel, admin=self.admin
        )

    def repo_scope(self) -> RepoScope:
        return RepoScope(
            whitelist_repos=frozenset(self.whitelist_repos),
            blacklist_repos=frozenset(self.blacklist_repos),
        )


class NeverhangConfig(BaseModel):
    """Deadlines in milliseconds per timeout class."""

    api_timeout: int = Field(default=30000, gt=0, description="Metadata/control call bound")
    log_timeout: int = Field(default=60000, gt=0, description="Log retrieval bound")

    def bound_for(self, timeout_class: TimeoutClass | str) -> int:
        if TimeoutClass(timeout_class) == TimeoutClass.LOGS:
            return self.log_timeout
        return self.api_timeout


class CircuitBreakerConfig(BaseModel):
    """Configuration for a circuit breaker."""

    threshold: int = Field(default=3, ge=1, description="Failures before opening")
    failure_reset_ms: int = Field(
        default=60000, ge=0, description="Gap after which failures stop accumulating"
    )
    cooldown_ms: int = Field(default=300000, ge=0, description="Minimum open duration")


class Config(BaseModel):
    """Complete runtime configuration."""

    auth: AuthConfig = Field(default_factory=AuthConfig)
    permissions: PermissionsConfig = Field(default_factory=PermissionsConfig)
    neverhang: NeverhangConfig = Field(default_factory=NeverhangConfig)
    circuit_breaker: CircuitBreakerConfig = Field(default_factory=CircuitBreakerConfig)
    bypass_permissions: bool = False
