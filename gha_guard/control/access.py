"""Permission and repository access control for gha-guard.

Two independent checks gate every privileged operation:
- the permission level the operation needs (read/trigger/cancel/admin)
- the repository it targets (blacklist, then whitelist)

Both are pure functions of the configuration loaded at startup.
"""

from typing import Callable

from ..exceptions import (
    AccessDeniedError,
    PermissionDeniedError,
    RepoAccessDeniedError,
)
from ..types import (
    AccessDecision,
    Config,
    DenialCause,
    PermissionLevel,
    PermissionSet,
    RepoScope,
)
from .patterns import matches_any, parse_resource


class AccessController:
    """Decides whether an operation may reach the remote API.

    Example:
        controller = AccessController(
            permissions=PermissionSet(read=True, trigger=True),
            scope=RepoScope(
                whitelist_repos=frozenset({"acme/*"}),
                blacklist_repos=frozenset({"acme/secrets"}),
            ),
        )

        controller.check_permission("trigger")  # OK
        controller.check_repo_access("acme/web")  # OK
        controller.check_repo_access("acme/secrets")  # Raises RepoAccessDeniedError
    """

    def __init__(
        self,
        permissions: PermissionSet | None = None,
        scope: RepoScope | None = None,
        bypass: bool = False,
        on_access_denied: Callable[[AccessDeniedError], None] | None = None,
    ):
        """Initialize the access controller.

        Args:
            permissions: Enabled capability flags.
            scope: Repository whitelist/blacklist.
            bypass: Disable every check. Must be an explicit opt-in.
            on_access_denied: Callback invoked with each denial before it is raised.
        """
        self._permissions = permissions or PermissionSet()
        self._scope = scope or RepoScope()
        self._bypass = bypass
        self._on_access_denied = on_access_denied

    @classmethod
    def from_config(
        cls,
        config: Config,
        on_access_denied: Callable[[AccessDeniedError], None] | None = None,
    ) -> "AccessController":
        return cls(
            permissions=config.permissions.permission_set(),
            scope=config.permissions.repo_scope(),
            bypass=config.bypass_permissions,
            on_access_denied=on_access_denied,
        )

    @property
    def permissions(self) -> PermissionSet:
        return self._permissions

    @property
    def scope(self) -> RepoScope:
        return self._scope

    @property
    def bypass(self) -> bool:
        return self._bypass

    def check_permission(self, level: PermissionLevel | str) -> None:
        """Require a permission level.

        Raises:
            PermissionDeniedError: If the flag is off and bypass is not set.
        """
        if self._bypass:
            return

        if not self._permissions.allows(level):
            self._deny(PermissionDeniedError(level))

    def check_repo_access(self, resource: str) -> None:
        """Require access to a repository.

        Raises:
            MalformedResourceError: If ``resource`` is not ``owner/name``.
            RepoAccessDeniedError: If blacklisted or not whitelisted.
        """
        if self._bypass:
            return

        parse_resource(resource)
        whitelist = self._scope.whitelist_repos
        blacklist = self._scope.blacklist_repos

        # Blacklist always wins
        if blacklist and matches_any(resource, blacklist):
            self._deny(RepoAccessDeniedError(resource, DenialCause.BLACKLISTED))

        # Empty whitelist = all repos allowed
        if not whitelist:
            return

        if not matches_any(resource, whitelist):
            self._deny(RepoAccessDeniedError(resource, DenialCause.NOT_WHITELISTED))

    def authorize(self, level: PermissionLevel | str, resource: str) -> None:
        """Run both checks, permission first."""
        self.check_permission(level)
        self.check_repo_access(resource)

    def decide_permission(self, level: PermissionLevel | str) -> AccessDecision:
        """Non-raising form of :meth:`check_permission`."""
        level = PermissionLevel(level)
        try:
            self.check_permission(level)
        except PermissionDeniedError as e:
            return AccessDecision(allowed=False, reason=str(e), level=level)
        return AccessDecision(allowed=True, reason=self._allow_reason(), level=level)

    def decide_repo_access(self, resource: str) -> AccessDecision:
        """Non-raising form of :meth:`check_repo_access`.

        Malformed identifiers still raise; they are caller errors, not denials.
        """
        try:
            self.check_repo_access(resource)
        except RepoAccessDeniedError as e:
            return AccessDecision(
                allowed=False, reason=str(e), resource=resource, cause=e.cause
            )
        return AccessDecision(allowed=True, reason=self._allow_reason(), resource=resource)

    def _allow_reason(self) -> str:
        return "bypass enabled" if self._bypass else "allowed"

    def _deny(self, error: AccessDeniedError) -> None:
        if self._on_access_denied:
            self._on_access_denied(error)
        raise error
