"""Route rule and authorization decision types.

Access requirements are a closed set of variants so that "a role set
implies authentication" holds by construction: ``RequireRole`` has no way
to opt out of authentication.
"""

import re
from dataclasses import dataclass

from intake_portal.models.identity import Role


@dataclass(frozen=True)
class Public:
    """No requirement."""


@dataclass(frozen=True)
class RequireAuth:
    """Caller must be authenticated."""


@dataclass(frozen=True)
class RequireRole:
    """Caller must be authenticated and hold one of ``roles``."""

    roles: frozenset[Role]

    def __post_init__(self) -> None:
        if not self.roles:
            raise ValueError("RequireRole needs at least one role")


Access = Public | RequireAuth | RequireRole


@dataclass(frozen=True)
class RouteRule:
    """A compiled (path pattern, access requirement) pair."""

    pattern: re.Pattern[str]
    access: Access

    @classmethod
    def compile(cls, pattern: str, access: Access) -> "RouteRule":
        return cls(pattern=re.compile(pattern), access=access)

    def matches(self, path: str) -> bool:
        return self.pattern.match(path) is not None


@dataclass(frozen=True)
class Allow:
    """Request may proceed."""


@dataclass(frozen=True)
class RedirectTo:
    """Caller is anonymous on a protected route; send them elsewhere."""

    target: str = "/"


@dataclass(frozen=True)
class Forbidden:
    """Caller is authenticated but lacks the required role."""

    reason: str = "insufficient role"


Decision = Allow | RedirectTo | Forbidden
