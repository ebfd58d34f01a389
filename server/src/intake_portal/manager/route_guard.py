"""Route authorization engine.

Decides, per navigation request, whether the caller may proceed, must be
redirected to the public landing page, or is forbidden. Missing
authentication redirects; insufficient privilege rejects.

Rules are evaluated in declaration order and the first match wins, so more
specific patterns must come before the general ones they overlap with
(``/firms/{firm}/admin`` before ``/firms``).

Whether a firm_admin administers the particular firm in
``/firms/{firm}/admin`` is decided by the page itself, not here.
"""

import logging
import re
from collections.abc import Awaitable, Callable

from intake_portal.models.access import (
    Allow,
    Decision,
    Forbidden,
    Public,
    RedirectTo,
    RequireAuth,
    RequireRole,
    RouteRule,
)
from intake_portal.models.identity import Identity, Role

logger = logging.getLogger(__name__)

RoleLookup = Callable[[], Awaitable[Role | None]]

LANDING_PATH = "/"

_ADMINS = frozenset({Role.SITE_ADMIN, Role.FIRM_ADMIN})

ROUTE_RULES: tuple[RouteRule, ...] = (
    RouteRule.compile(r"^/forms(?:/.*)?$", RequireAuth()),
    RouteRule.compile(r"^/profile(?:/.*)?$", RequireAuth()),
    RouteRule.compile(r"^/setup-admin(?:/.*)?$", RequireAuth()),
    RouteRule.compile(r"^/firms/[^/]+/admin(?:/.*)?$", RequireRole(_ADMINS)),
    RouteRule.compile(r"^/firm-admin(?:/.*)?$", RequireRole(_ADMINS)),
    RouteRule.compile(r"^/admin(?:/.*)?$", RequireRole(frozenset({Role.SITE_ADMIN}))),
    RouteRule.compile(r"^/firms(?:/.*)?$", RequireAuth()),
)

_EXCLUDED_PREFIXES = ("/_next/static", "/_next/image", "/static", "/favicon.ico")
_EXCLUDED_SEGMENTS = ("/api",)
_ASSET_SUFFIX = re.compile(r"\.(?:svg|png|jpg|jpeg|gif|webp)$", re.IGNORECASE)


def is_excluded_path(path: str) -> bool:
    """True for API and static asset paths, which never reach the engine."""
    for segment in _EXCLUDED_SEGMENTS:
        if path == segment or path.startswith(segment + "/"):
            return True
    if path.startswith(_EXCLUDED_PREFIXES):
        return True
    return _ASSET_SUFFIX.search(path) is not None


def match_rule(path: str, rules: tuple[RouteRule, ...] = ROUTE_RULES) -> RouteRule | None:
    """Return the first rule matching ``path``, or None."""
    for rule in rules:
        if rule.matches(path):
            return rule
    return None


async def authorize(
    path: str,
    identity: Identity | None,
    role_lookup: RoleLookup,
    rules: tuple[RouteRule, ...] = ROUTE_RULES,
) -> Decision:
    """Decide whether a request for ``path`` may proceed.

    Args:
        path: Request path (no query string)
        identity: The caller, or None when anonymous
        role_lookup: Fetches the caller's role; only awaited for role-gated rules
        rules: Ordered rule table

    Returns:
        Allow, RedirectTo("/") or Forbidden
    """
    rule = match_rule(path, rules)
    if rule is None or isinstance(rule.access, Public):
        return Allow()

    if identity is None:
        return RedirectTo(LANDING_PATH)

    if isinstance(rule.access, RequireAuth):
        return Allow()

    try:
        role = await role_lookup()
    except Exception as e:
        logger.warning(f"Role lookup failed for {identity.user_id} on {path}: {e}")
        return Forbidden("role lookup failed")

    if role is None:
        logger.info(f"No profile for {identity.user_id}, denying {path}")
        return Forbidden("no profile")

    if role not in rule.access.roles:
        logger.info(f"Role {role.value} not permitted on {path}")
        return Forbidden("insufficient role")

    return Allow()
