"""Route authorization middleware.

Applies the route authorization engine to every navigation request that is
not an API or static asset path.
"""

import logging
from urllib.parse import unquote

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import PlainTextResponse, RedirectResponse

from intake_portal.api import auth
from intake_portal.manager.route_guard import authorize, is_excluded_path, match_rule
from intake_portal.models.access import Forbidden, RedirectTo
from intake_portal.models.identity import Role

logger = logging.getLogger(__name__)


def rule_path(request: Request) -> str:
    """The request path as rules see it.

    Each raw segment is percent-decoded on its own, and a slash decoded from
    ``%2F`` stays inside its segment as ``%2F``. So ``/firms/acme%2Flaw/admin``
    is still a firm-admin path, while ``/%61dmin`` is ``/admin``.
    """
    raw = request.scope.get("raw_path")
    if not raw:
        return request.url.path
    raw_path = raw.decode("latin-1").partition("?")[0]
    return "/".join(
        unquote(segment).replace("/", "%2F") for segment in raw_path.split("/")
    )


class RouteAuthorizationMiddleware(BaseHTTPMiddleware):
    """Redirect anonymous callers and reject insufficient roles."""

    async def dispatch(self, request: Request, call_next) -> Response:
        path = rule_path(request)
        if is_excluded_path(path) or match_rule(path) is None:
            return await call_next(request)

        resolver = auth.get_identity_resolver()
        identity = await resolver.resolve(auth.extract_credential(request))
        request.state.identity = identity

        async def role_lookup() -> Role | None:
            # Only reached for role-gated rules, where identity is set
            return await auth.get_db_client().get_user_role(identity.user_id)

        decision = await authorize(path, identity, role_lookup)

        if isinstance(decision, RedirectTo):
            logger.debug(f"Redirecting anonymous request for {path} to {decision.target}")
            return RedirectResponse(
                url=decision.target,
                status_code=status.HTTP_307_TEMPORARY_REDIRECT,
            )

        if isinstance(decision, Forbidden):
            logger.info(f"Forbidden {request.method} {path}: {decision.reason}")
            return PlainTextResponse("Forbidden", status_code=status.HTTP_403_FORBIDDEN)

        return await call_next(request)
