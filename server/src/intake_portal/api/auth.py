"""Request authentication.

Resolves the session credential sent with a request into an Identity via
Supabase Auth, and builds the per-request RequestContext used by the API
routes.
"""

import logging
from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request, status

from intake_portal.config import get_settings
from intake_portal.db.client import DatabaseClient
from intake_portal.models.identity import Identity, RequestContext

logger = logging.getLogger(__name__)

_db_client: DatabaseClient | None = None
_identity_resolver: "IdentityResolver | None" = None


class IdentityResolver:
    """Turns a session credential into an Identity.

    Any provider error is treated as anonymous.
    """

    def __init__(self, client: Any) -> None:
        """Initialize with a Supabase client (anything exposing ``auth.get_user``)."""
        self._client = client

    async def resolve(self, credential: str | None) -> Identity | None:
        if not credential:
            return None

        try:
            response = self._client.auth.get_user(credential)
        except Exception as e:
            logger.warning(f"Session lookup failed, treating as anonymous: {e}")
            return None

        user = getattr(response, "user", None)
        if user is None:
            return None
        return Identity(user_id=str(user.id), email=getattr(user, "email", None))


def get_db_client() -> DatabaseClient:
    """Get or create database client instance."""
    global _db_client
    if _db_client is None:
        _db_client = DatabaseClient()
    return _db_client


def get_identity_resolver() -> IdentityResolver:
    """Get or create identity resolver instance."""
    global _identity_resolver
    if _identity_resolver is None:
        _identity_resolver = IdentityResolver(get_db_client().client)
    return _identity_resolver


def extract_credential(request: Request) -> str | None:
    """Read the access token from the Authorization header or session cookie."""
    authorization = request.headers.get("authorization")
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()

    return request.cookies.get(get_settings().session_cookie_name) or None


async def get_request_context(
    request: Request,
    db: Annotated[DatabaseClient, Depends(get_db_client)],
    resolver: Annotated[IdentityResolver, Depends(get_identity_resolver)],
) -> RequestContext:
    """Build the caller's context for an API request.

    Raises:
        HTTPException: 401 for anonymous callers, 403 when the caller has
            no profile or it cannot be loaded
    """
    identity = await resolver.resolve(extract_credential(request))
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    try:
        profile = await db.get_user_profile(identity.user_id)
    except Exception as e:
        logger.warning(f"Profile lookup failed for {identity.user_id}: {e}")
        profile = None

    if profile is None:
        logger.warning(f"No profile for authenticated user {identity.user_id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User profile not found",
        )

    logger.debug(f"Auth context for user={identity.user_id} role={profile.role.value}")
    return RequestContext(identity=identity, profile=profile)


# Type aliases for dependency injection
Auth = Annotated[RequestContext, Depends(get_request_context)]
