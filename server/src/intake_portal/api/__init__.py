"""FastAPI routes and middleware for the Intake Portal."""

from intake_portal.api.auth import Auth, IdentityResolver
from intake_portal.api.middleware import RouteAuthorizationMiddleware
from intake_portal.api.routes import router

__all__ = ["Auth", "IdentityResolver", "RouteAuthorizationMiddleware", "router"]
