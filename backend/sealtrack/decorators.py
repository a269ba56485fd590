# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .permissions import AUTH_ENTRY_POINT
from .services import entity_store, get_auth_provider, get_document_store, permission_service
from .services.entities import Actor
from .services.permission_service import PermissionDeniedError
from .services.portal_service import PortalContext


def _is_authenticated() -> bool:
    return hasattr(g, "session_context") and hasattr(g, "portal_context")


def unauthenticated(message: str = "Authentication required"):
    """401 with the sign-in entry point the client should redirect to."""
    return jsonify({"error": message, "redirect": AUTH_ENTRY_POINT}), 401


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1]
    # EventSource cannot set headers; SSE endpoints pass the token as a query arg
    return request.args.get("access_token")


def require_auth(f):
    """
    Require a valid session and establish the request context.

    Sets the following Flask g attributes:
    - g.session_context: the SessionContext (identity, role, portal, permissions)
    - g.identity_id: the authenticated identity id
    - g.actor: an Actor built from the user's profile
    - g.portal_context: the PortalContext (station loaded for station portals)

    Returns 401 with a redirect hint to the auth entry point if the token
    is missing, invalid, expired, or revoked.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return unauthenticated()

        context = get_auth_provider().validate_session(token)
        if not context:
            return unauthenticated("Invalid or expired token")

        store = get_document_store()
        profile = entity_store.users(store).get(context.identity_id)
        if profile is not None:
            actor = Actor.from_profile(profile)
        else:
            actor = Actor(
                id=context.identity_id,
                name=context.identity.display_name,
                email=context.identity.email,
                role=context.role,
                station_id=context.station_id,
            )

        station = None
        if context.station_id:
            station = entity_store.stations(store).get(context.station_id)

        g.session_context = context
        g.identity_id = context.identity_id
        g.session_token = token
        g.actor = actor
        g.portal_context = PortalContext.for_role(
            actor, context.role, station=station, permissions=context.permissions
        )

        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require a permission from the session's permission set. Use after @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return unauthenticated()

            try:
                permission_service.require_permission(
                    identity_id=g.identity_id,
                    permissions=g.session_context.permissions,
                    permission_code=permission_code,
                    resource=request.path,
                    ip_address=request.remote_addr,
                    user_agent=request.headers.get("User-Agent"),
                    station_id=g.session_context.station_id,
                )
            except PermissionDeniedError as e:
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                    "message": str(e),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_any_permission(*permission_codes):
    """Require at least one of the given permissions."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return unauthenticated()

            permissions = g.session_context.permissions
            if not any(code in permissions for code in permission_codes):
                permission_service.log_security_event(
                    identity_id=g.identity_id,
                    event_type="PERMISSION_DENIED",
                    success=False,
                    resource=request.path,
                    action=f"ANY_OF:{','.join(permission_codes)}",
                    reason=f"Missing any of: {', '.join(permission_codes)}",
                    ip_address=request.remote_addr,
                    user_agent=request.headers.get("User-Agent"),
                    station_id=g.session_context.station_id,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_permissions": list(permission_codes),
                    "message": f"Requires any of: {', '.join(permission_codes)}",
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
