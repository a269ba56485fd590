# Overview: Permission checks against the session's role permission set, plus security event logging.

"""
Permission Checking and Security Event Logging

WHY: Enforce role-based access control and keep an audit trail of
denials. Permission sets are a static lookup keyed by role
(sealtrack.permissions.roles); they are resolved once when the session
is created and carried on the session, so a check is a set lookup.

DESIGN PRINCIPLES:
- Fail closed: unknown roles get an empty permission set
- Log denials only: granted checks are not logged
"""

from __future__ import annotations

import logging
from typing import Iterable

from ..extensions import db
from ..models import SecurityEvent
from ..permissions import describe_permission, get_role_permissions, validate_permission_code
from sealtrack.time_utils import utcnow


logger = logging.getLogger(__name__)


class PermissionDeniedError(Exception):
    """Raised when the actor lacks a required permission."""
    pass


def log_security_event(
    identity_id: str | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    station_id: str | None = None,
) -> SecurityEvent:
    """
    Append a security event.

    event_type examples:
    - PERMISSION_DENIED
    - LOGIN_FAILED
    - PASSWORD_RESET_REQUESTED
    - PASSWORD_RESET_COMPLETED
    """
    event = SecurityEvent(
        identity_id=identity_id,
        station_id=station_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    db.session.commit()

    if not success:
        logger.warning(
            "Security event %s for %s on %s: %s",
            event_type, identity_id or "anonymous", resource, reason,
            extra={"actor_id": identity_id, "event_type": event_type},
        )
    return event


def resolve_permissions(role: str | None) -> frozenset[str]:
    """Permission codes for a role. Called once per session."""
    return get_role_permissions(role)


def has_permission(permissions: Iterable[str], permission_code: str) -> bool:
    if not validate_permission_code(permission_code):
        raise ValueError(f"Unknown permission code '{permission_code}'")
    return permission_code in set(permissions)


def require_permission(
    identity_id: str,
    permissions: Iterable[str],
    permission_code: str,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    station_id: str | None = None,
) -> None:
    """
    Raise PermissionDeniedError unless `permission_code` is in `permissions`.

    Usage:
        require_permission(g.identity_id, g.session_context.permissions, "DISPATCH_SEALS", resource=request.path)
    """
    if has_permission(permissions, permission_code):
        return

    log_security_event(
        identity_id=identity_id,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource,
        action=permission_code,
        reason=f"Missing permission: {permission_code}",
        ip_address=ip_address,
        user_agent=user_agent,
        station_id=station_id,
    )
    label = describe_permission(permission_code)["name"]
    raise PermissionDeniedError(f"{label} is not allowed for your role")

