# Overview: Permission codes, roles and portals.
# `from sealtrack.permissions import ...` is the only import path callers use.

from .categories import PermissionCategory
from .definitions import PERMISSION_DEFINITIONS
from .roles import (
    ALL_ROLES,
    AUTH_ENTRY_POINT,
    DEFAULT_ROLE_PERMISSIONS,
    PORTAL_ADMIN,
    PORTAL_HOME,
    PORTAL_STATION,
    PORTAL_SUB_STATION,
    ROLE_ADMIN,
    ROLE_MAIN_STORE_MANAGER,
    ROLE_PORTALS,
    ROLE_STATION_MANAGER,
    ROLE_SUB_STATION_MANAGER,
    STATION_SCOPED_ROLES,
)
from .helpers import (
    PERMISSION_CODES,
    describe_permission,
    get_role_permissions,
    get_role_portal,
    validate_permission_code,
)
