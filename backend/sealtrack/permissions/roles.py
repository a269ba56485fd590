# Overview: Role -> portal and role -> permission-set lookups.
#
# Permissions are resolved from the role once, when a session is created,
# and carried on the session. Nothing here inspects request paths.

ROLE_ADMIN = "admin"
ROLE_MAIN_STORE_MANAGER = "main-store-manager"
ROLE_STATION_MANAGER = "station-manager"
ROLE_SUB_STATION_MANAGER = "sub-station-manager"

ALL_ROLES = (
    ROLE_ADMIN,
    ROLE_MAIN_STORE_MANAGER,
    ROLE_STATION_MANAGER,
    ROLE_SUB_STATION_MANAGER,
)

# Roles bound to a single station (User.stationId required)
STATION_SCOPED_ROLES = {ROLE_STATION_MANAGER, ROLE_SUB_STATION_MANAGER}

PORTAL_ADMIN = "admin"
PORTAL_STATION = "station"
PORTAL_SUB_STATION = "substation"

ROLE_PORTALS = {
    ROLE_ADMIN: PORTAL_ADMIN,
    ROLE_MAIN_STORE_MANAGER: PORTAL_ADMIN,
    ROLE_STATION_MANAGER: PORTAL_STATION,
    ROLE_SUB_STATION_MANAGER: PORTAL_SUB_STATION,
}

PORTAL_HOME = {
    PORTAL_ADMIN: "/dashboard",
    PORTAL_STATION: "/station/dashboard",
    PORTAL_SUB_STATION: "/substation/dashboard",
}

AUTH_ENTRY_POINT = "/auth"


DEFAULT_ROLE_PERMISSIONS = {
    ROLE_ADMIN: [
        # Admin gets ALL permissions
        "VIEW_SEALS",
        "CREATE_SEALS",
        "DISPATCH_SEALS",
        "RECEIVE_SEALS",
        "ISSUE_SEALS",
        "UPDATE_SEAL_STATUS",
        "REPORT_SEAL_DAMAGE",
        "UPDATE_SEAL_UTILIZATION",
        "ATTACH_SEAL_IMAGES",
        "VIEW_STATIONS",
        "MANAGE_STATIONS",
        "VIEW_USERS",
        "MANAGE_USERS",
        "VIEW_ACTIVITY_LOGS",
        "VIEW_DASHBOARD",
        "VIEW_SETTINGS",
        "MANAGE_SETTINGS",
    ],
    ROLE_MAIN_STORE_MANAGER: [
        # Admin portal without account administration
        "VIEW_SEALS",
        "CREATE_SEALS",
        "DISPATCH_SEALS",
        "RECEIVE_SEALS",
        "ISSUE_SEALS",
        "UPDATE_SEAL_STATUS",
        "REPORT_SEAL_DAMAGE",
        "UPDATE_SEAL_UTILIZATION",
        "ATTACH_SEAL_IMAGES",
        "VIEW_STATIONS",
        "MANAGE_STATIONS",
        "VIEW_USERS",
        "VIEW_ACTIVITY_LOGS",
        "VIEW_DASHBOARD",
        "VIEW_SETTINGS",
    ],
    ROLE_STATION_MANAGER: [
        "VIEW_SEALS",
        "DISPATCH_SEALS",
        "RECEIVE_SEALS",
        "VIEW_STATIONS",
        "VIEW_DASHBOARD",
        "VIEW_SETTINGS",
    ],
    ROLE_SUB_STATION_MANAGER: [
        "VIEW_SEALS",
        "RECEIVE_SEALS",
        "REPORT_SEAL_DAMAGE",
        "ATTACH_SEAL_IMAGES",
        "VIEW_DASHBOARD",
        "VIEW_SETTINGS",
    ],
}
