# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- SEALS --

SEAL_PERMISSIONS = [
    (
        "VIEW_SEALS",
        "View Seals",
        "List seals and view seal details",
        PermissionCategory.SEALS,
    ),
    (
        "CREATE_SEALS",
        "Create Seals",
        "Register a new seal with its initial images",
        PermissionCategory.SEALS,
    ),
    (
        "DISPATCH_SEALS",
        "Dispatch Seals",
        "Send a received seal to another station (Received -> In Transit)",
        PermissionCategory.SEALS,
    ),
    (
        "RECEIVE_SEALS",
        "Receive Seals",
        "Accept a seal in transit (In Transit -> Received)",
        PermissionCategory.SEALS,
    ),
    (
        "ISSUE_SEALS",
        "Issue Seals",
        "Issue a seal to a station manager",
        PermissionCategory.SEALS,
    ),
    (
        "UPDATE_SEAL_STATUS",
        "Update Seal Status",
        "Set seal condition to good, damaged or repaired",
        PermissionCategory.SEALS,
    ),
    (
        "REPORT_SEAL_DAMAGE",
        "Report Seal Damage",
        "Mark a seal as damaged (condition update limited to damaged)",
        PermissionCategory.SEALS,
    ),
    (
        "UPDATE_SEAL_UTILIZATION",
        "Update Seal Utilization",
        "Mark a seal as in use or unutilized",
        PermissionCategory.SEALS,
    ),
    (
        "ATTACH_SEAL_IMAGES",
        "Attach Seal Images",
        "Append damage or repair photos to a seal",
        PermissionCategory.SEALS,
    ),
]


# -- STATIONS --

STATION_PERMISSIONS = [
    (
        "VIEW_STATIONS",
        "View Stations",
        "List stations and their seal counters",
        PermissionCategory.STATIONS,
    ),
    (
        "MANAGE_STATIONS",
        "Manage Stations",
        "Create and update stations",
        PermissionCategory.STATIONS,
    ),
]


# -- USERS --

USER_PERMISSIONS = [
    (
        "VIEW_USERS",
        "View Users",
        "List staff accounts",
        PermissionCategory.USERS,
    ),
    (
        "MANAGE_USERS",
        "Manage Users",
        "Create staff accounts and edit profiles",
        PermissionCategory.USERS,
    ),
]


# -- AUDIT --

AUDIT_PERMISSIONS = [
    (
        "VIEW_ACTIVITY_LOGS",
        "View Activity Logs",
        "View the activity audit trail",
        PermissionCategory.AUDIT,
    ),
]


# -- DASHBOARD --

DASHBOARD_PERMISSIONS = [
    (
        "VIEW_DASHBOARD",
        "View Dashboard",
        "View live seal statistics for the actor's portal",
        PermissionCategory.DASHBOARD,
    ),
]


# -- SETTINGS --

SETTINGS_PERMISSIONS = [
    (
        "VIEW_SETTINGS",
        "View Settings",
        "View organization branding and integration settings",
        PermissionCategory.SETTINGS,
    ),
    (
        "MANAGE_SETTINGS",
        "Manage Settings",
        "Change organization and integration settings",
        PermissionCategory.SETTINGS,
    ),
]


# Combined list of all permissions (preserves original ordering)
PERMISSION_DEFINITIONS = (
    SEAL_PERMISSIONS
    + STATION_PERMISSIONS
    + USER_PERMISSIONS
    + AUDIT_PERMISSIONS
    + DASHBOARD_PERMISSIONS
    + SETTINGS_PERMISSIONS
)
