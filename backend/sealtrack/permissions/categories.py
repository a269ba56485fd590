# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    SEALS = "SEALS"
    STATIONS = "STATIONS"
    USERS = "USERS"
    AUDIT = "AUDIT"
    DASHBOARD = "DASHBOARD"
    SETTINGS = "SETTINGS"
