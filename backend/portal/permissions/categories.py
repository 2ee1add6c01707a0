# Overview: Permission category constants for grouping related portal operations.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    FULFILLMENT = "FULFILLMENT"
    DELIVERY = "DELIVERY"
    CASH = "CASH"
    REPORTING = "REPORTING"
    STAFF = "STAFF"
