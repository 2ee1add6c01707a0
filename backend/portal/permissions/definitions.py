# Overview: All portal operation permissions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- FULFILLMENT --

FULFILLMENT_PERMISSIONS = [
    (
        "CONFIRM_ADDRESS",
        "Confirm Address",
        "Confirm the customer's shipping address by phone",
        PermissionCategory.FULFILLMENT,
    ),
    (
        "CONFIRM_ORDER",
        "Confirm Order",
        "Confirm order contents after the address is confirmed",
        PermissionCategory.FULFILLMENT,
    ),
    (
        "UPDATE_SHIPPING_ADDRESS",
        "Update Shipping Address",
        "Correct the shipping address before it is confirmed",
        PermissionCategory.FULFILLMENT,
    ),
    (
        "MARK_PACKED",
        "Mark Packed",
        "Record that a confirmed order has been packed",
        PermissionCategory.FULFILLMENT,
    ),
]


# -- DELIVERY --

DELIVERY_PERMISSIONS = [
    (
        "ASSIGN_DELIVERYMAN",
        "Assign Deliveryman",
        "Dispatch a packed or failed order to an active deliveryman",
        PermissionCategory.DELIVERY,
    ),
    (
        "START_DELIVERY",
        "Start Delivery",
        "Take an assigned order out for delivery",
        PermissionCategory.DELIVERY,
    ),
    (
        "MARK_DELIVERED",
        "Mark Delivered",
        "Complete a delivery (cash orders need cash collected first)",
        PermissionCategory.DELIVERY,
    ),
    (
        "RESCHEDULE_DELIVERY",
        "Reschedule Delivery",
        "Move a delivery to another date",
        PermissionCategory.DELIVERY,
    ),
    (
        "MARK_DELIVERY_FAILED",
        "Mark Delivery Failed",
        "Record a failed delivery attempt",
        PermissionCategory.DELIVERY,
    ),
]


# -- CASH --

CASH_PERMISSIONS = [
    (
        "COLLECT_CASH",
        "Collect Cash",
        "Record cash collected from the customer at the door",
        PermissionCategory.CASH,
    ),
    (
        "SUBMIT_CASH",
        "Submit Cash",
        "Hand collected cash over to an accounts employee",
        PermissionCategory.CASH,
    ),
    (
        "RECEIVE_CASH",
        "Receive Cash",
        "Confirm receipt of submitted cash",
        PermissionCategory.CASH,
    ),
    (
        "REJECT_CASH",
        "Reject Cash",
        "Reject a cash submission with a reason",
        PermissionCategory.CASH,
    ),
]


# -- REPORTING --

REPORTING_PERMISSIONS = [
    (
        "VIEW_ORDERS",
        "View Orders",
        "View the orders relevant to the employee's role",
        PermissionCategory.REPORTING,
    ),
    (
        "VIEW_ACCOUNTS_REPORTS",
        "View Accounts Reports",
        "View payment lists and collection statistics",
        PermissionCategory.REPORTING,
    ),
    (
        "VIEW_DELIVERY_STATS",
        "View Delivery Stats",
        "View delivery tabs and outstanding cash",
        PermissionCategory.REPORTING,
    ),
]


# -- STAFF --

STAFF_PERMISSIONS = [
    (
        "LIST_DELIVERYMEN",
        "List Deliverymen",
        "List active deliverymen for dispatch",
        PermissionCategory.STAFF,
    ),
    (
        "LIST_ACCOUNTS_EMPLOYEES",
        "List Accounts Employees",
        "List active accounts employees for cash submission",
        PermissionCategory.STAFF,
    ),
]


# Combined list of all permissions
PERMISSION_DEFINITIONS = (
    FULFILLMENT_PERMISSIONS
    + DELIVERY_PERMISSIONS
    + CASH_PERMISSIONS
    + REPORTING_PERMISSIONS
    + STAFF_PERMISSIONS
)
