# Overview: Employee roles and the default role -> permission mapping.

from enum import Enum

from .definitions import PERMISSION_DEFINITIONS


class EmployeeRole(str, Enum):
    CALLCENTER = "callcenter"
    PACKER = "packer"
    WAREHOUSE = "warehouse"
    DELIVERYMAN = "deliveryman"
    ACCOUNTS = "accounts"
    INCHARGE = "incharge"


class EmployeeStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


DEFAULT_ROLE_PERMISSIONS = {
    EmployeeRole.CALLCENTER: {
        "CONFIRM_ADDRESS",
        "CONFIRM_ORDER",
        "UPDATE_SHIPPING_ADDRESS",
        "VIEW_ORDERS",
    },
    EmployeeRole.PACKER: {
        "MARK_PACKED",
        "VIEW_ORDERS",
    },
    EmployeeRole.WAREHOUSE: {
        "ASSIGN_DELIVERYMAN",
        "LIST_DELIVERYMEN",
        "VIEW_ORDERS",
    },
    EmployeeRole.DELIVERYMAN: {
        "START_DELIVERY",
        "MARK_DELIVERED",
        "RESCHEDULE_DELIVERY",
        "MARK_DELIVERY_FAILED",
        "COLLECT_CASH",
        "SUBMIT_CASH",
        "LIST_ACCOUNTS_EMPLOYEES",
        "VIEW_DELIVERY_STATS",
        "VIEW_ORDERS",
    },
    EmployeeRole.ACCOUNTS: {
        "RECEIVE_CASH",
        "REJECT_CASH",
        "VIEW_ACCOUNTS_REPORTS",
        "VIEW_ORDERS",
    },
    # Incharge covers every other role's operations
    EmployeeRole.INCHARGE: {perm[0] for perm in PERMISSION_DEFINITIONS},
}
