# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- ORDERS --

ORDER_PERMISSIONS = [
    (
        "PLACE_ORDER",
        "Place Order",
        "Create new print orders and pay for them",
        PermissionCategory.ORDERS,
    ),
    (
        "VIEW_OWN_ORDERS",
        "View Own Orders",
        "View orders placed by the signed-in customer",
        PermissionCategory.ORDERS,
    ),
    (
        "VIEW_ALL_ORDERS",
        "View All Orders",
        "View every customer's orders",
        PermissionCategory.ORDERS,
    ),
    (
        "UPDATE_ORDER_STATUS",
        "Update Order Status",
        "Move orders through pending, processing, printed, completed, cancelled",
        PermissionCategory.ORDERS,
    ),
    (
        "UPDATE_PAYMENT_STATUS",
        "Update Payment Status",
        "Mark orders paid or unpaid and record payment references",
        PermissionCategory.ORDERS,
    ),
    (
        "UPLOAD_FILES",
        "Upload Files",
        "Upload design files (JPG, PNG, PDF)",
        PermissionCategory.ORDERS,
    ),
    (
        "SEND_MESSAGES",
        "Send Messages",
        "Post messages on an order conversation",
        PermissionCategory.ORDERS,
    ),
    (
        "WRITE_REVIEW",
        "Write Review",
        "Review a completed order",
        PermissionCategory.ORDERS,
    ),
]


# -- CUSTOMERS --

CUSTOMER_PERMISSIONS = [
    (
        "VIEW_CUSTOMERS",
        "View Customers",
        "View the customer list with order totals",
        PermissionCategory.CUSTOMERS,
    ),
]


# -- CATALOG --

CATALOG_PERMISSIONS = [
    (
        "MANAGE_CATALOG",
        "Manage Catalog",
        "Create and edit materials and their rates",
        PermissionCategory.CATALOG,
    ),
]


# -- REPORTS --

REPORT_PERMISSIONS = [
    (
        "VIEW_REPORTS",
        "View Reports",
        "View previously generated sales reports",
        PermissionCategory.REPORTS,
    ),
    (
        "GENERATE_REPORTS",
        "Generate Reports",
        "Generate and store a new sales report snapshot",
        PermissionCategory.REPORTS,
    ),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    (
        "VIEW_AUDIT_LOG",
        "View Audit Log",
        "View the audit trail of mutating actions",
        PermissionCategory.SYSTEM,
    ),
]


PERMISSION_DEFINITIONS = (
    ORDER_PERMISSIONS
    + CUSTOMER_PERMISSIONS
    + CATALOG_PERMISSIONS
    + REPORT_PERMISSIONS
    + SYSTEM_PERMISSIONS
)
