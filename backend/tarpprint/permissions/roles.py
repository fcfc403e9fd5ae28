# Overview: Fixed role -> permission and role -> navigation mappings.

CUSTOMER_PERMISSION_CODES = frozenset({
    "PLACE_ORDER",
    "VIEW_OWN_ORDERS",
    "UPLOAD_FILES",
    "SEND_MESSAGES",
    "WRITE_REVIEW",
})

STAFF_PERMISSION_CODES = frozenset({
    "VIEW_ALL_ORDERS",
    "UPDATE_ORDER_STATUS",
    "UPDATE_PAYMENT_STATUS",
    "VIEW_CUSTOMERS",
    "VIEW_REPORTS",
    "SEND_MESSAGES",
    "UPLOAD_FILES",
})

ADMIN_PERMISSION_CODES = STAFF_PERMISSION_CODES | frozenset({
    "GENERATE_REPORTS",
    "VIEW_AUDIT_LOG",
    "MANAGE_CATALOG",
})

DEFAULT_ROLE_PERMISSIONS = {
    "customer": CUSTOMER_PERMISSION_CODES,
    "staff": STAFF_PERMISSION_CODES,
    "admin": ADMIN_PERMISSION_CODES,
}


# (path, label, required permission or None)
CUSTOMER_NAVIGATION = [
    ("/dashboard", "Dashboard", None),
    ("/dashboard/orders", "My Orders", "VIEW_OWN_ORDERS"),
    ("/dashboard/new-order", "New Order", "PLACE_ORDER"),
    ("/dashboard/profile", "Profile", None),
    ("/dashboard/settings", "Account Settings", None),
]

BACK_OFFICE_NAVIGATION = [
    ("/dashboard", "Dashboard", None),
    ("/dashboard/orders", "All Orders", "VIEW_ALL_ORDERS"),
    ("/dashboard/customers", "Customers", "VIEW_CUSTOMERS"),
    ("/dashboard/reports", "Reports", "VIEW_REPORTS"),
    ("/dashboard/audit", "Audit Trail", "VIEW_AUDIT_LOG"),
    ("/dashboard/settings", "Settings", None),
]
