from .auth import User, SessionToken
from .catalog import Material, Template
from .orders import Order, OrderStatus, OrderStatusUpdate, OrderMessage
from .reviews import Review
from .uploads import UploadedFile
from .audit import AuditLogEntry
from .reports import SalesReport

__all__ = [
    'User', 'SessionToken',
    'Material', 'Template',
    'Order', 'OrderStatus', 'OrderStatusUpdate', 'OrderMessage',
    'Review',
    'UploadedFile',
    'AuditLogEntry',
    'SalesReport',
]
