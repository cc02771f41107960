from .sequences import Sequence
from .directory import User, Customer, Item, ITEM_CATEGORIES
from .orders import (
    Order,
    OrderLine,
    Invoice,
    ORDER_STATUSES,
    ORDER_STATUS_RECEIVED,
    ORDER_STATUS_COMPLETED,
    ORDER_STATUS_DELIVERED,
    SERVICE_TYPES,
)

__all__ = [
    'Sequence',
    'User', 'Customer', 'Item', 'ITEM_CATEGORIES',
    'Order', 'OrderLine', 'Invoice',
    'ORDER_STATUSES', 'ORDER_STATUS_RECEIVED', 'ORDER_STATUS_COMPLETED', 'ORDER_STATUS_DELIVERED',
    'SERVICE_TYPES',
]
