from .catalog import Category, Product, ProductImage, ProductCategory, ProductVariant
from .promotions import Promotion
from .customers import Customer, Address
from .orders import OrderInquiry, OrderItem, ORDER_STATUSES
from .auth import User

__all__ = [
    'Category', 'Product', 'ProductImage', 'ProductCategory', 'ProductVariant',
    'Promotion',
    'Customer', 'Address',
    'OrderInquiry', 'OrderItem', 'ORDER_STATUSES',
    'User',
]
