from .tenancy import Company
from .auth import User
from .catalog import Category, Product
from .inventory import Inventory
from .orders import Customer, Order, Review

__all__ = [
    'Company',
    'User',
    'Category', 'Product',
    'Inventory',
    'Customer', 'Order', 'Review',
]
