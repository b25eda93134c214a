from .auth import User, SessionToken, PasswordResetToken, EmailVerification
from .tenancy import Organization, Membership
from .customers import Customer
from .catalog import Product, ProductPrice
from .orders import Order, OrderLine

__all__ = [
    'User', 'SessionToken', 'PasswordResetToken', 'EmailVerification',
    'Organization', 'Membership',
    'Customer',
    'Product', 'ProductPrice',
    'Order', 'OrderLine',
]
