from .catalog import Product, Variant, Provider
from .customers import Customer, CustomerAccount, AccountMovement
from .purchases import Purchase, PurchaseItem
from .sales import Sale, SaleItem
from .registers import CashRegisterSession, CashMovement
from .audit import AuditLogEntry
from .auth import User

__all__ = [
    'Product', 'Variant', 'Provider',
    'Customer', 'CustomerAccount', 'AccountMovement',
    'Purchase', 'PurchaseItem',
    'Sale', 'SaleItem',
    'CashRegisterSession', 'CashMovement',
    'AuditLogEntry',
    'User',
]
