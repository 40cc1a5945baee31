from .auth import User, SessionToken
from .suppliers import Entity, Receivable
from .payments import Settlement, Payment, PaymentReversal
from .custody import EmployeeBalanceTransaction
from .audit import AuditLog

__all__ = [
    'User', 'SessionToken',
    'Entity', 'Receivable',
    'Settlement', 'Payment', 'PaymentReversal',
    'EmployeeBalanceTransaction',
    'AuditLog',
]
