from .catalog import Product
from .ledger import Transaction, TransactionSequence
from .auth import User, SessionToken
from .settings import StoreSetting

__all__ = [
    'Product',
    'Transaction', 'TransactionSequence',
    'User', 'SessionToken',
    'StoreSetting',
]
