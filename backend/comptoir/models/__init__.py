from .auth import User, InvitationCode, SessionToken
from .catalog import Product
from .ledger import Transaction, TransactionLine, Expense, ExpenseNote
from .settings import Setting
from .tombola import TombolaTicket
from .market import MarketProduct, MarketSale, MarketSaleLine
from .games import GameScore

__all__ = [
    'User', 'InvitationCode', 'SessionToken',
    'Product',
    'Transaction', 'TransactionLine', 'Expense', 'ExpenseNote',
    'Setting',
    'TombolaTicket',
    'MarketProduct', 'MarketSale', 'MarketSaleLine',
    'GameScore',
]
