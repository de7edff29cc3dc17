"""
Banking Ledger

A small in-memory ledger with savings and checking accounts, an atomic
transaction processor, role-based access control and a hash-chained
audit trail. All monetary values use Decimal.
"""

__version__ = "1.0.0"
