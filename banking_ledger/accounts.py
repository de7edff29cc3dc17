"""
Account Model Module

Savings and checking accounts with Decimal balances and an ordered,
append-only transaction history. The withdrawal rule is polymorphic: each
account kind declares the lowest balance it may reach (its floor) and the
shared ``withdraw`` implementation enforces it.
"""

from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import TYPE_CHECKING, List, Union
import re

from .exceptions import InvalidAccountKind, InvalidAmount, InvalidArgument, InvalidIdentifier

if TYPE_CHECKING:
    from .transactions import Transaction


ACCOUNT_NO_PATTERN = re.compile(r'ACC[0-9]{3}')
CENTS = Decimal('0.01')

AmountLike = Union[Decimal, int, float, str]


class AccountKind(Enum):
    """Supported account products"""
    SAVINGS = "savings"
    CHECKING = "checking"

    @classmethod
    def parse(cls, value: Union['AccountKind', str]) -> 'AccountKind':
        """Accept an AccountKind or its case-insensitive name/value"""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            for kind in cls:
                if kind.value == normalized:
                    return kind
        raise InvalidAccountKind(f"Invalid account kind: {value!r} (must be SAVINGS or CHECKING)")


def to_amount(value: AmountLike) -> Decimal:
    """
    Convert a monetary input to Decimal and require it to be positive.

    Raises:
        InvalidAmount: if the value is not a finite number greater than zero
    """
    if isinstance(value, bool):
        raise InvalidAmount(f"Invalid amount: {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidAmount(f"Invalid amount: {value!r}")

    if not amount.is_finite() or amount <= 0:
        raise InvalidAmount(f"Amount must be positive, got {value}")
    return amount


class Account(ABC):
    """
    Base class for all ledger accounts.

    The balance can only change through ``deposit`` and ``withdraw``.
    History is kept oldest-first internally and exposed most-recent-first.
    """

    kind: AccountKind

    def __init__(self, account_no: str, owner_id: str):
        if not isinstance(account_no, str) or not ACCOUNT_NO_PATTERN.fullmatch(account_no):
            raise InvalidIdentifier(f"Account number must match ACC### (e.g. ACC001), got {account_no!r}")
        self._account_no = account_no
        self._owner_id = owner_id
        self._balance = Decimal('0')
        self._history: List['Transaction'] = []

    @property
    def account_no(self) -> str:
        return self._account_no

    @property
    def owner_id(self) -> str:
        """ID of the owning customer; fixed at creation"""
        return self._owner_id

    @property
    def balance(self) -> Decimal:
        return self._balance

    @property
    def history(self) -> List['Transaction']:
        """Transactions touching this account, most recent first"""
        return list(reversed(self._history))

    @property
    @abstractmethod
    def floor(self) -> Decimal:
        """Lowest balance this account may reach"""

    def deposit(self, amount: AmountLike) -> Decimal:
        """Add funds and return the new balance"""
        value = to_amount(amount)
        self._balance += value
        return self._balance

    def withdraw(self, amount: AmountLike) -> bool:
        """
        Remove funds if the floor allows it.

        Returns:
            True if the balance was reduced, False if the withdrawal would
            breach the floor (balance is left untouched)
        """
        value = to_amount(amount)
        if self._balance - value < self.floor:
            return False
        self._balance -= value
        return True

    def add_transaction(self, transaction: 'Transaction') -> None:
        """Append a transaction record; called by the transaction processor"""
        self._history.append(transaction)

    @abstractmethod
    def get_details(self) -> str:
        """Human-readable summary"""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._account_no!r}, owner={self._owner_id!r}, balance={self._balance})"


class SavingsAccount(Account):
    """Interest-bearing account that can never go below zero"""

    kind = AccountKind.SAVINGS

    def __init__(self, account_no: str, owner_id: str, interest_rate: AmountLike = Decimal('0.03')):
        super().__init__(account_no, owner_id)
        try:
            rate = Decimal(str(interest_rate))
        except (InvalidOperation, ValueError):
            raise InvalidArgument(f"Invalid interest rate: {interest_rate!r}")
        if not rate.is_finite() or rate <= 0:
            raise InvalidArgument(f"Interest rate must be positive, got {interest_rate}")
        self._interest_rate = rate

    @property
    def interest_rate(self) -> Decimal:
        return self._interest_rate

    @property
    def floor(self) -> Decimal:
        return Decimal('0')

    def apply_interest(self) -> Decimal:
        """
        Credit one period of interest: balance becomes balance * (1 + rate).

        Interest is rounded to cents and posted through ``deposit``.

        Returns:
            The interest credited (zero if nothing was earned)
        """
        interest = (self._balance * self._interest_rate).quantize(CENTS, rounding=ROUND_HALF_UP)
        if interest <= 0:
            return Decimal('0')
        self.deposit(interest)
        return interest

    def get_details(self) -> str:
        return (f"Savings Account {self.account_no} | Owner: {self.owner_id} | "
                f"Balance: ${self.balance:.2f} | Interest Rate: {self.interest_rate * 100:.2f}%")


class CheckingAccount(Account):
    """Account that may be overdrawn down to its overdraft limit"""

    kind = AccountKind.CHECKING

    def __init__(self, account_no: str, owner_id: str, overdraft_limit: AmountLike = Decimal('500.00')):
        super().__init__(account_no, owner_id)
        self._overdraft_limit = Decimal('0')
        self.set_overdraft_limit(overdraft_limit)

    @property
    def overdraft_limit(self) -> Decimal:
        return self._overdraft_limit

    @property
    def floor(self) -> Decimal:
        return -self._overdraft_limit

    @property
    def available_credit(self) -> Decimal:
        """Funds that can still be withdrawn"""
        return self.balance + self._overdraft_limit

    def set_overdraft_limit(self, limit: AmountLike) -> None:
        """Change the overdraft limit; it must not be negative"""
        try:
            value = Decimal(str(limit))
        except (InvalidOperation, ValueError):
            raise InvalidArgument(f"Invalid overdraft limit: {limit!r}")
        if not value.is_finite() or value < 0:
            raise InvalidArgument(f"Overdraft limit cannot be negative, got {limit}")
        if self.balance < -value:
            raise InvalidArgument(
                f"Overdraft limit {value} is below the current overdraft of {-self.balance}"
            )
        self._overdraft_limit = value

    def get_details(self) -> str:
        return (f"Checking Account {self.account_no} | Owner: {self.owner_id} | "
                f"Balance: ${self.balance:.2f} | Overdraft Limit: ${self.overdraft_limit:.2f} | "
                f"Available: ${self.available_credit:.2f}")
