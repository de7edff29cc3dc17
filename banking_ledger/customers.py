"""
Customer Records Module

Customers own a set of account numbers and optionally one contact profile.
Account objects carry the owning customer's ID, so ownership is recorded once
per side and kept consistent by the ledger directory.
"""

from dataclasses import dataclass, field
from typing import Optional, Set
import re

from .exceptions import InvalidArgument, InvalidIdentifier


CUSTOMER_ID_PATTERN = re.compile(r'C[0-9]{3}')
PROFILE_ID_PATTERN = re.compile(r'P[0-9]{3}')
EMAIL_PATTERN = re.compile(r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}')


@dataclass
class CustomerProfile:
    """Contact details for a customer (one profile per customer)"""
    profile_id: str
    address: str
    phone: str
    email: str

    def __post_init__(self):
        if not PROFILE_ID_PATTERN.fullmatch(self.profile_id or ""):
            raise InvalidIdentifier(f"Profile ID must match P### (e.g. P001), got {self.profile_id!r}")

        if not self.address or not self.address.strip():
            raise InvalidArgument("Address cannot be empty")
        self.address = self.address.strip()

        # Phone numbers need at least 10 digits; separators are allowed
        if sum(c.isdigit() for c in self.phone or "") < 10:
            raise InvalidArgument("Phone number must contain at least 10 digits")

        if not EMAIL_PATTERN.fullmatch(self.email or ""):
            raise InvalidArgument("Invalid email format")


@dataclass
class Customer:
    """
    Bank customer
    """
    customer_id: str
    name: str
    profile: Optional[CustomerProfile] = None
    account_numbers: Set[str] = field(default_factory=set)

    def __post_init__(self):
        if not CUSTOMER_ID_PATTERN.fullmatch(self.customer_id or ""):
            raise InvalidIdentifier(f"Customer ID must match C### (e.g. C001), got {self.customer_id!r}")
        if not self.name or not self.name.strip():
            raise InvalidArgument("Customer name cannot be empty")
        self.name = self.name.strip()

    def owns(self, account_no: str) -> bool:
        return account_no in self.account_numbers

    def __str__(self) -> str:
        return f"Customer[{self.customer_id}, {self.name}, accounts={len(self.account_numbers)}]"
