"""
Ledger Directory Module

In-memory index of customers and accounts. Owns account and customer ID
generation, account creation and deletion (including the cascading delete of
a customer), and the bulk account operations: interest posting, overdraft
updates and sorting.

ID generation scans existing identifiers for the highest numeric suffix and
allocates the next number. It is correct for a single caller only; concurrent
allocation would need an atomic counter seeded from one scan.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Pattern, Union

from .accounts import (
    ACCOUNT_NO_PATTERN, Account, AccountKind, AmountLike, CheckingAccount, SavingsAccount
)
from .config import LedgerConfig, get_config
from .customers import CUSTOMER_ID_PATTERN, PROFILE_ID_PATTERN, Customer, CustomerProfile
from .exceptions import (
    CustomerNotFound, DuplicateAccountNumber, IdentifierExhausted, InvalidArgument, InvalidIdentifier
)
from .logging_config import get_logger, log_action


ID_DIGITS = 3


@dataclass(frozen=True)
class InterestResult:
    """Outcome of posting interest to one savings account"""
    account_no: str
    old_balance: Decimal
    new_balance: Decimal
    interest: Decimal


def next_identifier(prefix: str, pattern: Pattern, existing: Iterable[str]) -> str:
    """
    Allocate the identifier after the highest existing one for ``prefix``.

    Identifiers that do not match ``pattern`` are ignored. Gaps left by
    deletions are never reused.
    """
    max_num = 0
    for identifier in existing:
        if identifier and pattern.fullmatch(identifier):
            max_num = max(max_num, int(identifier[len(prefix):]))

    next_num = max_num + 1
    if next_num >= 10 ** ID_DIGITS:
        raise IdentifierExhausted(f"No {prefix} identifiers left after {prefix}{max_num:0{ID_DIGITS}d}")
    return f"{prefix}{next_num:0{ID_DIGITS}d}"


class LedgerDirectory:
    """
    Registry of customers and their accounts
    """

    def __init__(self, config: Optional[LedgerConfig] = None):
        self.config = config or get_config()
        self._customers: Dict[str, Customer] = {}
        self._accounts: Dict[str, Account] = {}
        self.logger = get_logger("banking_ledger.directory")

    # Lookups

    def find_account(self, account_no: str) -> Optional[Account]:
        return self._accounts.get(account_no)

    def find_customer(self, customer_id: str) -> Optional[Customer]:
        return self._customers.get(customer_id)

    def owner_of(self, account_no: str) -> Optional[Customer]:
        """Resolve the customer that owns an account"""
        account = self.find_account(account_no)
        if account is None:
            return None
        return self._customers.get(account.owner_id)

    def list_accounts(self) -> List[Account]:
        """All accounts in directory order"""
        return list(self._accounts.values())

    def list_customers(self) -> List[Customer]:
        return list(self._customers.values())

    def accounts_for_customer(self, customer_id: str) -> List[Account]:
        customer = self.find_customer(customer_id)
        if customer is None:
            return []
        return [a for a in self._accounts.values() if a.account_no in customer.account_numbers]

    # Identifier generation

    def generate_account_number(self) -> str:
        return next_identifier("ACC", ACCOUNT_NO_PATTERN, self._accounts.keys())

    def generate_customer_id(self) -> str:
        return next_identifier("C", CUSTOMER_ID_PATTERN, self._customers.keys())

    def generate_profile_id(self) -> str:
        profile_ids = (c.profile.profile_id for c in self._customers.values() if c.profile)
        return next_identifier("P", PROFILE_ID_PATTERN, profile_ids)

    # Customers

    def create_customer(self, name: str, customer_id: Optional[str] = None) -> Customer:
        """
        Register a new customer

        Args:
            name: Customer name
            customer_id: Specific ID (generated if not provided)

        Returns:
            Created Customer
        """
        if customer_id is None:
            customer_id = self.generate_customer_id()
        elif customer_id in self._customers:
            raise InvalidIdentifier(f"Customer ID already exists: {customer_id}")

        customer = Customer(customer_id=customer_id, name=name)
        self._customers[customer_id] = customer

        log_action(
            self.logger, "info", f"Customer created: {customer_id}",
            action="create_customer", resource=f"customer:{customer_id}",
            extra={"name": customer.name}
        )
        return customer

    def set_customer_profile(
        self,
        customer_id: str,
        address: str,
        phone: str,
        email: str,
        profile_id: Optional[str] = None,
        replace: bool = True
    ) -> CustomerProfile:
        """
        Create or replace the contact profile of a customer

        Raises:
            CustomerNotFound: if the customer does not exist
            InvalidArgument: if a profile exists and ``replace`` is False
            InvalidIdentifier: if ``profile_id`` belongs to another customer
        """
        customer = self.find_customer(customer_id)
        if customer is None:
            raise CustomerNotFound(f"Customer not found: {customer_id}")

        if customer.profile is not None and not replace:
            raise InvalidArgument(f"Customer {customer_id} already has a profile")

        if profile_id is None:
            profile_id = self.generate_profile_id()
        else:
            for other in self._customers.values():
                if other is not customer and other.profile and other.profile.profile_id == profile_id:
                    raise InvalidIdentifier(f"Profile ID already exists: {profile_id}")

        profile = CustomerProfile(profile_id=profile_id, address=address, phone=phone, email=email)
        customer.profile = profile

        log_action(
            self.logger, "info", f"Profile {profile_id} set for customer {customer_id}",
            action="set_customer_profile", resource=f"customer:{customer_id}"
        )
        return profile

    def delete_customer(self, customer_id: str) -> bool:
        """
        Delete a customer together with every account it owns.

        Each account is removed from the index and from the owner in a single
        step. Accounts that still point at the customer but are missing from
        its account set are swept as well, so no orphan survives.

        Returns:
            True if the customer and all its accounts were deleted; False if
            the customer was unknown or some account delete failed. In the
            latter case the customer record is still removed.
        """
        customer = self.find_customer(customer_id)
        if customer is None:
            self.logger.warning(f"Customer not found: {customer_id}")
            return False

        all_deleted = True
        for account_no in sorted(customer.account_numbers):
            if not self.delete_account(account_no):
                self.logger.warning(
                    f"Failed to delete account {account_no} for customer {customer_id}"
                )
                customer.account_numbers.discard(account_no)
                all_deleted = False

        strays = [a.account_no for a in self._accounts.values() if a.owner_id == customer_id]
        for account_no in strays:
            self.delete_account(account_no)

        del self._customers[customer_id]

        if not all_deleted:
            self.logger.warning(f"Not all accounts were deleted for customer {customer_id}")

        log_action(
            self.logger, "info", f"Customer deleted: {customer_id}",
            action="delete_customer", resource=f"customer:{customer_id}",
            extra={"all_accounts_deleted": all_deleted}
        )
        return all_deleted

    # Accounts

    def create_account(
        self,
        customer_id: str,
        kind: Union[AccountKind, str],
        account_no: Optional[str] = None,
        interest_rate: Optional[AmountLike] = None,
        overdraft_limit: Optional[AmountLike] = None
    ) -> Account:
        """
        Open an account for a customer

        Args:
            customer_id: Owner of the account
            kind: SAVINGS or CHECKING
            account_no: Specific account number (generated if not provided)
            interest_rate: Savings rate (config default if not provided)
            overdraft_limit: Checking overdraft limit (config default if not provided)

        Returns:
            Created Account

        Raises:
            CustomerNotFound, DuplicateAccountNumber, InvalidAccountKind, InvalidIdentifier
        """
        customer = self.find_customer(customer_id)
        if customer is None:
            raise CustomerNotFound(f"Customer not found: {customer_id}")

        account_kind = AccountKind.parse(kind)

        if account_no is None:
            account_no = self.generate_account_number()
        elif account_no in self._accounts:
            raise DuplicateAccountNumber(f"Account number already exists: {account_no}")

        if account_kind == AccountKind.SAVINGS:
            rate = self.config.interest_rate if interest_rate is None else interest_rate
            account: Account = SavingsAccount(account_no, customer_id, interest_rate=rate)
        else:
            limit = self.config.overdraft_limit if overdraft_limit is None else overdraft_limit
            account = CheckingAccount(account_no, customer_id, overdraft_limit=limit)

        self._accounts[account_no] = account
        customer.account_numbers.add(account_no)

        log_action(
            self.logger, "info", f"Account created: {account.get_details()}",
            action="create_account", resource=f"account:{account_no}",
            extra={"customer_id": customer_id, "kind": account_kind.value}
        )
        return account

    def delete_account(self, account_no: str) -> bool:
        """
        Remove an account from the directory and from its owner

        Returns:
            False if the account does not exist
        """
        account = self._accounts.pop(account_no, None)
        if account is None:
            self.logger.warning(f"Account not found: {account_no}")
            return False

        owner = self._customers.get(account.owner_id)
        if owner is not None:
            owner.account_numbers.discard(account_no)
        else:
            self.logger.warning(f"Account {account_no} had no owner, only removed from directory")

        log_action(
            self.logger, "info", f"Account deleted: {account_no}",
            action="delete_account", resource=f"account:{account_no}"
        )
        return True

    def update_overdraft_limit(self, account_no: str, new_limit: AmountLike) -> bool:
        """
        Change the overdraft limit of a checking account

        Returns:
            False if the account is missing, is not a checking account, or the
            limit is rejected
        """
        account = self.find_account(account_no)
        if account is None:
            self.logger.warning(f"Account not found: {account_no}")
            return False

        if not isinstance(account, CheckingAccount):
            self.logger.warning(f"Account {account_no} is not a checking account")
            return False

        try:
            account.set_overdraft_limit(new_limit)
        except InvalidArgument as e:
            self.logger.warning(f"Overdraft limit rejected for {account_no}: {e}")
            return False

        log_action(
            self.logger, "info", f"Overdraft limit updated for {account_no}",
            action="update_overdraft_limit", resource=f"account:{account_no}",
            extra={"overdraft_limit": str(account.overdraft_limit)}
        )
        return True

    def apply_interest_to_all_savings(self) -> List[InterestResult]:
        """Post one period of interest to every savings account"""
        results = []
        for account in self._accounts.values():
            if not isinstance(account, SavingsAccount):
                continue
            old_balance = account.balance
            interest = account.apply_interest()
            results.append(InterestResult(
                account_no=account.account_no,
                old_balance=old_balance,
                new_balance=account.balance,
                interest=interest
            ))

        log_action(
            self.logger, "info", f"Interest applied to {len(results)} savings account(s)",
            action="apply_interest"
        )
        return results

    # Sorting

    def _owner_name(self, account: Account) -> str:
        owner = self._customers.get(account.owner_id)
        return owner.name if owner else ""

    def sort_accounts_by_name(self) -> List[Account]:
        """
        Reorder the directory by owner name, ascending and case-insensitive.
        Accounts without an owner sort as an empty name. The sort is stable.
        """
        ordered = sorted(self._accounts.values(), key=lambda a: self._owner_name(a).lower())
        self._accounts = {a.account_no: a for a in ordered}
        return ordered

    def sort_accounts_by_balance(self) -> List[Account]:
        """Reorder the directory by balance, highest first; ties keep their order"""
        ordered = sorted(self._accounts.values(), key=lambda a: a.balance, reverse=True)
        self._accounts = {a.account_no: a for a in ordered}
        return ordered
