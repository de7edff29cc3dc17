"""
Banking System Facade

Single entry point that wires the ledger directory, transaction processor,
access manager and audit trail together. Each operation authorizes the
logged-in principal (role gate, then ownership gate where an account is
involved), delegates to the owning component, and records the outcome.

Operations that return a boolean answer False when authorization is denied;
operations that return objects or lists answer None.
"""

from typing import Iterable, List, Optional, Tuple, Union

from .accounts import Account, AccountKind, AmountLike
from .audit import AuditEntry, AuditTrail
from .config import LedgerConfig, get_config
from .customers import Customer, CustomerProfile
from .directory import InterestResult, LedgerDirectory
from .logging_config import get_logger, log_action
from .rbac import AccessManager, MenuAction, Permission, Principal, Role
from .transactions import Transaction, TransactionProcessor


class BankingSystem:
    """
    Authorized, audited access to the ledger
    """

    def __init__(self, config: Optional[LedgerConfig] = None):
        self.config = config or get_config()
        self.audit_trail = AuditTrail()
        self.directory = LedgerDirectory(self.config)
        self.processor = TransactionProcessor(self.directory)
        self.access = AccessManager(self.directory, self.audit_trail, self.config)
        self.logger = get_logger("banking_ledger.system")

    @property
    def current_principal(self) -> Optional[Principal]:
        return self.access.current_principal

    def log_action(self, action: str, details: str = "") -> AuditEntry:
        """Record an audit entry on behalf of the logged-in principal"""
        principal = self.access.current_principal
        actor = principal.username if principal else "SYSTEM"
        role = principal.role if principal else None

        entry = self.audit_trail.record(actor, role, action, details)

        if self.config.enable_audit_logging:
            log_action(
                self.logger, "info", details or action,
                user_id=actor, action=action,
                extra={"sequence": entry.sequence}
            )
        return entry

    def audit_replay(self) -> Optional[List[AuditEntry]]:
        """Audit entries, most recent first (admins only)"""
        if not self.access.authorize(MenuAction.VIEW_AUDIT_TRAIL):
            return None
        return self.audit_trail.replay()

    # Session

    def login(self, credentials: Iterable[Tuple[str, str]]) -> Optional[Principal]:
        return self.access.login(credentials)

    def authenticate(self, username: str, secret: str) -> Optional[Principal]:
        return self.access.authenticate(username, secret)

    def logout(self) -> bool:
        return self.access.logout()

    def has_permission(self, permission: Permission) -> bool:
        return self.access.has_permission(permission)

    def can_access_account(self, account_no: str, principal: Optional[Principal] = None) -> bool:
        return self.access.can_access_account(principal or self.access.current_principal, account_no)

    def change_password(self, username: str, old_password: str, new_password: str) -> Optional[Principal]:
        return self.access.change_password(username, old_password, new_password)

    def register_principal(self, principal: Principal) -> bool:
        """
        Add a principal to the identity registry.

        With nobody logged in this bootstraps the registry; once a session is
        open only an admin may register further principals.
        """
        current = self.access.current_principal
        if current is not None and current.role != Role.ADMIN:
            self.audit_trail.record(
                current.username, current.role, "REGISTER_PRINCIPAL_DENIED",
                f"Attempted to register: {principal.username}"
            )
            return False
        return self.access.register_principal(principal)

    def available_actions(self) -> List[MenuAction]:
        """Menu actions the logged-in principal may select"""
        principal = self.access.current_principal
        if principal is None:
            return []
        return MenuAction.available_for(principal.role)

    # Customers

    def create_customer(self, name: str, customer_id: Optional[str] = None) -> Optional[Customer]:
        if not self.access.authorize(MenuAction.CREATE_CUSTOMER):
            return None

        customer = self.directory.create_customer(name, customer_id)
        self.log_action("CREATE_CUSTOMER", f"Created customer: {customer.customer_id}")
        return customer

    def set_customer_profile(
        self,
        customer_id: str,
        address: str,
        phone: str,
        email: str,
        profile_id: Optional[str] = None
    ) -> Optional[CustomerProfile]:
        if not self.access.authorize(MenuAction.CREATE_CUSTOMER_PROFILE):
            return None

        profile = self.directory.set_customer_profile(customer_id, address, phone, email, profile_id)
        self.log_action(
            "UPDATE_PROFILE", f"Profile {profile.profile_id} set for customer: {customer_id}"
        )
        return profile

    def find_customer(self, customer_id: str) -> Optional[Customer]:
        if not self.access.authorize(MenuAction.VIEW_CUSTOMER_DETAILS):
            return None
        return self.directory.find_customer(customer_id)

    def list_customers(self) -> Optional[List[Customer]]:
        if not self.access.authorize(MenuAction.VIEW_ALL_CUSTOMERS):
            return None
        return self.directory.list_customers()

    def delete_customer(self, customer_id: str) -> bool:
        """Delete a customer, every account it owns and every login linked to it"""
        if not self.access.authorize(MenuAction.DELETE_CUSTOMER):
            return False

        customer = self.directory.find_customer(customer_id)
        if customer is None:
            self.log_action("DELETE_CUSTOMER_FAILED", f"Customer not found: {customer_id}")
            return False

        account_count = len(customer.account_numbers)
        all_deleted = self.directory.delete_customer(customer_id)
        self.access.remove_principals_for_customer(customer_id)

        if all_deleted:
            self.log_action(
                "DELETE_CUSTOMER",
                f"Deleted customer {customer_id} with {account_count} account(s)"
            )
        else:
            self.log_action(
                "DELETE_CUSTOMER_PARTIAL",
                f"Deleted customer {customer_id}; some accounts could not be deleted"
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
    ) -> Optional[Account]:
        if not self.access.authorize(MenuAction.CREATE_ACCOUNT):
            return None

        account = self.directory.create_account(
            customer_id, kind, account_no,
            interest_rate=interest_rate, overdraft_limit=overdraft_limit
        )
        self.log_action(
            "CREATE_ACCOUNT",
            f"Created {account.kind.name} account {account.account_no} for customer: {customer_id}"
        )
        return account

    def find_account(self, account_no: str) -> Optional[Account]:
        if not self.access.authorize(MenuAction.VIEW_ACCOUNT_DETAILS, account_no):
            return None
        return self.directory.find_account(account_no)

    def list_accounts(self) -> Optional[List[Account]]:
        if not self.access.authorize(MenuAction.VIEW_ALL_ACCOUNTS):
            return None
        return self.directory.list_accounts()

    def delete_account(self, account_no: str) -> bool:
        if not self.access.authorize(MenuAction.DELETE_ACCOUNT):
            return False

        if not self.directory.delete_account(account_no):
            self.log_action("DELETE_ACCOUNT_FAILED", f"Account not found: {account_no}")
            return False

        self.log_action("DELETE_ACCOUNT", f"Deleted account: {account_no}")
        return True

    def update_overdraft_limit(self, account_no: str, new_limit: AmountLike) -> bool:
        if not self.access.authorize(MenuAction.UPDATE_OVERDRAFT_LIMIT):
            return False

        if not self.directory.update_overdraft_limit(account_no, new_limit):
            self.log_action(
                "UPDATE_OVERDRAFT_LIMIT_FAILED", f"Limit {new_limit} rejected for account: {account_no}"
            )
            return False

        self.log_action("UPDATE_OVERDRAFT_LIMIT", f"Account {account_no} overdraft limit set to {new_limit}")
        return True

    def apply_interest_to_all_savings(self) -> Optional[List[InterestResult]]:
        if not self.access.authorize(MenuAction.APPLY_INTEREST):
            return None

        results = self.directory.apply_interest_to_all_savings()
        self.log_action("APPLY_INTEREST", f"Interest applied to {len(results)} savings account(s)")
        return results

    def sort_accounts_by_name(self) -> Optional[List[Account]]:
        if not self.access.authorize(MenuAction.SORT_ACCOUNTS_BY_NAME):
            return None

        accounts = self.directory.sort_accounts_by_name()
        self.log_action("SORT_ACCOUNTS_BY_NAME", f"Sorted {len(accounts)} account(s) by owner name")
        return accounts

    def sort_accounts_by_balance(self) -> Optional[List[Account]]:
        if not self.access.authorize(MenuAction.SORT_ACCOUNTS_BY_BALANCE):
            return None

        accounts = self.directory.sort_accounts_by_balance()
        self.log_action("SORT_ACCOUNTS_BY_BALANCE", f"Sorted {len(accounts)} account(s) by balance")
        return accounts

    # Transactions

    def deposit(self, account_no: str, amount: AmountLike) -> bool:
        if not self.access.authorize(MenuAction.DEPOSIT_MONEY, account_no):
            return False

        if self.processor.deposit(account_no, amount):
            self.log_action("DEPOSIT", f"Deposited {amount} to account: {account_no}")
            return True

        self.log_action("DEPOSIT_FAILED", f"Deposit of {amount} to account {account_no} failed")
        return False

    def withdraw(self, account_no: str, amount: AmountLike) -> bool:
        if not self.access.authorize(MenuAction.WITHDRAW_MONEY, account_no):
            return False

        if self.processor.withdraw(account_no, amount):
            self.log_action("WITHDRAW", f"Withdrew {amount} from account: {account_no}")
            return True

        self.log_action("WITHDRAW_FAILED", f"Withdrawal of {amount} from account {account_no} failed")
        return False

    def transfer(self, from_account_no: str, to_account_no: str, amount: AmountLike) -> bool:
        """
        Transfer between accounts. Only the source is ownership-checked; any
        existing destination may receive funds.
        """
        if not self.access.authorize(MenuAction.TRANSFER_MONEY, from_account_no):
            return False

        if self.processor.transfer(from_account_no, to_account_no, amount):
            self.log_action("TRANSFER", f"Transferred {amount} from {from_account_no} to {to_account_no}")
            return True

        self.log_action(
            "TRANSFER_FAILED", f"Transfer of {amount} from {from_account_no} to {to_account_no} failed"
        )
        return False

    def transaction_history(self, account_no: str) -> Optional[List[Transaction]]:
        """Transactions of one account, most recent first"""
        if not self.access.authorize(MenuAction.VIEW_TRANSACTION_HISTORY, account_no):
            return None

        account = self.directory.find_account(account_no)
        if account is None:
            return None
        return account.history
