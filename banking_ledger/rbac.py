"""
Role-Based Access Control Module

Principals, roles, permissions and the two-layer authorization gate used by
every ledger operation: a coarse role check per menu action, followed by an
ownership check for actions that touch a specific account. Also holds the
login session state machine and password changes.
"""

import hmac
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, List, Optional, Set, Tuple

from .audit import AuditTrail
from .config import LedgerConfig, get_config
from .customers import CUSTOMER_ID_PATTERN
from .directory import LedgerDirectory
from .exceptions import InvalidArgument
from .logging_config import get_logger, log_action


class Role(Enum):
    """Principal roles"""
    ADMIN = "admin"
    CUSTOMER = "customer"


class Permission(Enum):
    """System permissions"""
    # Session permissions
    LOGOUT = "logout"
    EXIT_APP = "exit_app"
    CHANGE_PASSWORD = "change_password"

    # Customer permissions
    CREATE_CUSTOMER = "create_customer"
    VIEW_CUSTOMER_DETAILS = "view_customer_details"
    VIEW_ALL_CUSTOMERS = "view_all_customers"
    DELETE_CUSTOMER = "delete_customer"
    CREATE_CUSTOMER_PROFILE = "create_customer_profile"
    UPDATE_PROFILE_INFORMATION = "update_profile_information"

    # Account permissions
    CREATE_ACCOUNT = "create_account"
    VIEW_ACCOUNT_DETAILS = "view_account_details"
    VIEW_ALL_ACCOUNTS = "view_all_accounts"
    DELETE_ACCOUNT = "delete_account"
    UPDATE_OVERDRAFT_LIMIT = "update_overdraft_limit"

    # Transaction permissions
    DEPOSIT_MONEY = "deposit_money"
    WITHDRAW_MONEY = "withdraw_money"
    TRANSFER_MONEY = "transfer_money"
    VIEW_TRANSACTION_HISTORY = "view_transaction_history"

    # Reporting permissions
    APPLY_INTEREST = "apply_interest"
    SORT_ACCOUNTS_BY_NAME = "sort_accounts_by_name"
    SORT_ACCOUNTS_BY_BALANCE = "sort_accounts_by_balance"
    VIEW_AUDIT_TRAIL = "view_audit_trail"


ROLE_PERMISSIONS = {
    Role.ADMIN: frozenset(Permission),
    Role.CUSTOMER: frozenset({
        Permission.VIEW_ACCOUNT_DETAILS,
        Permission.DEPOSIT_MONEY,
        Permission.WITHDRAW_MONEY,
        Permission.TRANSFER_MONEY,
        Permission.VIEW_TRANSACTION_HISTORY,
        Permission.CHANGE_PASSWORD,
        Permission.LOGOUT,
        Permission.EXIT_APP,
    }),
}


class MenuAction(Enum):
    """
    Operations a principal can select, with the role each one requires.
    A required role of None means every authenticated role may use it.
    """
    CREATE_CUSTOMER = ("Create Customer", Role.ADMIN, Permission.CREATE_CUSTOMER)
    VIEW_CUSTOMER_DETAILS = ("View Customer Details", Role.ADMIN, Permission.VIEW_CUSTOMER_DETAILS)
    VIEW_ALL_CUSTOMERS = ("View All Customers", Role.ADMIN, Permission.VIEW_ALL_CUSTOMERS)
    DELETE_CUSTOMER = ("Delete Customer", Role.ADMIN, Permission.DELETE_CUSTOMER)

    CREATE_ACCOUNT = ("Create Account", Role.ADMIN, Permission.CREATE_ACCOUNT)
    VIEW_ACCOUNT_DETAILS = ("View Account Details", None, Permission.VIEW_ACCOUNT_DETAILS)
    VIEW_ALL_ACCOUNTS = ("View All Accounts", Role.ADMIN, Permission.VIEW_ALL_ACCOUNTS)
    DELETE_ACCOUNT = ("Delete Account", Role.ADMIN, Permission.DELETE_ACCOUNT)
    UPDATE_OVERDRAFT_LIMIT = ("Update Overdraft Limit (Checking)", Role.ADMIN, Permission.UPDATE_OVERDRAFT_LIMIT)

    DEPOSIT_MONEY = ("Deposit Money", None, Permission.DEPOSIT_MONEY)
    WITHDRAW_MONEY = ("Withdraw Money", None, Permission.WITHDRAW_MONEY)
    TRANSFER_MONEY = ("Transfer Money", None, Permission.TRANSFER_MONEY)
    VIEW_TRANSACTION_HISTORY = ("View Transaction History", None, Permission.VIEW_TRANSACTION_HISTORY)

    CREATE_CUSTOMER_PROFILE = ("Create/Update Customer Profile", Role.ADMIN, Permission.CREATE_CUSTOMER_PROFILE)
    UPDATE_PROFILE_INFORMATION = ("Update Profile Information", Role.ADMIN, Permission.UPDATE_PROFILE_INFORMATION)

    APPLY_INTEREST = ("Apply Interest (All Savings Accounts)", Role.ADMIN, Permission.APPLY_INTEREST)
    SORT_ACCOUNTS_BY_NAME = ("Sort Accounts by Name", Role.ADMIN, Permission.SORT_ACCOUNTS_BY_NAME)
    SORT_ACCOUNTS_BY_BALANCE = ("Sort Accounts by Balance", Role.ADMIN, Permission.SORT_ACCOUNTS_BY_BALANCE)
    VIEW_AUDIT_TRAIL = ("View Audit Trail", Role.ADMIN, Permission.VIEW_AUDIT_TRAIL)

    CHANGE_PASSWORD = ("Change Password", None, Permission.CHANGE_PASSWORD)
    EXIT_APPLICATION = ("Exit Application", None, Permission.EXIT_APP)
    LOGOUT = ("Logout", None, Permission.LOGOUT)

    def __init__(self, display_name: str, required_role: Optional[Role], permission: Permission):
        self.display_name = display_name
        self.required_role = required_role
        self.permission = permission

    def can_access(self, role: Optional[Role]) -> bool:
        """Role-level gate: no role never passes, no required role always passes"""
        if role is None:
            return False
        if self.required_role is None:
            return True
        return self.required_role == role

    @classmethod
    def available_for(cls, role: Role) -> List['MenuAction']:
        return [action for action in cls if action.can_access(role)]


@dataclass(frozen=True)
class Principal:
    """
    Authenticated identity. Immutable: a password change produces a new
    Principal that replaces this one in the registry.
    """
    username: str
    secret: str
    role: Role
    linked_customer_id: Optional[str] = None
    password_change_required: bool = False

    def __post_init__(self):
        if not self.username:
            raise InvalidArgument("Username is required")

        if self.role == Role.CUSTOMER:
            if not self.linked_customer_id or not CUSTOMER_ID_PATTERN.fullmatch(self.linked_customer_id):
                raise InvalidArgument("Customer principals must be linked to a customer ID (C###)")
        elif self.linked_customer_id is not None:
            raise InvalidArgument("Admin principals cannot be linked to a customer")

    @classmethod
    def admin(cls, username: str, secret: str) -> 'Principal':
        return cls(username=username, secret=secret, role=Role.ADMIN)

    @classmethod
    def customer(cls, username: str, secret: str, linked_customer_id: str,
                 password_change_required: bool = True) -> 'Principal':
        return cls(
            username=username,
            secret=secret,
            role=Role.CUSTOMER,
            linked_customer_id=linked_customer_id,
            password_change_required=password_change_required
        )

    @property
    def permissions(self) -> Set[Permission]:
        return set(ROLE_PERMISSIONS[self.role])

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def has_permission(self, permission: Permission) -> bool:
        return permission in ROLE_PERMISSIONS[self.role]

    def check_secret(self, secret: str) -> bool:
        return hmac.compare_digest(self.secret.encode('utf-8'), (secret or "").encode('utf-8'))

    def with_secret(self, new_secret: str) -> 'Principal':
        """Return a replacement principal carrying the new secret"""
        return replace(self, secret=new_secret, password_change_required=False)


@dataclass
class PasswordPolicy:
    """Password policy configuration"""
    min_length: int = 4
    disallow_reuse: bool = True

    def validate(self, new_password: str, old_password: Optional[str] = None) -> Tuple[bool, List[str]]:
        """Validate a new password against the policy"""
        violations = []

        if not new_password:
            violations.append("Password cannot be empty")
        elif len(new_password) < self.min_length:
            violations.append(f"Minimum length {self.min_length}")

        if self.disallow_reuse and old_password is not None and new_password == old_password:
            violations.append("Must differ from current password")

        return len(violations) == 0, violations


class SessionState(Enum):
    """Login session states"""
    ANONYMOUS = "anonymous"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    LOCKED_OUT = "locked_out"


class AccessManager:
    """
    Identity registry, login session and authorization gate.

    At most one principal is authenticated at a time. ``authorize`` is the
    single chokepoint account-touching operations pass through before the
    transaction processor runs.
    """

    def __init__(
        self,
        directory: LedgerDirectory,
        audit_trail: AuditTrail,
        config: Optional[LedgerConfig] = None
    ):
        self.directory = directory
        self.audit = audit_trail
        self.config = config or get_config()
        self.password_policy = PasswordPolicy(min_length=self.config.password_min_length)
        self.logger = get_logger("banking_ledger.rbac")

        self._registry: List[Principal] = []
        self._current: Optional[Principal] = None
        self._state = SessionState.ANONYMOUS
        self._failed_attempts = 0

    # Registry

    def register_principal(self, principal: Principal) -> bool:
        """Add a principal; usernames must be unique"""
        if self.find_principal(principal.username) is not None:
            self.logger.warning(f"Username already registered: {principal.username}")
            return False

        self._registry.append(principal)

        registered_by = self._current.username if self._current else "SYSTEM"
        self.audit.record(
            principal.username, principal.role, "USER_REGISTERED",
            f"Registered by: {registered_by}"
        )
        return True

    def remove_principals_for_customer(self, customer_id: str) -> List[Principal]:
        """
        Drop every principal linked to a deleted customer.

        Customer IDs can be issued again after a delete, so a surviving
        principal would pass the ownership gate for the next customer to
        receive the same ID. A removed principal that is logged in is logged
        out first.

        Returns:
            The removed principals
        """
        removed = [p for p in self._registry if p.linked_customer_id == customer_id]
        if not removed:
            return []

        if self._current is not None and self._current.linked_customer_id == customer_id:
            self.logout()

        self._registry = [p for p in self._registry if p.linked_customer_id != customer_id]

        for principal in removed:
            self.audit.record(
                principal.username, principal.role, "USER_DELETED",
                f"User account deleted (customer {customer_id} removed)"
            )
            log_action(
                self.logger, "info", f"Principal removed: {principal.username}",
                user_id=principal.username, action="remove_principal",
                resource=f"customer:{customer_id}"
            )
        return removed

    def find_principal(self, username: str) -> Optional[Principal]:
        for principal in self._registry:
            if principal.username == username:
                return principal
        return None

    @property
    def principals(self) -> List[Principal]:
        return list(self._registry)

    # Session

    @property
    def current_principal(self) -> Optional[Principal]:
        return self._current

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def failed_attempts(self) -> int:
        """Failed attempts in the most recent login call"""
        return self._failed_attempts

    def authenticate(self, username: str, secret: str) -> Optional[Principal]:
        """
        Check one username/secret pair against the registry.

        Both must match the same principal. A failure never says which of the
        two was wrong.
        """
        for principal in self._registry:
            if principal.username == username and principal.check_secret(secret):
                self.audit.record(username, principal.role, "LOGIN_SUCCESS", "User logged in successfully")
                log_action(
                    self.logger, "info", f"Login successful: {username}",
                    user_id=username, action="login"
                )
                return principal

        self.audit.record(username or "UNKNOWN", None, "LOGIN_FAILED", "Invalid credentials")
        log_action(self.logger, "warning", "Invalid credentials", action="login")
        return None

    def login(self, credentials: Iterable[Tuple[str, str]]) -> Optional[Principal]:
        """
        Run one login call over a sequence of (username, secret) attempts.

        At most ``max_login_attempts`` attempts are consumed; the failure
        counter starts from zero on every call. Running out of attempts
        leaves the session LOCKED_OUT, running out of input leaves it
        ANONYMOUS.
        """
        if self._current is not None:
            self.logout()

        max_attempts = self.config.max_login_attempts
        self._state = SessionState.AUTHENTICATING
        self._failed_attempts = 0

        for username, secret in credentials:
            principal = self.authenticate(username, secret)
            if principal is not None:
                self._current = principal
                self._state = SessionState.AUTHENTICATED
                return principal

            self._failed_attempts += 1
            if self._failed_attempts >= max_attempts:
                self._state = SessionState.LOCKED_OUT
                self.audit.record(
                    username or "UNKNOWN", None, "LOGIN_LOCKED_OUT",
                    f"Maximum attempts exceeded ({max_attempts})"
                )
                self.logger.warning("Login failed: maximum attempts exceeded")
                return None

        self._state = SessionState.ANONYMOUS
        return None

    def logout(self) -> bool:
        if self._current is None:
            return False

        self.audit.record(self._current.username, self._current.role, "LOGOUT", "User logged out")
        self._current = None
        self._state = SessionState.ANONYMOUS
        return True

    # Authorization

    def has_permission(self, permission: Permission, principal: Optional[Principal] = None) -> bool:
        """Check a permission for ``principal`` (the logged-in one by default)"""
        principal = principal or self._current
        if principal is None:
            return False
        return principal.has_permission(permission)

    def can_access_account(self, principal: Optional[Principal], account_no: str) -> bool:
        """
        Ownership gate: admins reach every account, customers only accounts
        owned by their linked customer. Unknown accounts are never accessible
        to customers.
        """
        if principal is None:
            return False

        if principal.role == Role.ADMIN:
            return True

        account = self.directory.find_account(account_no)
        if account is None:
            return False
        return account.owner_id == principal.linked_customer_id

    def authorize(self, action: MenuAction, account_no: Optional[str] = None) -> bool:
        """
        Two-layer gate for the logged-in principal: role and permission first,
        then ownership when ``account_no`` is given. Every denial is audited.
        """
        principal = self._current
        if principal is None:
            self.audit.record("ANONYMOUS", None, f"{action.name}_DENIED", "No authenticated principal")
            return False

        if not action.can_access(principal.role) or not principal.has_permission(action.permission):
            self.audit.record(
                principal.username, principal.role, f"{action.name}_DENIED",
                f"Role {principal.role.name} may not perform {action.display_name}"
            )
            log_action(
                self.logger, "warning", f"Action denied: {action.name}",
                user_id=principal.username, action=action.name
            )
            return False

        if account_no is not None and not self.can_access_account(principal, account_no):
            self.audit.record(
                principal.username, principal.role, "ACCESS_DENIED",
                f"Attempted {action.name} on account: {account_no}"
            )
            log_action(
                self.logger, "warning", f"Account access denied: {account_no}",
                user_id=principal.username, action=action.name, resource=f"account:{account_no}"
            )
            return False

        return True

    # Password management

    def change_password(self, username: str, old_password: str, new_password: str) -> Optional[Principal]:
        """
        Replace a principal's secret.

        Returns:
            The replacement Principal, or None if the user is unknown, the old
            password is wrong, or the new one violates the policy. The old
            object is discarded; holders must switch to the returned one.
        """
        for index, principal in enumerate(self._registry):
            if principal.username == username:
                break
        else:
            self.logger.warning(f"User not found: {username}")
            return None

        if not principal.check_secret(old_password):
            self.audit.record(username, principal.role, "CHANGE_PASSWORD_FAILED", "Current password is incorrect")
            return None

        is_valid, violations = self.password_policy.validate(new_password, old_password)
        if not is_valid:
            self.audit.record(
                username, principal.role, "CHANGE_PASSWORD_FAILED",
                f"Password policy violations: {', '.join(violations)}"
            )
            return None

        replacement = principal.with_secret(new_password)
        self._registry[index] = replacement

        if self._current is not None and self._current.username == username:
            self._current = replacement

        self.audit.record(username, principal.role, "CHANGE_PASSWORD", "User successfully changed their password")
        return replacement
