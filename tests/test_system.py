"""
Test suite for integration scenarios

Tests end-to-end flows through the BankingSystem facade: authorization
of every operation, audit records of outcomes, and cascading deletes.
"""

import pytest
from decimal import Decimal

from banking_ledger.config import LedgerConfig
from banking_ledger.exceptions import InvalidAmount
from banking_ledger.rbac import MenuAction, Permission, Principal, Role
from banking_ledger.system import BankingSystem
from banking_ledger.transactions import TransactionStatus, TransactionType


@pytest.fixture
def system():
    """Create a banking system with an admin, two customers and their accounts"""
    system = BankingSystem(LedgerConfig())
    system.register_principal(Principal.admin("admin", "admin123"))

    system.login([("admin", "admin123")])
    alice = system.create_customer("Alice")                  # C001
    bob = system.create_customer("Bob")                      # C002
    system.create_account(alice.customer_id, "savings")      # ACC001
    system.create_account(alice.customer_id, "checking")     # ACC002
    system.create_account(bob.customer_id, "savings")        # ACC003
    system.register_principal(Principal.customer("alice", "pass1", alice.customer_id))
    system.register_principal(Principal.customer("bob", "pass2", bob.customer_id))
    system.logout()
    return system


def actions(system):
    return [e.action for e in system.audit_trail.replay()]


class TestScenario:
    """Test the reference deposit / withdraw / transfer scenario"""

    def test_deposit_failed_withdraw_transfer(self, system):
        """Test deposit 100, failed withdraw 150, checking to savings transfer 50"""
        system.login([("alice", "pass1")])

        assert system.deposit("ACC001", Decimal('100')) is True
        assert system.withdraw("ACC001", Decimal('150')) is False
        assert system.transfer("ACC002", "ACC001", Decimal('50')) is True

        savings = system.find_account("ACC001")
        checking = system.find_account("ACC002")
        assert savings.balance == Decimal('150')
        assert checking.balance == Decimal('-50')

        history = system.transaction_history("ACC001")
        assert [tx.transaction_type for tx in history] == [
            TransactionType.TRANSFER, TransactionType.WITHDRAW, TransactionType.DEPOSIT
        ]
        assert history[1].status == TransactionStatus.FAILED
        assert [tx.reference for tx in history] == ["TX003", "TX002", "TX001"]

        assert actions(system)[:3] == ["TRANSFER", "WITHDRAW_FAILED", "DEPOSIT"]

    def test_invalid_amount_propagates(self, system):
        """Test invalid amounts raise after authorization passes"""
        system.login([("alice", "pass1")])
        with pytest.raises(InvalidAmount):
            system.deposit("ACC001", Decimal('-1'))


class TestAuthorizationMatrix:
    """Test admin any, customer own, customer other, nonexistent"""

    def test_admin_any_account(self, system):
        """Test admins may operate on every account"""
        system.login([("admin", "admin123")])

        assert system.deposit("ACC003", Decimal('10')) is True
        assert system.find_account("ACC001") is not None
        assert system.can_access_account("ACC003")

    def test_customer_own_account(self, system):
        """Test customers may operate on their own accounts"""
        system.login([("alice", "pass1")])

        assert system.deposit("ACC002", Decimal('10')) is True
        assert system.can_access_account("ACC001")

    def test_customer_other_account(self, system):
        """Test customers are denied other customers' accounts, with an audit record"""
        system.login([("alice", "pass1")])

        assert system.withdraw("ACC003", Decimal('1')) is False
        assert system.find_account("ACC003") is None
        assert system.transaction_history("ACC003") is None
        assert system.audit_trail.entries_for_action("ACCESS_DENIED")[0].actor == "alice"

    def test_customer_nonexistent_account(self, system):
        """Test customers are denied unknown accounts"""
        system.login([("alice", "pass1")])

        assert system.deposit("ACC999", Decimal('1')) is False
        assert actions(system)[0] == "ACCESS_DENIED"

    def test_admin_nonexistent_account(self, system):
        """Test admins pass the gate but the operation fails and is recorded"""
        system.login([("admin", "admin123")])

        assert system.deposit("ACC999", Decimal('1')) is False
        assert actions(system)[0] == "DEPOSIT_FAILED"

    def test_customer_admin_operations_denied(self, system):
        """Test the role gate on admin-only operations"""
        system.login([("alice", "pass1")])

        assert system.create_customer("Mallory") is None
        assert system.create_account("C001", "savings") is None
        assert system.delete_account("ACC001") is False
        assert system.delete_customer("C002") is False
        assert system.update_overdraft_limit("ACC002", "1000") is False
        assert system.apply_interest_to_all_savings() is None
        assert system.sort_accounts_by_name() is None
        assert system.sort_accounts_by_balance() is None
        assert system.list_accounts() is None
        assert system.audit_replay() is None

        denied = [a for a in actions(system) if a.endswith("_DENIED")]
        assert "CREATE_CUSTOMER_DENIED" in denied
        assert "VIEW_AUDIT_TRAIL_DENIED" in denied
        assert len(system.directory.list_accounts()) == 3

    def test_transfer_checks_source_only(self, system):
        """Test a customer may pay into another customer's account"""
        system.login([("alice", "pass1")])
        system.deposit("ACC001", Decimal('100'))

        assert system.transfer("ACC001", "ACC003", Decimal('40')) is True
        assert system.transfer("ACC003", "ACC001", Decimal('10')) is False

        system.logout()
        system.login([("bob", "pass2")])
        assert system.find_account("ACC003").balance == Decimal('40')

    def test_anonymous_denied(self, system):
        """Test nothing works without a session"""
        assert system.deposit("ACC001", Decimal('1')) is False
        assert system.has_permission(Permission.DEPOSIT_MONEY) is False
        assert system.available_actions() == []

    def test_available_actions(self, system):
        """Test menus per role"""
        system.login([("alice", "pass1")])
        assert MenuAction.CREATE_ACCOUNT not in system.available_actions()

        system.login([("admin", "admin123")])
        assert system.available_actions() == list(MenuAction)


class TestCustomerDeletion:
    """Test that deleting a customer also removes its logins"""

    def test_linked_login_removed_with_customer(self, system):
        """Test the deleted customer's principal is gone and audited"""
        system.login([("admin", "admin123")])

        assert system.delete_customer("C002") is True
        assert system.access.find_principal("bob") is None
        assert system.access.find_principal("alice") is not None

        deleted = system.audit_trail.entries_for_action("USER_DELETED")
        assert [e.actor for e in deleted] == ["bob"]
        assert "C002" in deleted[0].details

    def test_old_login_cannot_reach_reissued_customer_id(self, system):
        """Test a customer created under a recycled ID is not reachable by the old login"""
        system.login([("admin", "admin123")])
        system.delete_customer("C002")

        carol = system.create_customer("Carol")
        assert carol.customer_id == "C002"
        account = system.create_account(carol.customer_id, "savings")
        system.deposit(account.account_no, Decimal('1000'))
        system.logout()

        assert system.login([("bob", "pass2")]) is None
        assert system.withdraw(account.account_no, Decimal('1000')) is False
        assert account.balance == Decimal('1000')


class TestAdminOperations:
    """Test admin-only operations through the facade"""

    def setup_method(self):
        self.system = BankingSystem(LedgerConfig())
        self.system.register_principal(Principal.admin("admin", "admin123"))
        self.system.login([("admin", "admin123")])
        self.customer = self.system.create_customer("Carol")

    def test_cascading_delete_of_two_accounts(self):
        """Test deleting a customer removes both accounts and is audited"""
        self.system.create_account(self.customer.customer_id, "savings")
        self.system.create_account(self.customer.customer_id, "checking")

        assert self.system.delete_customer(self.customer.customer_id) is True
        assert self.system.find_customer(self.customer.customer_id) is None
        assert self.system.list_accounts() == []

        entry = self.system.audit_replay()[0]
        assert entry.action == "DELETE_CUSTOMER"
        assert "2 account(s)" in entry.details

    def test_delete_unknown_customer(self):
        """Test deleting an unknown customer fails and is recorded"""
        assert self.system.delete_customer("C404") is False
        assert self.system.audit_replay()[0].action == "DELETE_CUSTOMER_FAILED"

    def test_delete_account(self):
        """Test account deletion outcomes are audited"""
        account = self.system.create_account(self.customer.customer_id, "savings")

        assert self.system.delete_account(account.account_no) is True
        assert self.system.delete_account(account.account_no) is False
        assert actions(self.system)[:2] == ["DELETE_ACCOUNT_FAILED", "DELETE_ACCOUNT"]

    def test_apply_interest(self):
        """Test interest posting through the facade"""
        savings = self.system.create_account(self.customer.customer_id, "savings")
        self.system.deposit(savings.account_no, Decimal('1000'))

        results = self.system.apply_interest_to_all_savings()

        assert results[0].interest == Decimal('30.00')
        assert savings.balance == Decimal('1030.00')
        assert actions(self.system)[0] == "APPLY_INTEREST"

    def test_update_overdraft_limit(self):
        """Test overdraft update success and failure"""
        checking = self.system.create_account(self.customer.customer_id, "checking")

        assert self.system.update_overdraft_limit(checking.account_no, "100") is True
        assert checking.overdraft_limit == Decimal('100')
        assert self.system.update_overdraft_limit(checking.account_no, "-5") is False
        assert actions(self.system)[:2] == ["UPDATE_OVERDRAFT_LIMIT_FAILED", "UPDATE_OVERDRAFT_LIMIT"]

    def test_sorting(self):
        """Test sorting through the facade"""
        dave = self.system.create_customer("dave")
        first = self.system.create_account(dave.customer_id, "savings")
        second = self.system.create_account(self.customer.customer_id, "savings")
        self.system.deposit(first.account_no, Decimal('5'))
        self.system.deposit(second.account_no, Decimal('50'))

        by_name = self.system.sort_accounts_by_name()
        assert [a.account_no for a in by_name] == [second.account_no, first.account_no]

        by_balance = self.system.sort_accounts_by_balance()
        assert [a.account_no for a in by_balance] == [second.account_no, first.account_no]
        assert actions(self.system)[0] == "SORT_ACCOUNTS_BY_BALANCE"

    def test_customer_profile(self):
        """Test profile creation through the facade"""
        profile = self.system.set_customer_profile(
            self.customer.customer_id, "1 Main St", "555-123-4567", "carol@example.com"
        )
        assert profile.profile_id == "P001"
        assert self.system.find_customer(self.customer.customer_id).profile is profile

    def test_register_principal_requires_admin_session(self):
        """Test customers cannot register principals"""
        self.system.register_principal(Principal.customer("carol", "pass3", self.customer.customer_id))
        self.system.login([("carol", "pass3")])

        assert self.system.register_principal(Principal.admin("evil", "evil")) is False
        assert actions(self.system)[0] == "REGISTER_PRINCIPAL_DENIED"
        assert self.system.authenticate("evil", "evil") is None


class TestSessionThroughFacade:
    """Test login, password change and audit replay through the facade"""

    def test_change_password_then_login(self, system):
        """Test the old secret stops working after a change"""
        system.login([("alice", "pass1")])
        new = system.change_password("alice", "pass1", "s3cret")

        assert new.role == Role.CUSTOMER
        assert system.current_principal is new

        system.logout()
        assert system.login([("alice", "pass1")]) is None
        assert system.login([("alice", "s3cret")]) is not None

    def test_log_action_records_current_actor(self, system):
        """Test custom audit records carry the logged-in principal"""
        system.login([("bob", "pass2")])
        entry = system.log_action("EXIT_APP", "User exited")

        assert entry.actor == "bob"
        assert entry.role == Role.CUSTOMER

    def test_audit_replay_is_consistent(self, system):
        """Test the full trail replays newest first and verifies"""
        system.login([("admin", "admin123")])
        entries = system.audit_replay()

        assert entries[0].action == "LOGIN_SUCCESS"
        assert entries[-1].action == "USER_REGISTERED"
        assert [e.sequence for e in entries] == sorted((e.sequence for e in entries), reverse=True)
        assert system.audit_trail.verify_integrity()['valid']
