"""
Transaction Processing Module

Executes deposits, withdrawals and transfers against the ledger directory.
Every operation runs in three steps: locate the accounts, apply the balance
change, then append an immutable Transaction to the history of each account
it touches. Declined operations are recorded as FAILED transactions rather
than dropped. The processor performs no authorization; callers gate access
before invoking it.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from .accounts import AmountLike, to_amount
from .directory import LedgerDirectory
from .logging_config import get_logger, log_action


class TransactionType(Enum):
    """Types of ledger transactions"""
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    TRANSFER = "transfer"


class TransactionStatus(Enum):
    """Final outcome of a transaction"""
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class Transaction:
    """
    Immutable record of one deposit, withdrawal or transfer attempt
    """
    id: int
    transaction_type: TransactionType
    amount: Decimal
    status: TransactionStatus
    from_account: Optional[str] = None
    to_account: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.from_account and not self.to_account:
            raise ValueError("Transaction must have at least one account (from_account or to_account)")

        if self.amount <= 0:
            raise ValueError("Transaction amount must be positive")

    @property
    def reference(self) -> str:
        return f"TX{self.id:03d}"

    @property
    def is_completed(self) -> bool:
        return self.status == TransactionStatus.COMPLETED

    @property
    def is_failed(self) -> bool:
        return self.status == TransactionStatus.FAILED


class TransactionProcessor:
    """
    Processes ledger transactions with per-account history ordering.

    Transaction IDs come from a counter scoped to this instance; they are
    unique only within one running processor.
    """

    def __init__(self, directory: LedgerDirectory):
        self.directory = directory
        self.logger = get_logger("banking_ledger.transactions")
        self._next_id = 1
        self._transactions: List[Transaction] = []

    @property
    def transactions(self) -> List[Transaction]:
        """Every transaction produced by this processor, oldest first"""
        return list(self._transactions)

    @property
    def last_transaction(self) -> Optional[Transaction]:
        return self._transactions[-1] if self._transactions else None

    def _new_transaction(
        self,
        transaction_type: TransactionType,
        amount: Decimal,
        status: TransactionStatus,
        from_account: Optional[str] = None,
        to_account: Optional[str] = None
    ) -> Transaction:
        transaction = Transaction(
            id=self._next_id,
            transaction_type=transaction_type,
            amount=amount,
            status=status,
            from_account=from_account,
            to_account=to_account,
            created_at=datetime.now(timezone.utc)
        )
        self._next_id += 1
        self._transactions.append(transaction)
        return transaction

    def _log(self, transaction: Transaction) -> None:
        level = "info" if transaction.is_completed else "warning"
        log_action(
            self.logger, level,
            f"{transaction.transaction_type.value.capitalize()} {transaction.status.value}: {transaction.reference}",
            action=transaction.transaction_type.value,
            resource=f"transaction:{transaction.reference}",
            extra={
                "amount": str(transaction.amount),
                "from_account": transaction.from_account,
                "to_account": transaction.to_account,
                "status": transaction.status.value
            }
        )

    def deposit(self, account_no: str, amount: AmountLike) -> bool:
        """
        Deposit into an account

        Returns:
            False if the account does not exist, True otherwise

        Raises:
            InvalidAmount: if amount is not positive
        """
        value = to_amount(amount)
        account = self.directory.find_account(account_no)
        if account is None:
            self.logger.warning(f"Deposit rejected, account not found: {account_no}")
            return False

        account.deposit(value)
        transaction = self._new_transaction(
            TransactionType.DEPOSIT, value, TransactionStatus.COMPLETED, to_account=account_no
        )
        account.add_transaction(transaction)

        self._log(transaction)
        return True

    def withdraw(self, account_no: str, amount: AmountLike) -> bool:
        """
        Withdraw from an account, subject to the account's floor

        Returns:
            True on success; False if the account does not exist or the
            withdrawal was declined (a FAILED transaction is recorded)

        Raises:
            InvalidAmount: if amount is not positive
        """
        value = to_amount(amount)
        account = self.directory.find_account(account_no)
        if account is None:
            self.logger.warning(f"Withdrawal rejected, account not found: {account_no}")
            return False

        succeeded = account.withdraw(value)
        status = TransactionStatus.COMPLETED if succeeded else TransactionStatus.FAILED
        transaction = self._new_transaction(
            TransactionType.WITHDRAW, value, status, from_account=account_no
        )
        account.add_transaction(transaction)

        self._log(transaction)
        return succeeded

    def transfer(self, from_account_no: str, to_account_no: str, amount: AmountLike) -> bool:
        """
        Move funds between two accounts atomically

        The source is debited first. If that is declined, one FAILED
        transaction is recorded on the source and the destination is left
        untouched. Once the debit succeeds the credit cannot fail, and the
        same COMPLETED transaction is appended to both histories.

        Returns:
            True on success; False if either account is missing, both are the
            same account, or the source cannot cover the amount

        Raises:
            InvalidAmount: if amount is not positive
        """
        value = to_amount(amount)

        if from_account_no == to_account_no:
            self.logger.warning(f"Transfer rejected, source and destination are both {from_account_no}")
            return False

        from_account = self.directory.find_account(from_account_no)
        to_account = self.directory.find_account(to_account_no)
        if from_account is None or to_account is None:
            self.logger.warning(
                f"Transfer rejected, account not found: {from_account_no} -> {to_account_no}"
            )
            return False

        if not from_account.withdraw(value):
            transaction = self._new_transaction(
                TransactionType.TRANSFER, value, TransactionStatus.FAILED,
                from_account=from_account_no, to_account=to_account_no
            )
            from_account.add_transaction(transaction)
            self._log(transaction)
            return False

        to_account.deposit(value)
        transaction = self._new_transaction(
            TransactionType.TRANSFER, value, TransactionStatus.COMPLETED,
            from_account=from_account_no, to_account=to_account_no
        )
        from_account.add_transaction(transaction)
        to_account.add_transaction(transaction)

        self._log(transaction)
        return True
