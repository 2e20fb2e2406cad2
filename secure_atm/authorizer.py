"""
Transaction Authorization Module

Withdrawals and transfers against the active session's account. Each
operation runs validate -> apply -> log as one unit under the terminal
lock: a rejected operation changes no balance and no session total.
"""

from decimal import Decimal
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union
import threading

from .accounts import Account, AccountLedger
from .audit import AuditTrail, AuditEventType
from .config import ATMConfig, get_config
from .currency import format_amount, validate_amount
from .errors import AccountLocked, ATMError, DailyLimitExceeded, InsufficientFunds, InvalidInput
from .history import Transaction, TransactionType
from .logging_config import get_logger, log_action
from .sessions import Session, SessionManager


@dataclass(frozen=True)
class TransactionResult:
    """Outcome of an applied money movement"""
    transaction: Transaction
    balance: Decimal  # Source balance after the operation
    daily_total: Decimal  # Session total for this operation type


class TransactionAuthorizer:
    """
    Applies money movements gated by the session manager's limits
    """

    def __init__(
        self,
        ledger: AccountLedger,
        sessions: SessionManager,
        config: Optional[ATMConfig] = None,
        audit_trail: Optional[AuditTrail] = None,
        lock: Optional[threading.RLock] = None
    ):
        self.ledger = ledger
        self.sessions = sessions
        self.config = config or get_config()
        self.audit_trail = audit_trail
        self._lock = lock or threading.RLock()
        self.logger = get_logger("secure_atm.authorizer")

    def _active_account(self) -> Tuple[Session, Account]:
        session = self.sessions.require_valid()
        return session, self.ledger.get(session.account_number)

    def _check_funds(self, account: Account, amount: Decimal) -> None:
        if amount > account.balance - self.config.min_balance:
            raise InsufficientFunds(
                f"Balance must stay at or above {format_amount(self.config.min_balance)}"
            )

    def _reject(self, session: Session, operation: TransactionType,
                amount, error: ATMError) -> None:
        if self.audit_trail:
            self.audit_trail.log_event(
                AuditEventType.TRANSACTION_REJECTED,
                session.account_number,
                {"operation": operation.value, "amount": str(amount),
                 "reason": error.kind},
                session.session_id
            )
        log_action(self.logger, "warning", f"{operation.value} rejected",
                   account=session.account_number, action=operation.value.lower(),
                   session_id=session.session_id, extra={"reason": error.kind})

    def _complete(self, session: Session, account: Account, transaction: Transaction,
                  event_type: AuditEventType, metadata: dict) -> None:
        self.sessions.record_operation(transaction.transaction_type, transaction.amount)
        if self.audit_trail:
            self.audit_trail.log_event(
                event_type,
                account.account_number,
                dict(metadata, transaction_id=transaction.transaction_id,
                     amount=transaction.amount, balance=account.balance),
                session.session_id
            )
        log_action(self.logger, "info", f"{transaction.transaction_type.value} applied",
                   account=account.account_number,
                   action=transaction.transaction_type.value.lower(),
                   session_id=session.session_id,
                   extra={"amount": str(transaction.amount)})

    def withdraw(self, amount: Union[str, int, Decimal]) -> TransactionResult:
        """
        Withdraw cash from the session's account

        Raises:
            SessionTimeout: If the session is no longer valid
            InvalidInput: If the amount is not positive, finite, or exceeds
                max_transaction_amount
            DailyLimitExceeded: If the session withdrawal total would pass
                max_daily_withdrawal
            InsufficientFunds: If the balance would fall below min_balance
        """
        with self._lock:
            session, account = self._active_account()
            try:
                value = validate_amount(amount, self.config.max_transaction_amount)
                if session.daily_withdrawal + value > self.config.max_daily_withdrawal:
                    raise DailyLimitExceeded(
                        f"Daily withdrawal limit of {format_amount(self.config.max_daily_withdrawal)} "
                        f"would be exceeded"
                    )
                self._check_funds(account, value)
            except ATMError as e:
                self._reject(session, TransactionType.WITHDRAWAL, amount, e)
                raise

            account.balance -= value
            transaction = self.ledger.record_transaction(
                account,
                TransactionType.WITHDRAWAL,
                value,
                f"Withdrawal of {value:.2f} {self.config.currency}"
            )
            self._complete(session, account, transaction, AuditEventType.WITHDRAWAL, {})

            return TransactionResult(
                transaction=transaction,
                balance=account.balance,
                daily_total=session.daily_withdrawal
            )

    def transfer(self, target_account_number: str,
                 amount: Union[str, int, Decimal]) -> TransactionResult:
        """
        Move funds from the session's account to another terminal account

        Raises:
            SessionTimeout: If the session is no longer valid
            InvalidInput: On a bad amount, an unknown target, or a target
                equal to the source
            AccountLocked: If the target account is locked
            DailyLimitExceeded: If the session transfer total would pass
                max_daily_transfer
            InsufficientFunds: If the source balance would fall below
                min_balance
        """
        with self._lock:
            session, source = self._active_account()
            try:
                value = validate_amount(amount, self.config.max_transaction_amount)
                target = self.ledger.find(target_account_number)
                if target is None:
                    raise InvalidInput("Unknown target account")
                if target is source:
                    raise InvalidInput("Cannot transfer to the same account")
                if self.ledger.is_locked(target):
                    raise AccountLocked("Target account is locked")
                if session.daily_transfer + value > self.config.max_daily_transfer:
                    raise DailyLimitExceeded(
                        f"Daily transfer limit of {format_amount(self.config.max_daily_transfer)} "
                        f"would be exceeded"
                    )
                self._check_funds(source, value)
            except ATMError as e:
                self._reject(session, TransactionType.TRANSFER, amount, e)
                raise

            source.balance -= value
            target.balance += value
            transaction = self.ledger.record_transaction(
                source,
                TransactionType.TRANSFER,
                value,
                f"Transfer of {value:.2f} {self.config.currency} to account {target.account_number}"
            )
            self._complete(session, source, transaction, AuditEventType.TRANSFER,
                           {"target_account": target.account_number})

            return TransactionResult(
                transaction=transaction,
                balance=source.balance,
                daily_total=session.daily_transfer
            )

    def balance_inquiry(self) -> Decimal:
        """Current balance of the session's account; not counted as a transaction"""
        with self._lock:
            _, account = self._active_account()
            return account.balance

    def mini_statement(self, limit: int = 10) -> List[Transaction]:
        """Most recent transactions of the session's account, oldest first"""
        with self._lock:
            _, account = self._active_account()
            return self.ledger.history(account, limit)
