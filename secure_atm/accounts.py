"""
Account Ledger Module

Holds the terminal's provisioned accounts: identity, balance, lock state
and bounded transaction history. Balances are only changed by the
transaction authorizer; lock state only by the PIN lockout logic.
"""

from decimal import Decimal
from datetime import datetime, timedelta, timezone
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Union

from .audit import AuditTrail, AuditEventType
from .config import ATMConfig, get_config
from .credentials import CredentialStore, SecurePIN, generate_secure_id
from .currency import quantize_amount, to_amount
from .errors import InvalidInput
from .history import Transaction, TransactionHistory, TransactionType
from .hygiene import InputKind, MAX_DETAIL_LENGTH, sanitize, validate_format
from .logging_config import get_logger, log_action

MAX_NAME_LENGTH = 49


@dataclass
class Account:
    """
    Provisioned bank account

    `account_number` and `name` never change after provisioning.
    """
    name: str
    account_number: str
    balance: Decimal
    history: TransactionHistory
    credential: Optional[SecurePIN] = field(default=None, repr=False)
    is_locked: bool = False
    lock_until: Optional[datetime] = None
    failed_attempts: int = 0

    @property
    def transaction_count(self) -> int:
        """Number of transactions ever recorded"""
        return self.history.total


class AccountLedger:
    """
    Manages the fixed set of terminal accounts
    """

    def __init__(
        self,
        config: Optional[ATMConfig] = None,
        credential_store: Optional[CredentialStore] = None,
        audit_trail: Optional[AuditTrail] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.config = config or get_config()
        self.credential_store = credential_store or CredentialStore(self.config)
        self.audit_trail = audit_trail
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = get_logger("secure_atm.accounts")
        self._accounts: Dict[str, Account] = {}

    def provision(
        self,
        name: str,
        account_number: str,
        pin: str,
        opening_balance: Union[str, int, Decimal] = Decimal('0')
    ) -> Account:
        """
        Create an account with a salted PIN credential

        Args:
            name: Display name of the holder
            account_number: Unique account number (digits)
            pin: Initial PIN
            opening_balance: Non-negative starting balance

        Returns:
            Created Account

        Raises:
            InvalidInput: On a malformed field, a duplicate account number,
                or when the terminal already holds max_accounts accounts
        """
        if len(self._accounts) >= self.config.max_accounts:
            raise InvalidInput(f"Terminal holds at most {self.config.max_accounts} accounts")

        if not validate_format(account_number, InputKind.ACCOUNT_NUMBER, self.config):
            raise InvalidInput("Account number must be 4 to 20 digits")
        if account_number in self._accounts:
            raise InvalidInput(f"Account {account_number} already exists")

        clean_name = sanitize(name or "", max_length=MAX_NAME_LENGTH).strip()
        if not clean_name:
            raise InvalidInput("Account name must not be empty")

        balance = to_amount(opening_balance)
        if balance < 0:
            raise InvalidInput("Opening balance cannot be negative")

        account = Account(
            name=clean_name,
            account_number=account_number,
            balance=quantize_amount(balance),
            history=TransactionHistory(self.config.max_transaction_history)
        )
        self.credential_store.provision(account, pin)
        self._accounts[account_number] = account

        if self.audit_trail:
            self.audit_trail.log_event(
                AuditEventType.ACCOUNT_PROVISIONED,
                account_number,
                {"name": clean_name}
            )
        log_action(self.logger, "info", "Account provisioned",
                   account=account_number, action="provision")

        return account

    def get(self, account_number: str) -> Account:
        """
        Look up an account by number

        Raises:
            InvalidInput: If no such account exists
        """
        account = self._accounts.get(account_number) if isinstance(account_number, str) else None
        if account is None:
            raise InvalidInput("Unknown account")
        return account

    def find(self, account_number: str) -> Optional[Account]:
        return self._accounts.get(account_number)

    def list_accounts(self) -> List[Account]:
        return list(self._accounts.values())

    def __len__(self) -> int:
        return len(self._accounts)

    def lock(self, account: Account, duration: Optional[timedelta] = None) -> None:
        """Lock an account for `duration` (default lockout_duration_seconds)"""
        if duration is None:
            duration = timedelta(seconds=self.config.lockout_duration_seconds)

        account.is_locked = True
        account.lock_until = self.clock() + duration

        if self.audit_trail:
            self.audit_trail.log_event(
                AuditEventType.ACCOUNT_LOCKED,
                account.account_number,
                {"lock_until": account.lock_until,
                 "failed_attempts": account.failed_attempts}
            )
        log_action(self.logger, "warning", "Account locked",
                   account=account.account_number, action="lock",
                   extra={"lock_until": account.lock_until.isoformat()})

    def is_locked(self, account: Account) -> bool:
        """
        Check the lock, releasing it once lock_until has passed

        Auto-unlock also resets the failed attempt counter.
        """
        if not account.is_locked:
            return False

        if account.lock_until is not None and self.clock() < account.lock_until:
            return True

        account.is_locked = False
        account.lock_until = None
        account.failed_attempts = 0

        if self.audit_trail:
            self.audit_trail.log_event(AuditEventType.ACCOUNT_UNLOCKED, account.account_number)
        log_action(self.logger, "info", "Account lock expired",
                   account=account.account_number, action="unlock")
        return False

    def record_transaction(
        self,
        account: Account,
        transaction_type: TransactionType,
        amount: Decimal,
        details: str
    ) -> Transaction:
        """Append a record to the account's history ring"""
        transaction = Transaction(
            transaction_id=generate_secure_id(),
            timestamp=self.clock(),
            transaction_type=transaction_type,
            amount=amount,
            details=sanitize(details, MAX_DETAIL_LENGTH)
        )
        account.history.push(transaction)
        return transaction

    def history(self, account: Account, limit: Optional[int] = None) -> List[Transaction]:
        """Recorded transactions, oldest first"""
        if limit is None:
            return list(account.history)
        return account.history.latest(limit)

    def wipe_credentials(self) -> None:
        """Zero every stored credential"""
        for account in self._accounts.values():
            if account.credential is not None:
                account.credential.wipe()
