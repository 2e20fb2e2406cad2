"""
Session Management Module

PIN authentication with failed-attempt lockout, and the single active
terminal session: inactivity timeout, per-session operation quota and
cumulative withdrawal/transfer totals. Every operation is gated here.
"""

from decimal import Decimal
from datetime import datetime, timezone
from typing import Callable, Optional

from .accounts import Account, AccountLedger
from .audit import AuditTrail, AuditEventType
from .config import ATMConfig, get_config
from .credentials import CredentialStore, generate_secure_id
from .errors import AccountLocked, AuthenticationFailed, InvalidInput, SessionTimeout
from .history import TransactionType
from .hygiene import InputKind, SecretBuffer, validate_format
from .logging_config import get_logger, log_action


class Session:
    """
    Authorization context for one authenticated account

    The session id is held in a SecretBuffer so wipe() can zero it.
    """

    def __init__(self, account_number: str, now: datetime):
        self._id = SecretBuffer(generate_secure_id())
        self.account_number: Optional[str] = account_number
        self.is_active = True
        self.started_at: Optional[datetime] = now
        self.last_activity: Optional[datetime] = now
        self.transaction_count = 0
        self.daily_withdrawal = Decimal('0')
        self.daily_transfer = Decimal('0')

    @property
    def session_id(self) -> str:
        """32 hex characters, or "" once wiped"""
        return self._id.reveal().rstrip(b'\x00').decode('ascii')

    @property
    def is_wiped(self) -> bool:
        return self._id.is_wiped

    def wipe(self) -> None:
        """Zero every field and deactivate"""
        self._id.wipe()
        self.account_number = None
        self.is_active = False
        self.started_at = None
        self.last_activity = None
        self.transaction_count = 0
        self.daily_withdrawal = Decimal('0')
        self.daily_transfer = Decimal('0')

    def __repr__(self) -> str:
        state = "active" if self.is_active else "inactive"
        return f"Session({state}, transactions={self.transaction_count})"


class SessionManager:
    """
    Authenticates accounts and gates every operation on the active session
    """

    def __init__(
        self,
        ledger: AccountLedger,
        config: Optional[ATMConfig] = None,
        credential_store: Optional[CredentialStore] = None,
        audit_trail: Optional[AuditTrail] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.ledger = ledger
        self.config = config or get_config()
        self.credential_store = credential_store or ledger.credential_store
        self.audit_trail = audit_trail
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = get_logger("secure_atm.sessions")
        self.session: Optional[Session] = None

    def _audit(self, event_type: AuditEventType, account_number: Optional[str],
               metadata: Optional[dict] = None, session_id: Optional[str] = None) -> None:
        if self.audit_trail:
            self.audit_trail.log_event(event_type, account_number, metadata, session_id)

    # Authentication

    def authenticate(self, account_number: str, pin: str) -> Session:
        """
        Verify a PIN and open a session for the account

        A locked account is refused without counting an attempt. Each wrong
        PIN increments failed_attempts; reaching max_pin_attempts locks the
        account. A correct PIN resets the counter.

        Raises:
            InvalidInput: If the PIN is malformed
            AccountLocked: If the account is locked, or this failure locked it
            AuthenticationFailed: On an unknown account or wrong PIN
        """
        if not validate_format(pin, InputKind.PIN, self.config):
            raise InvalidInput(f"PIN must be exactly {self.config.pin_length} digits")

        account = self.ledger.find(account_number) if isinstance(account_number, str) else None
        if account is None:
            self._audit(AuditEventType.LOGIN_FAILED, None, {"reason": "unknown_account"})
            log_action(self.logger, "warning", "Authentication failed",
                       action="authenticate", extra={"reason": "unknown_account"})
            raise AuthenticationFailed("Invalid credentials")

        if self.ledger.is_locked(account):
            self._audit(AuditEventType.LOGIN_FAILED, account.account_number,
                        {"reason": "account_locked"})
            raise AccountLocked(f"Account locked until {account.lock_until.isoformat()}")

        if not self.credential_store.verify(account, pin):
            return self._register_failure(account)

        account.failed_attempts = 0
        self._audit(AuditEventType.LOGIN_SUCCESS, account.account_number)
        log_action(self.logger, "info", "Authentication succeeded",
                   account=account.account_number, action="authenticate")
        return self.start(account)

    def _register_failure(self, account: Account):
        account.failed_attempts = min(account.failed_attempts + 1, self.config.max_pin_attempts)
        remaining = self.config.max_pin_attempts - account.failed_attempts

        self._audit(AuditEventType.LOGIN_FAILED, account.account_number,
                    {"reason": "invalid_pin", "failed_attempts": account.failed_attempts})
        log_action(self.logger, "warning", "Authentication failed",
                   account=account.account_number, action="authenticate",
                   extra={"reason": "invalid_pin", "attempts_remaining": remaining})

        if remaining <= 0:
            self.ledger.lock(account)
            raise AccountLocked("Too many failed PIN attempts; account locked")
        raise AuthenticationFailed("Invalid credentials", attempts_remaining=remaining)

    # Session lifecycle

    def start(self, account: Account) -> Session:
        """
        Open a fresh session for an account, ending any previous one

        Raises:
            AccountLocked: If the account is currently locked
        """
        if self.ledger.is_locked(account):
            raise AccountLocked("Account is locked")

        if self.session is not None and self.session.is_active:
            self.end()

        self.session = Session(account.account_number, self.clock())
        self._audit(AuditEventType.SESSION_STARTED, account.account_number,
                    session_id=self.session.session_id)
        log_action(self.logger, "info", "Session started",
                   account=account.account_number, action="session_start",
                   session_id=self.session.session_id)
        return self.session

    def is_valid(self) -> bool:
        """
        Active, idle for at most session_timeout_seconds, and under the
        per-session operation quota
        """
        session = self.session
        if session is None or not session.is_active:
            return False

        idle = (self.clock() - session.last_activity).total_seconds()
        if idle > self.config.session_timeout_seconds:
            return False

        return session.transaction_count < self.config.max_transactions_per_session

    def touch(self) -> None:
        """Record activity on the active session"""
        if self.session is not None and self.session.is_active:
            self.session.last_activity = self.clock()

    def require_valid(self) -> Session:
        """
        Liveness check performed before every operation

        Raises:
            SessionTimeout: If the session is not valid; the session is
                wiped before raising
        """
        if not self.is_valid():
            self._expire()
            raise SessionTimeout("Session expired. Please start a new session.")

        self.touch()
        return self.session

    def _expire(self) -> None:
        session = self.session
        if session is None or session.is_wiped:
            return

        reason = "ended"
        if session.is_active:
            if session.transaction_count >= self.config.max_transactions_per_session:
                reason = "transaction_quota"
            else:
                reason = "inactivity"

        self._audit(AuditEventType.SESSION_EXPIRED, session.account_number,
                    {"reason": reason, "transaction_count": session.transaction_count},
                    session.session_id)
        log_action(self.logger, "info", "Session expired",
                   account=session.account_number, action="session_expire",
                   session_id=session.session_id, extra={"reason": reason})
        session.wipe()

    def end(self) -> None:
        """Log out: wipe the session record"""
        session = self.session
        if session is None or session.is_wiped:
            return

        self._audit(AuditEventType.SESSION_ENDED, session.account_number,
                    {"transaction_count": session.transaction_count},
                    session.session_id)
        log_action(self.logger, "info", "Session ended",
                   account=session.account_number, action="session_end",
                   session_id=session.session_id)
        session.wipe()

    # Accounting

    @property
    def current_account(self) -> Optional[Account]:
        """Account of the active session"""
        if self.session is None or not self.session.is_active:
            return None
        return self.ledger.find(self.session.account_number)

    def remaining_withdrawal(self) -> Decimal:
        if self.session is None or not self.session.is_active:
            return Decimal('0')
        return self.config.max_daily_withdrawal - self.session.daily_withdrawal

    def remaining_transfer(self) -> Decimal:
        if self.session is None or not self.session.is_active:
            return Decimal('0')
        return self.config.max_daily_transfer - self.session.daily_transfer

    def record_operation(self, transaction_type: TransactionType, amount: Decimal) -> None:
        """Count a completed operation against the session"""
        session = self.session
        if transaction_type == TransactionType.WITHDRAWAL:
            session.daily_withdrawal += amount
        elif transaction_type == TransactionType.TRANSFER:
            session.daily_transfer += amount
        session.transaction_count += 1
        self.touch()
