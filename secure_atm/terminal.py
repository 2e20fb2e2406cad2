"""
Terminal State Module

TerminalState owns everything the terminal knows: configuration, the
account ledger, the single session slot, the authorizer and the audit
trail. Lifecycle is init -> use -> close().
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Optional, Union
import threading

from .accounts import Account, AccountLedger
from .audit import AuditTrail, AuditEventType
from .authorizer import TransactionAuthorizer
from .config import ATMConfig, get_config
from .credentials import CredentialStore
from .logging_config import get_logger
from .sessions import Session, SessionManager


class TerminalState:
    """
    Context object wiring the terminal's components together
    """

    def __init__(self, config: Optional[ATMConfig] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.config = config or get_config()
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = get_logger("secure_atm.terminal")
        self._lock = threading.RLock()
        self._closed = False

        self.audit_trail = AuditTrail(
            clock=self.clock, enabled=self.config.enable_audit_logging
        )
        self.credential_store = CredentialStore(self.config)
        self.ledger = AccountLedger(
            self.config, self.credential_store, self.audit_trail, self.clock
        )
        self.sessions = SessionManager(
            self.ledger, self.config, self.credential_store, self.audit_trail, self.clock
        )
        self.authorizer = TransactionAuthorizer(
            self.ledger, self.sessions, self.config, self.audit_trail, self._lock
        )

        self.audit_trail.log_event(AuditEventType.SYSTEM_START)
        self.logger.info("Terminal initialized")

    def provision_account(self, name: str, account_number: str, pin: str,
                          opening_balance: Union[str, int, Decimal] = Decimal('0')) -> Account:
        with self._lock:
            return self.ledger.provision(name, account_number, pin, opening_balance)

    def login(self, account_number: str, pin: str) -> Session:
        with self._lock:
            return self.sessions.authenticate(account_number, pin)

    def logout(self) -> None:
        with self._lock:
            self.sessions.end()

    @property
    def session(self) -> Optional[Session]:
        return self.sessions.session

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """End any session and wipe all credentials"""
        if self._closed:
            return
        with self._lock:
            self.sessions.end()
            self.ledger.wipe_credentials()
            self.audit_trail.log_event(AuditEventType.SYSTEM_STOP)
            self._closed = True
        self.logger.info("Terminal shut down")

    def __enter__(self) -> 'TerminalState':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
