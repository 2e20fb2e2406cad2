"""
Audit Trail Module

Hash-chained append-only security log with SHA-256 for tamper detection.
Authentication outcomes, lockouts, session lifecycle and every money
movement (applied or rejected) are recorded here. Events live in process
memory only; session ids are kept in truncated form.
"""

import hashlib
import json
from datetime import datetime, timezone
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional, Any
from enum import Enum
from decimal import Decimal
import threading
import uuid

from .logging_config import short_id


class AuditEventType(Enum):
    """Types of audit events"""
    # Account events
    ACCOUNT_PROVISIONED = "account_provisioned"
    ACCOUNT_LOCKED = "account_locked"
    ACCOUNT_UNLOCKED = "account_unlocked"

    # Authentication events
    LOGIN_SUCCESS = "login_success"
    LOGIN_FAILED = "login_failed"

    # Session events
    SESSION_STARTED = "session_started"
    SESSION_ENDED = "session_ended"
    SESSION_EXPIRED = "session_expired"

    # Transaction events
    WITHDRAWAL = "withdrawal"
    TRANSFER = "transfer"
    TRANSACTION_REJECTED = "transaction_rejected"

    # System events
    SYSTEM_START = "system_start"
    SYSTEM_STOP = "system_stop"


def _convert_value(value):
    if isinstance(value, Decimal):
        return str(value)
    elif isinstance(value, datetime):
        return value.isoformat()
    elif isinstance(value, Enum):
        return value.value
    elif isinstance(value, dict):
        return {k: _convert_value(v) for k, v in value.items()}
    elif isinstance(value, (list, tuple)):
        return [_convert_value(v) for v in value]
    return value


@dataclass(frozen=True)
class AuditEvent:
    """
    Immutable audit event with hash chaining for tamper detection
    """
    id: str
    created_at: datetime
    event_type: AuditEventType
    account_number: Optional[str]  # Account the event concerns, if any
    previous_hash: str  # Hash of previous audit event for chaining
    current_hash: str   # SHA-256 hash of this event
    metadata: Dict[str, Any]
    session_id: Optional[str] = None  # Truncated session id

    def __post_init__(self):
        # Metadata must be JSON serializable for hashing
        if self.metadata:
            object.__setattr__(
                self, 'metadata', {k: _convert_value(v) for k, v in self.metadata.items()}
            )

    def calculate_hash(self) -> str:
        """
        Calculate SHA-256 hash of this event
        Hash includes all fields except current_hash
        """
        hash_data = {
            'id': self.id,
            'created_at': self.created_at.isoformat(),
            'event_type': self.event_type.value,
            'account_number': self.account_number,
            'previous_hash': self.previous_hash,
            'session_id': self.session_id,
            'metadata': self.metadata
        }

        json_data = json.dumps(hash_data, sort_keys=True, separators=(',', ':'))
        return hashlib.sha256(json_data.encode('utf-8')).hexdigest()

    def verify_hash(self) -> bool:
        """Verify that the current hash is correct"""
        return self.current_hash == self.calculate_hash()


class AuditTrail:
    """
    Append-only, hash-chained audit trail
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None, enabled: bool = True):
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.enabled = enabled
        self._events: List[AuditEvent] = []
        self._lock = threading.Lock()

    def log_event(
        self,
        event_type: AuditEventType,
        account_number: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        session_id: Optional[str] = None
    ) -> Optional[AuditEvent]:
        """
        Log an audit event with hash chaining

        Args:
            event_type: Type of audit event
            account_number: Account the event concerns
            metadata: Additional event-specific data
            session_id: Session identifier; only its first 8 characters
                are recorded

        Returns:
            Created AuditEvent, or None when audit logging is disabled
        """
        if not self.enabled:
            return None

        with self._lock:
            previous_hash = self._events[-1].current_hash if self._events else ""
            event = AuditEvent(
                id=str(uuid.uuid4()),
                created_at=self.clock(),
                event_type=event_type,
                account_number=account_number,
                previous_hash=previous_hash,
                current_hash="",
                session_id=short_id(session_id),
                metadata=metadata or {}
            )
            event = replace(event, current_hash=event.calculate_hash())
            self._events.append(event)
            return event

    def __len__(self) -> int:
        return len(self._events)

    def get_events(self) -> List[AuditEvent]:
        """All events in the order they were logged"""
        return list(self._events)

    def get_events_for_account(self, account_number: str,
                               limit: Optional[int] = None) -> List[AuditEvent]:
        """Events concerning one account, oldest first"""
        events = [e for e in self._events if e.account_number == account_number]
        if limit:
            events = events[-limit:]
        return events

    def get_events_by_type(self, event_type: AuditEventType) -> List[AuditEvent]:
        return [e for e in self._events if e.event_type == event_type]

    def verify_integrity(self) -> Dict[str, Any]:
        """
        Recompute every hash and chain link

        Returns:
            Dictionary with 'valid', 'total_events' and a list of
            'errors' naming the offending event ids
        """
        errors = []
        previous_hash = ""
        events = self.get_events()

        for event in events:
            if not event.verify_hash():
                errors.append({'event_id': event.id, 'error': 'hash_mismatch'})
            if event.previous_hash != previous_hash:
                errors.append({'event_id': event.id, 'error': 'broken_chain'})
            previous_hash = event.current_hash

        return {
            'valid': not errors,
            'total_events': len(events),
            'errors': errors
        }
