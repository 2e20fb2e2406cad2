"""
Test suite for session management

Tests PIN authentication with lockout, session timeout, the per-session
operation quota, and session wiping.
"""

import pytest
from decimal import Decimal

from secure_atm.audit import AuditEventType
from secure_atm.errors import AccountLocked, AuthenticationFailed, InvalidInput, SessionTimeout
from secure_atm.history import TransactionType


class TestAuthentication:
    """Test PIN authentication"""
    
    def test_successful_login(self, terminal):
        """Test a correct PIN opens a session"""
        session = terminal.login("1001", "1234")
        
        assert session.is_active
        assert session.account_number == "1001"
        assert len(session.session_id) == 32
        assert session.transaction_count == 0
        assert session.daily_withdrawal == Decimal("0")
        assert session.daily_transfer == Decimal("0")
        assert terminal.sessions.is_valid()
    
    def test_audit_keeps_short_session_id(self, terminal):
        """Test the audit trail never holds the full session id"""
        session = terminal.login("1001", "1234")
        full_id = session.session_id
        terminal.authorizer.withdraw("100")
        terminal.logout()
        
        started = terminal.audit_trail.get_events_by_type(AuditEventType.SESSION_STARTED)[-1]
        assert started.session_id == full_id[:8]
        for event in terminal.audit_trail.get_events():
            assert event.session_id in (None, full_id[:8])
            assert full_id not in str(event.metadata)
    
    def test_wrong_pin(self, terminal):
        """Test a wrong PIN counts an attempt"""
        with pytest.raises(AuthenticationFailed) as exc_info:
            terminal.login("1001", "0000")
        
        assert exc_info.value.attempts_remaining == 2
        assert terminal.ledger.get("1001").failed_attempts == 1
        assert terminal.session is None
    
    def test_unknown_account(self, terminal):
        """Test an unknown account fails like a wrong PIN"""
        with pytest.raises(AuthenticationFailed):
            terminal.login("9999", "1234")
    
    def test_malformed_pin(self, terminal):
        """Test malformed PINs are rejected without counting an attempt"""
        with pytest.raises(InvalidInput):
            terminal.login("1001", "12a4")
        assert terminal.ledger.get("1001").failed_attempts == 0
    
    def test_success_resets_failed_attempts(self, terminal):
        """Test a correct PIN resets the failure counter"""
        with pytest.raises(AuthenticationFailed):
            terminal.login("1001", "0000")
        with pytest.raises(AuthenticationFailed):
            terminal.login("1001", "0000")
        
        terminal.login("1001", "1234")
        assert terminal.ledger.get("1001").failed_attempts == 0
    
    def test_lockout_after_max_attempts(self, terminal):
        """Test the third wrong PIN locks the account"""
        for _ in range(2):
            with pytest.raises(AuthenticationFailed):
                terminal.login("1001", "0000")
        with pytest.raises(AccountLocked):
            terminal.login("1001", "0000")
        
        account = terminal.ledger.get("1001")
        assert account.is_locked
        assert account.failed_attempts == 3
        assert len(terminal.audit_trail.get_events_by_type(AuditEventType.ACCOUNT_LOCKED)) == 1
    
    def test_locked_refuses_correct_pin(self, terminal, clock):
        """Test a locked account refuses even the correct PIN until expiry"""
        for _ in range(3):
            with pytest.raises((AuthenticationFailed, AccountLocked)):
                terminal.login("1001", "0000")
        
        clock.advance(60)
        with pytest.raises(AccountLocked):
            terminal.login("1001", "1234")
        with pytest.raises(AccountLocked):
            terminal.login("1001", "0000")
        assert terminal.ledger.get("1001").failed_attempts == 3
        
        clock.advance(terminal.config.lockout_duration_seconds)
        session = terminal.login("1001", "1234")
        assert session.is_active
    
    def test_lockout_is_per_account(self, terminal):
        """Test locking one account leaves the others usable"""
        for _ in range(3):
            with pytest.raises((AuthenticationFailed, AccountLocked)):
                terminal.login("1001", "0000")
        
        assert terminal.login("1002", "5678").is_active
    
    def test_audit_records_outcomes(self, terminal):
        """Test login attempts are audited"""
        with pytest.raises(AuthenticationFailed):
            terminal.login("1001", "0000")
        terminal.login("1001", "1234")
        
        trail = terminal.audit_trail
        assert len(trail.get_events_by_type(AuditEventType.LOGIN_FAILED)) == 1
        assert len(trail.get_events_by_type(AuditEventType.LOGIN_SUCCESS)) == 1
        assert len(trail.get_events_by_type(AuditEventType.SESSION_STARTED)) == 1


class TestSessionLifecycle:
    """Test session validity rules"""
    
    def test_no_session_is_invalid(self, terminal):
        """Test validity without any session"""
        assert not terminal.sessions.is_valid()
        with pytest.raises(SessionTimeout):
            terminal.sessions.require_valid()
    
    def test_start_refuses_locked_account(self, terminal):
        """Test start() checks the lock"""
        account = terminal.ledger.get("1001")
        terminal.ledger.lock(account)
        with pytest.raises(AccountLocked):
            terminal.sessions.start(account)
    
    def test_new_session_id_each_start(self, terminal):
        """Test session ids are regenerated"""
        first = terminal.login("1001", "1234")
        first_id = first.session_id
        second = terminal.login("1001", "1234")
        
        assert second.session_id != first_id
        assert first.session_id == ""
        assert not first.is_active
    
    def test_timeout_boundary(self, logged_in, clock):
        """Test a session idle exactly the timeout is still valid"""
        clock.advance(300)
        assert logged_in.sessions.is_valid()
        clock.advance(1)
        assert not logged_in.sessions.is_valid()
    
    def test_timeout_wipes_session(self, logged_in, clock):
        """Test an expired session is wiped on the next check"""
        session = logged_in.session
        clock.advance(301)
        
        with pytest.raises(SessionTimeout):
            logged_in.sessions.require_valid()
        
        assert session.session_id == ""
        assert not session.is_active
        assert session.account_number is None
        assert session.last_activity is None
        assert len(logged_in.audit_trail.get_events_by_type(AuditEventType.SESSION_EXPIRED)) == 1
        
        # Retrying immediately does not revive it
        with pytest.raises(SessionTimeout):
            logged_in.sessions.require_valid()
    
    def test_liveness_check_touches(self, logged_in, clock):
        """Test require_valid refreshes last_activity"""
        clock.advance(200)
        logged_in.sessions.require_valid()
        assert logged_in.session.last_activity == clock.now
        
        clock.advance(200)
        assert logged_in.sessions.is_valid()
    
    def test_quota_expires_session(self, logged_in):
        """Test the fifth counted operation exhausts the session"""
        sessions = logged_in.sessions
        for _ in range(4):
            sessions.record_operation(TransactionType.WITHDRAWAL, Decimal("10"))
            assert sessions.is_valid()
        
        sessions.record_operation(TransactionType.WITHDRAWAL, Decimal("10"))
        assert logged_in.session.transaction_count == 5
        assert not sessions.is_valid()
        with pytest.raises(SessionTimeout):
            sessions.require_valid()
    
    def test_record_operation_totals(self, logged_in):
        """Test operations accumulate per type"""
        sessions = logged_in.sessions
        sessions.record_operation(TransactionType.WITHDRAWAL, Decimal("100"))
        sessions.record_operation(TransactionType.TRANSFER, Decimal("250"))
        
        assert logged_in.session.daily_withdrawal == Decimal("100")
        assert logged_in.session.daily_transfer == Decimal("250")
        assert sessions.remaining_withdrawal() == Decimal("4900.00")
        assert sessions.remaining_transfer() == Decimal("9750.00")
    
    def test_end_wipes(self, logged_in):
        """Test logout zeroes the session"""
        session = logged_in.session
        logged_in.sessions.record_operation(TransactionType.WITHDRAWAL, Decimal("100"))
        logged_in.logout()
        
        assert session.session_id == ""
        assert session.transaction_count == 0
        assert session.daily_withdrawal == Decimal("0")
        assert not logged_in.sessions.is_valid()
        assert logged_in.sessions.current_account is None
        assert len(logged_in.audit_trail.get_events_by_type(AuditEventType.SESSION_ENDED)) == 1
    
    def test_end_is_idempotent(self, logged_in):
        """Test ending twice logs once"""
        logged_in.logout()
        logged_in.logout()
        assert len(logged_in.audit_trail.get_events_by_type(AuditEventType.SESSION_ENDED)) == 1
    
    def test_current_account(self, logged_in):
        """Test the session account lookup"""
        assert logged_in.sessions.current_account.account_number == "1001"
