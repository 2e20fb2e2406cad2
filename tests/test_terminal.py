"""
Test suite for terminal state and the text console

Tests the init -> use -> teardown lifecycle and drives the console loop
with scripted input.
"""

import pytest
from decimal import Decimal

from secure_atm.audit import AuditEventType
from secure_atm.console import run_console
from secure_atm.terminal import TerminalState


def scripted(*answers):
    """Input function replaying fixed answers"""
    replies = iter(answers)
    return lambda prompt="": next(replies)


class TestTerminalState:
    """Test the terminal context object"""
    
    def test_lifecycle(self, config, clock):
        """Test close ends the session and wipes credentials"""
        with TerminalState(config, clock=clock) as state:
            account = state.provision_account("Alice", "1001", "1234", "1000")
            session = state.login("1001", "1234")
        
        assert state.closed
        assert session.session_id == ""
        assert account.credential.hash == bytearray(32)
        
        events = [e.event_type for e in state.audit_trail.get_events()]
        assert events[0] == AuditEventType.SYSTEM_START
        assert events[-1] == AuditEventType.SYSTEM_STOP
        assert state.audit_trail.verify_integrity()["valid"]
    
    def test_close_idempotent(self, config, clock):
        """Test closing twice is harmless"""
        state = TerminalState(config, clock=clock)
        state.close()
        state.close()
        assert len(state.audit_trail.get_events_by_type(AuditEventType.SYSTEM_STOP)) == 1
    
    def test_full_flow_audit(self, terminal):
        """Test a full session produces a verifiable audit chain"""
        terminal.login("1001", "1234")
        terminal.authorizer.withdraw("100")
        terminal.authorizer.transfer("1002", "200")
        terminal.logout()
        
        assert terminal.audit_trail.verify_integrity()["valid"]
        assert [e.event_type for e in terminal.audit_trail.get_events_for_account("1001")][-3:] == [
            AuditEventType.WITHDRAWAL, AuditEventType.TRANSFER, AuditEventType.SESSION_ENDED
        ]


class TestConsole:
    """Test the interactive console loop"""
    
    def test_withdraw_and_logout(self, terminal):
        """Test a scripted withdrawal followed by logout"""
        output = []
        code = run_console(
            terminal,
            input_fn=scripted("1001", "2", "300", "1", "5"),
            output_fn=output.append,
            pin_fn=scripted("1234")
        )
        
        assert code == 0
        assert "Withdrawal successful. New balance: USD 19,700.00" in output
        assert "Balance: USD 19,700.00" in output
        assert "Goodbye." in output
        assert not terminal.sessions.is_valid()
    
    def test_reports_errors(self, terminal):
        """Test rejected operations are reported and the loop continues"""
        output = []
        run_console(
            terminal,
            input_fn=scripted("1002", "2", "600", "9", "5"),
            output_fn=output.append,
            pin_fn=scripted("5678")
        )
        
        assert any(line.startswith("Error (InsufficientFunds)") for line in output)
        assert "Invalid choice." in output

    def test_huge_amount_keeps_loop_running(self, terminal):
        """Test an amount beyond decimal precision is reported, not fatal"""
        output = []
        code = run_console(
            terminal,
            input_fn=scripted("1001", "2", "1" + "0" * 30, "5"),
            output_fn=output.append,
            pin_fn=scripted("1234")
        )

        assert code == 0
        assert any(line.startswith("Error (InvalidInput)") for line in output)
        assert "Goodbye." in output

    def test_lockout(self, terminal):
        """Test three wrong PINs end the console with a lock"""
        output = []
        code = run_console(
            terminal,
            input_fn=scripted("1001", "1001", "1001"),
            output_fn=output.append,
            pin_fn=scripted("0000", "1111", "2222")
        )
        
        assert code == 1
        assert output[-1].startswith("Account locked")
        assert terminal.ledger.get("1001").is_locked
    
    def test_session_quota(self, terminal):
        """Test the loop stops once the session quota is used"""
        answers = ["1001"]
        for _ in range(5):
            answers += ["2", "10"]
        output = []
        
        code = run_console(
            terminal,
            input_fn=scripted(*answers),
            output_fn=output.append,
            pin_fn=scripted("1234")
        )
        
        assert code == 0
        assert output[-1] == "Session expired. Please start a new session."
        assert terminal.ledger.get("1001").balance == Decimal("19950.00")
    
    def test_end_of_input(self, terminal):
        """Test EOF logs out cleanly"""
        def eof(prompt=""):
            raise EOFError
        
        code = run_console(terminal, input_fn=eof, output_fn=lambda line: None,
                           pin_fn=scripted("1234"))
        assert code == 0
        assert terminal.session is None
