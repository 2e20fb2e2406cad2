"""
Shared test fixtures

FakeClock drives session timeouts and lock expiry without sleeping.
"""

import pytest
from decimal import Decimal
from datetime import datetime, timedelta, timezone

from secure_atm.config import ATMConfig
from secure_atm.terminal import TerminalState


class FakeClock:
    """Controllable replacement for datetime.now(timezone.utc)"""
    
    def __init__(self, start: datetime = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)):
        self.now = start
    
    def __call__(self) -> datetime:
        return self.now
    
    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    """Default terminal configuration, isolated from the environment"""
    return ATMConfig(_env_file=None)


@pytest.fixture
def terminal(config, clock):
    """Terminal with two funded accounts"""
    state = TerminalState(config, clock=clock)
    state.provision_account("Alice Johnson", "1001", "1234", Decimal("20000.00"))
    state.provision_account("Bob Smith", "1002", "5678", Decimal("1000.00"))
    yield state
    state.close()


@pytest.fixture
def logged_in(terminal):
    """Terminal with an active session on account 1001"""
    terminal.login("1001", "1234")
    return terminal
