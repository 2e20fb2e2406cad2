"""
Terminal Error Taxonomy

Every rejected operation raises one of these exceptions. Each carries the
stable numeric code the terminal reports to its caller and a kind name.
"""

from typing import Optional


class ATMError(Exception):
    """Base class for all terminal rejections"""
    code = 0
    kind = "ATMError"
    
    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.kind)
        self.message = message or self.kind


class InvalidInput(ATMError):
    """Malformed PIN, bad amount, unknown or invalid account, bad free text"""
    code = -1
    kind = "InvalidInput"


class InsufficientFunds(ATMError):
    """Operation would breach the minimum-balance reserve"""
    code = -2
    kind = "InsufficientFunds"


class AccountLocked(ATMError):
    """Account is locked after repeated PIN failures"""
    code = -3
    kind = "AccountLocked"


class SessionTimeout(ATMError):
    """Session idle too long, quota exhausted, or already ended"""
    code = -4
    kind = "SessionTimeout"


class DailyLimitExceeded(ATMError):
    """Cumulative withdrawal or transfer cap would be breached"""
    code = -5
    kind = "DailyLimitExceeded"


class AuthenticationFailed(ATMError):
    """Wrong PIN or unknown account number"""
    code = -6
    kind = "AuthenticationFailed"
    
    def __init__(self, message: Optional[str] = None, attempts_remaining: Optional[int] = None):
        super().__init__(message)
        self.attempts_remaining = attempts_remaining
