"""
Secure ATM Terminal Core

Session-and-transaction authorization core for a single-process banking
terminal: salted PIN verification with lockout, bounded sessions, and
limit-checked withdrawals and transfers with an audit trail.
"""

__version__ = "1.0.0"
