"""
Input Hygiene Module

Format validation and sanitization for externally supplied strings, and a
secret holder whose backing storage is zeroed when it goes out of scope.
"""

from enum import Enum
from typing import Optional, Union
import re

from .config import ATMConfig, get_config


class InputKind(Enum):
    """Kinds of externally supplied input"""
    PIN = "pin"
    ACCOUNT_NUMBER = "account_number"
    AMOUNT = "amount"


ACCOUNT_NUMBER_PATTERN = re.compile(r'\d{4,20}')
AMOUNT_PATTERN = re.compile(r'\d+(\.\d{1,2})?')

# Characters allowed through sanitize() besides ASCII letters and digits
SAFE_PUNCTUATION = frozenset(" .-")

# Capacity of a transaction detail field
MAX_DETAIL_LENGTH = 99


def validate_format(value: Optional[str], kind: InputKind,
                    config: Optional[ATMConfig] = None) -> bool:
    """
    Check that an input string has the shape required for its kind
    
    A PIN is exactly pin_length ASCII decimal digits. Account numbers are
    4 to 20 digits; amounts are digits with an optional 1-2 digit
    fractional part.
    """
    if not isinstance(value, str):
        return False
    
    if kind == InputKind.PIN:
        pin_length = (config or get_config()).pin_length
        return len(value) == pin_length and all(c in "0123456789" for c in value)
    if kind == InputKind.ACCOUNT_NUMBER:
        return value.isascii() and ACCOUNT_NUMBER_PATTERN.fullmatch(value) is not None
    if kind == InputKind.AMOUNT:
        return value.isascii() and AMOUNT_PATTERN.fullmatch(value) is not None
    return False


def sanitize(text: str, max_length: int = MAX_DETAIL_LENGTH) -> str:
    """
    Strip everything but ASCII alphanumerics, space, period and hyphen
    
    >>> sanitize("Pay$ John-Doe#99.")
    'Pay John-Doe99.'
    """
    kept = [c for c in text if (c.isascii() and c.isalnum()) or c in SAFE_PUNCTUATION]
    return "".join(kept)[:max_length]


def wipe(buffer: Union[bytearray, memoryview]) -> None:
    """Overwrite a mutable buffer with zero bytes in place"""
    view = memoryview(buffer).cast('B')
    for i in range(len(view)):
        view[i] = 0


class SecretBuffer:
    """
    Mutable holder for secret bytes
    
    The bytes live in a bytearray that is zeroed in place by wipe(), on
    leaving a with-block, and on garbage collection. Immutable copies are
    only handed out through reveal().
    """
    
    def __init__(self, data: Union[bytes, bytearray, str] = b""):
        if isinstance(data, str):
            data = data.encode('utf-8')
        self._buffer = bytearray(data)
        self._wiped = False
    
    @classmethod
    def zeroed(cls, size: int) -> 'SecretBuffer':
        """Create a buffer of size zero bytes"""
        return cls(bytes(size))
    
    @property
    def buffer(self) -> bytearray:
        """Backing storage"""
        return self._buffer
    
    @property
    def is_wiped(self) -> bool:
        return self._wiped
    
    def reveal(self) -> bytes:
        """Return a copy of the secret"""
        return bytes(self._buffer)
    
    def wipe(self) -> None:
        """Zero the backing storage"""
        wipe(self._buffer)
        self._wiped = True
    
    def __len__(self) -> int:
        return len(self._buffer)
    
    def __enter__(self) -> 'SecretBuffer':
        return self
    
    def __exit__(self, exc_type, exc, tb) -> None:
        self.wipe()
    
    def __del__(self):
        # Guard against partially constructed instances
        if getattr(self, '_buffer', None) is not None:
            wipe(self._buffer)
    
    def __repr__(self) -> str:
        return f"SecretBuffer(<{len(self._buffer)} bytes>)"
