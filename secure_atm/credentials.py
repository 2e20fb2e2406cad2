"""
Credential Store Module

Salted SHA-256 PIN storage and verification. The plaintext PIN is never
stored; only a per-account random salt and the digest of salt || PIN.
"""

from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING
import hashlib
import hmac
import secrets

from .config import ATMConfig, get_config
from .errors import InvalidInput
from .hygiene import InputKind, SecretBuffer, validate_format, wipe

if TYPE_CHECKING:
    from .accounts import Account

# SHA-256 output size; stored hashes are exactly this long
DIGEST_SIZE = hashlib.sha256().digest_size


def hash_pin(salt: bytes, pin: str) -> bytes:
    """Digest of salt || PIN. The only hashing routine for credentials."""
    with SecretBuffer(pin) as pin_bytes:
        digest = hashlib.sha256()
        digest.update(salt)
        digest.update(pin_bytes.buffer)
        return digest.digest()


@dataclass
class SecurePIN:
    """Salt and salted digest of an account PIN"""
    salt: bytearray
    hash: bytearray

    def __post_init__(self):
        if len(self.hash) != DIGEST_SIZE:
            raise ValueError(f"PIN hash must be {DIGEST_SIZE} bytes")

    def matches(self, candidate_pin: str) -> bool:
        """Constant-time comparison against the stored digest"""
        candidate = hash_pin(bytes(self.salt), candidate_pin)
        return hmac.compare_digest(candidate, bytes(self.hash))

    def wipe(self) -> None:
        """Zero salt and digest"""
        wipe(self.salt)
        wipe(self.hash)

    def __repr__(self) -> str:
        return "SecurePIN(<redacted>)"


class CredentialStore:
    """
    Provisions and verifies PIN credentials

    Verification has no side effects: failed-attempt counting and lockout
    belong to the session manager.
    """

    def __init__(self, config: Optional[ATMConfig] = None):
        self.config = config or get_config()

    def create_credential(self, pin: str) -> SecurePIN:
        """
        Hash a PIN under a fresh random salt

        Raises:
            InvalidInput: If the PIN is not exactly pin_length digits
        """
        if not validate_format(pin, InputKind.PIN, self.config):
            raise InvalidInput(f"PIN must be exactly {self.config.pin_length} digits")

        salt = secrets.token_bytes(self.config.salt_length)
        return SecurePIN(salt=bytearray(salt), hash=bytearray(hash_pin(salt, pin)))

    def provision(self, account: 'Account', pin: str) -> SecurePIN:
        """Attach a new credential to an account"""
        credential = self.create_credential(pin)
        if account.credential is not None:
            account.credential.wipe()
        account.credential = credential
        return credential

    def verify(self, account: 'Account', candidate_pin: str) -> bool:
        """Check a candidate PIN against the account's stored credential"""
        if account.credential is None or not isinstance(candidate_pin, str):
            return False
        return account.credential.matches(candidate_pin)


def generate_secure_id() -> str:
    """32 hex characters from 16 cryptographically secure random bytes"""
    return secrets.token_hex(16)
