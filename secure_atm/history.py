"""
Transaction History Module

Immutable transaction records and the fixed-capacity ring buffer each
account keeps them in.
"""

from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass
from typing import Iterator, List, Optional
from enum import Enum


class TransactionType(Enum):
    """Transaction type tags"""
    WITHDRAWAL = "WITHDRAWAL"
    TRANSFER = "TRANSFER"
    DEPOSIT = "DEPOSIT"


@dataclass(frozen=True)
class Transaction:
    """A money movement recorded against an account"""
    transaction_id: str  # 32 hex chars
    timestamp: datetime
    transaction_type: TransactionType
    amount: Decimal
    details: str

    def __post_init__(self):
        if self.amount <= 0:
            raise ValueError("Transaction amount must be positive")


class TransactionHistory:
    """
    Bounded circular buffer of transactions

    `total` counts every push ever made; the next write slot is
    `total % capacity`, so once full each push overwrites the oldest record.
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError("History capacity must be positive")
        self.capacity = capacity
        self._slots: List[Optional[Transaction]] = [None] * capacity
        self.total = 0

    @property
    def cursor(self) -> int:
        """Slot the next push writes to"""
        return self.total % self.capacity

    @property
    def is_full(self) -> bool:
        return self.total >= self.capacity

    def push(self, transaction: Transaction) -> Optional[Transaction]:
        """
        Append a transaction

        Returns:
            The record that was overwritten, if the buffer was full
        """
        slot = self.cursor
        evicted = self._slots[slot]
        self._slots[slot] = transaction
        self.total += 1
        return evicted

    def __len__(self) -> int:
        return min(self.total, self.capacity)

    def __iter__(self) -> Iterator[Transaction]:
        """Oldest to newest"""
        start = self.cursor if self.is_full else 0
        for offset in range(len(self)):
            yield self._slots[(start + offset) % self.capacity]

    def latest(self, count: int) -> List[Transaction]:
        """The most recent `count` transactions, oldest first"""
        if count <= 0:
            return []
        return list(self)[-count:]
