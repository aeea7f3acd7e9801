"""
Wallet collaborator.

The real wallet (network credit, persistence, 24h confirmation) lives outside this
package. The core only needs something it can `credit` after a coin has been
removed from its pool; `InMemoryWallet` is the local implementation used by the
session, the CLI and tests.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Protocol

from coinhunt.domain.models import to_money


class Wallet(Protocol):
    def credit(self, coin_id: str, amount: Decimal) -> None: ...


@dataclass(frozen=True)
class WalletTransaction:
    coin_id: str
    amount: Decimal
    created_at: datetime
    status: str = "pending"


class InMemoryWallet:
    """Thread-safe pending-credit ledger. Crediting the same coin twice within one hunt is refused."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._transactions: list[WalletTransaction] = []
        self._credited: set[str] = set()

    def begin_hunt(self) -> None:
        """Start a new duplicate-credit scope; balance and history are kept."""
        with self._lock:
            self._credited.clear()

    def credit(self, coin_id: str, amount: Decimal) -> None:
        amount = to_money(amount)
        if amount < 0:
            raise ValueError("credit amount must be >= 0")
        with self._lock:
            if coin_id in self._credited:
                raise ValueError(f"coin {coin_id!r} was already credited")
            self._credited.add(coin_id)
            self._transactions.append(
                WalletTransaction(coin_id=coin_id, amount=amount, created_at=datetime.now(timezone.utc))
            )

    @property
    def pending_balance(self) -> Decimal:
        with self._lock:
            return sum((t.amount for t in self._transactions), Decimal("0.00"))

    @property
    def transactions(self) -> list[WalletTransaction]:
        with self._lock:
            return list(self._transactions)
