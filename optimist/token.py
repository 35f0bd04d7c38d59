from __future__ import annotations
"""
Bond token collaborator.

The bond vault only needs two calls, in the explicit-caller form (no ambient
msg.sender):

    transfer(caller, to, amount) -> bool
    transfer_from(caller, owner, to, amount) -> bool     # caller spends allowance

`MemoryToken` is a deterministic, float-free in-process ledger with the same
surface plus `mint`, `approve`, `balance_of` and `allowance`. Like an ERC-20
that returns booleans, it reports insufficient balance or allowance by
returning False rather than raising; the vault treats both identically.
"""


from threading import RLock
from typing import Dict, Protocol, Tuple

from .ids import normalize_address


class Token(Protocol):
    def transfer(self, caller: str, to: str, amount: int) -> bool: ...
    def transfer_from(self, caller: str, owner: str, to: str, amount: int) -> bool: ...


def _require_amount(amount: int) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise ValueError(f"amount must be a non-negative int (got {amount!r})")
    return amount


class MemoryToken:
    def __init__(self, symbol: str = "BOND", decimals: int = 18) -> None:
        self.symbol = symbol
        self.decimals = decimals
        self._lock = RLock()
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        self.total_supply = 0

    # --- views ---

    def balance_of(self, addr: str) -> int:
        return self._balances.get(addr.lower(), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner.lower(), spender.lower()), 0)

    # --- mutations ---

    def mint(self, to: str, amount: int) -> None:
        to = normalize_address(to)
        with self._lock:
            self._balances[to] = self._balances.get(to, 0) + _require_amount(amount)
            self.total_supply += amount

    def approve(self, caller: str, spender: str, amount: int) -> bool:
        with self._lock:
            self._allowances[(normalize_address(caller), normalize_address(spender))] = _require_amount(amount)
        return True

    def transfer(self, caller: str, to: str, amount: int) -> bool:
        src, dst = normalize_address(caller), normalize_address(to)
        with self._lock:
            return self._move(src, dst, _require_amount(amount))

    def transfer_from(self, caller: str, owner: str, to: str, amount: int) -> bool:
        spender, src, dst = normalize_address(caller), normalize_address(owner), normalize_address(to)
        amount = _require_amount(amount)
        with self._lock:
            allowed = self._allowances.get((src, spender), 0)
            if allowed < amount:
                return False
            if not self._move(src, dst, amount):
                return False
            self._allowances[(src, spender)] = allowed - amount
            return True

    def _move(self, src: str, dst: str, amount: int) -> bool:
        bal = self._balances.get(src, 0)
        if bal < amount:
            return False
        self._balances[src] = bal - amount
        self._balances[dst] = self._balances.get(dst, 0) + amount
        return True


__all__ = ["Token", "MemoryToken"]
