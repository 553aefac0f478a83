from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class DepositQuote:
    amount: int
    percentage: int
    min_applied: bool
    max_applied: bool


def quote_deposit(bid_price: int, percentage: int, min_amount: int, max_amount: Optional[int] = None) -> DepositQuote:
    """
    Work out the escrow deposit for a bid.

    The percentage share is floored to a whole ledger unit, raised to
    ``min_amount`` and, when configured, capped at ``max_amount``. Inputs are
    expected to be validated by the caller (positive integers).
    """
    amount = bid_price * percentage // 100
    min_applied = max_applied = False

    if amount < min_amount:
        amount = min_amount
        min_applied = True

    if max_amount is not None and amount > max_amount:
        amount = max_amount
        max_applied = True

    return DepositQuote(
        amount=amount,
        percentage=percentage,
        min_applied=min_applied,
        max_applied=max_applied,
    )


def calculate_deposit(bid_price: int, percentage: int, min_amount: int, max_amount: Optional[int] = None) -> int:
    return quote_deposit(bid_price, percentage, min_amount, max_amount).amount
