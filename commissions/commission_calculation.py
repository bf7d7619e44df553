# commissions/commission_calculation.py
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Sequence

from commissions.config import CommissionConfigHelper


@dataclass(frozen=True)
class CommissionEntry:
    """One computed (not yet persisted) commission for an upline ancestor."""
    user_id: str
    level: int
    rate: Decimal
    amount: Decimal


def calculate_commissions(paid_amount, upline: Sequence[str]) -> List[CommissionEntry]:
    """
    Compute the commission fan-out for a paid subscription.

    One entry per upline position, nearest ancestor first, truncated to
    MAX_LEVEL entries. A shorter upline yields fewer entries; nothing is
    padded. The rate depends only on the position in the upline.
    """
    amount = paid_amount if isinstance(paid_amount, Decimal) else Decimal(str(paid_amount))

    entries = []
    for index, ancestor_id in enumerate(list(upline or [])[:CommissionConfigHelper.MAX_LEVEL]):
        rate = CommissionConfigHelper.COMMISSION_RATES[index]
        entries.append(CommissionEntry(
            user_id=ancestor_id,
            level=index + 1,
            rate=rate,
            amount=amount * rate,
        ))
    return entries


def total_commission(entries: Sequence[CommissionEntry]) -> Decimal:
    return sum((entry.amount for entry in entries), Decimal('0'))
