# commissions/config.py
from decimal import Decimal
from typing import Dict, Any, Tuple


class CommissionConfigHelper:
    """
    Referral commission policy, indexed strictly by upline position.
    Level 1: 0.5%, Level 2: 0.4%, Level 3: 0.3%, Level 4: 0.2%, Level 5: 0.1%
    """

    COMMISSION_RATES = (
        Decimal('0.005'),   # 0.5%
        Decimal('0.004'),   # 0.4%
        Decimal('0.003'),   # 0.3%
        Decimal('0.002'),   # 0.2%
        Decimal('0.001'),   # 0.1%
    )

    MAX_LEVEL = len(COMMISSION_RATES)

    @staticmethod
    def get_commission_rate(level: int) -> Decimal:
        """Rate for a 1-based level. Levels outside 1..MAX_LEVEL have no rate."""
        if not isinstance(level, int) or isinstance(level, bool):
            raise ValueError(f"Commission level must be an integer, got {level!r}")
        if level < 1 or level > CommissionConfigHelper.MAX_LEVEL:
            raise ValueError(f"Commission level {level} outside 1-{CommissionConfigHelper.MAX_LEVEL}")
        return CommissionConfigHelper.COMMISSION_RATES[level - 1]

    @staticmethod
    def get_distribution_summary() -> Dict[str, Any]:
        """Get summary of commission distribution across all levels"""
        distribution = {}
        total_rate = Decimal('0')

        for level in range(1, CommissionConfigHelper.MAX_LEVEL + 1):
            rate = CommissionConfigHelper.get_commission_rate(level)
            distribution[level] = {
                'rate': float(rate),
                'rate_display': f"{rate * 100}%",
            }
            total_rate += rate

        return {
            'distribution': distribution,
            'total_rate': float(total_rate),
            'max_level': CommissionConfigHelper.MAX_LEVEL,
        }

    @staticmethod
    def validate_configuration() -> Tuple[bool, str]:
        """Validate that the rate table is mathematically sound"""
        rates = CommissionConfigHelper.COMMISSION_RATES
        total_rate = sum(rates, Decimal('0'))

        if any(rate <= 0 or rate >= 1 for rate in rates):
            return False, "Every commission rate must be between 0 and 1"

        if list(rates) != sorted(rates, reverse=True):
            return False, "Commission rates must not increase with depth"

        if total_rate > Decimal('0.5'):
            return False, f"Total commission rate too high: {total_rate * 100}%"

        return True, f"Commission configuration valid: {total_rate * 100}% total across {len(rates)} levels"
