"""
Compensation engine.

Earnings are always derived from the entry ledger and the current
compensation settings, never stored as a source of truth:

    total_earnings = total_entries * rate_per_entry + days_with_entries * daily_bonus
"""

import math
from dataclasses import dataclass
from typing import List, Optional

DEFAULT_RATE_PER_ENTRY = 500
DEFAULT_DAILY_BONUS = 50000


@dataclass(frozen=True)
class EarningsBreakdown:
    total_entries: int
    days_with_entries: int
    rate_per_entry: float
    daily_bonus: float
    entries_earnings: float
    bonus_earnings: float
    total_earnings: float


@dataclass(frozen=True)
class LevelTier:
    name: str
    min_entries: int
    max_entries: Optional[int]  # None = unbounded

    def contains(self, total_entries: int) -> bool:
        if total_entries < self.min_entries:
            return False
        return self.max_entries is None or total_entries <= self.max_entries


LEVEL_TIERS: List[LevelTier] = [
    LevelTier("Beginner", 0, 99),
    LevelTier("Bronze", 100, 499),
    LevelTier("Silver", 500, 999),
    LevelTier("Gold", 1000, 4999),
    LevelTier("Diamond", 5000, None),
]


def compute_earnings(
    total_entries: int,
    days_with_entries: int,
    rate_per_entry: float = DEFAULT_RATE_PER_ENTRY,
    daily_bonus: float = DEFAULT_DAILY_BONUS,
) -> EarningsBreakdown:
    """
    Compute an earnings breakdown.

    Example:
        compute_earnings(100, 5, 500, 50000)
        -> entries 50000, bonus 250000, total 300000
    """
    entries_earnings = total_entries * rate_per_entry
    bonus_earnings = days_with_entries * daily_bonus
    return EarningsBreakdown(
        total_entries=total_entries,
        days_with_entries=days_with_entries,
        rate_per_entry=rate_per_entry,
        daily_bonus=daily_bonus,
        entries_earnings=entries_earnings,
        bonus_earnings=bonus_earnings,
        total_earnings=entries_earnings + bonus_earnings,
    )


def get_level(total_entries: int) -> LevelTier:
    """First tier containing ``total_entries``; Beginner when none match."""
    for tier in LEVEL_TIERS:
        if tier.contains(total_entries):
            return tier
    return LEVEL_TIERS[0]


def estimate_earnings(
    entries_per_day: int,
    days: int,
    rate_per_entry: float = DEFAULT_RATE_PER_ENTRY,
    daily_bonus: float = DEFAULT_DAILY_BONUS,
) -> EarningsBreakdown:
    """Earnings for a hypothetical worker entering ``entries_per_day`` every day."""
    return compute_earnings(entries_per_day * days, days, rate_per_entry, daily_bonus)


def daily_average(total_earnings: float, days_with_entries: int) -> float:
    if days_with_entries == 0:
        return 0
    return total_earnings / days_with_entries


def entries_to_target(
    target_earnings: float,
    current_earnings: float,
    rate_per_entry: float = DEFAULT_RATE_PER_ENTRY,
) -> int:
    """Entries still needed to reach ``target_earnings`` at the per-entry rate."""
    remaining = max(0, target_earnings - current_earnings)
    if remaining == 0:
        return 0
    if rate_per_entry <= 0:
        raise ValueError("rate_per_entry must be positive to reach a target")
    return math.ceil(remaining / rate_per_entry)


def format_rupiah(amount: float) -> str:
    """Format an amount the way the field app shows it, e.g. ``Rp 250.000``."""
    return "Rp " + f"{round(amount):,}".replace(",", ".")


def explain(breakdown: EarningsBreakdown) -> List[str]:
    return [
        f"{breakdown.total_entries:,}".replace(",", ".")
        + f" entries × {format_rupiah(breakdown.rate_per_entry)} = {format_rupiah(breakdown.entries_earnings)}",
        f"{breakdown.days_with_entries} days × {format_rupiah(breakdown.daily_bonus)} = {format_rupiah(breakdown.bonus_earnings)}",
        f"Total: {format_rupiah(breakdown.total_earnings)}",
    ]
