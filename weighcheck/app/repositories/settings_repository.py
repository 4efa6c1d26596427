"""
Settings repository.

Compensation settings are key/value rows; this module owns the keys,
their defaults and the text <-> typed conversions.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from weighcheck.app.models.setting import Setting
from weighcheck.app.services.compensation import DEFAULT_DAILY_BONUS, DEFAULT_RATE_PER_ENTRY

RATE_PER_ENTRY_KEY = "earnings_rate_per_entry"
DAILY_BONUS_KEY = "earnings_daily_bonus"
ENABLED_KEY = "earnings_enabled"

DESCRIPTIONS = {
    RATE_PER_ENTRY_KEY: "Earnings per recorded entry",
    DAILY_BONUS_KEY: "Bonus per day with at least one entry",
    ENABLED_KEY: "Whether earnings are paid at all",
}


@dataclass(frozen=True)
class CompensationSettings:
    rate_per_entry: float = DEFAULT_RATE_PER_ENTRY
    daily_bonus: float = DEFAULT_DAILY_BONUS
    enabled: bool = True

    @property
    def effective_rate(self) -> float:
        return self.rate_per_entry if self.enabled else 0

    @property
    def effective_bonus(self) -> float:
        return self.daily_bonus if self.enabled else 0


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


class SettingsRepository:

    @staticmethod
    async def _rows(db: AsyncSession) -> Dict[str, Setting]:
        result = await db.execute(
            select(Setting).where(Setting.key.in_([RATE_PER_ENTRY_KEY, DAILY_BONUS_KEY, ENABLED_KEY]))
        )
        return {row.key: row for row in result.scalars().all()}

    @staticmethod
    async def get_compensation(db: AsyncSession) -> CompensationSettings:
        """Current settings; missing or unparsable rows fall back to defaults."""
        rows = await SettingsRepository._rows(db)
        defaults = CompensationSettings()

        def number(key: str, default: float) -> float:
            row = rows.get(key)
            if row is None:
                return default
            try:
                return float(row.value)
            except ValueError:
                return default

        enabled_row = rows.get(ENABLED_KEY)
        return CompensationSettings(
            rate_per_entry=number(RATE_PER_ENTRY_KEY, defaults.rate_per_entry),
            daily_bonus=number(DAILY_BONUS_KEY, defaults.daily_bonus),
            enabled=_parse_bool(enabled_row.value) if enabled_row else defaults.enabled,
        )

    @staticmethod
    async def save_compensation(
        db: AsyncSession,
        rate_per_entry: Optional[float],
        daily_bonus: Optional[float],
        enabled: Optional[bool],
        updated_by: int,
    ) -> CompensationSettings:
        """Upsert the given values (None = unchanged) and commit."""
        rows = await SettingsRepository._rows(db)
        new_values = {
            RATE_PER_ENTRY_KEY: None if rate_per_entry is None else _format_number(rate_per_entry),
            DAILY_BONUS_KEY: None if daily_bonus is None else _format_number(daily_bonus),
            ENABLED_KEY: None if enabled is None else str(enabled).lower(),
        }

        for key, value in new_values.items():
            if value is None:
                continue
            row = rows.get(key)
            if row is None:
                db.add(Setting(key=key, value=value, description=DESCRIPTIONS[key], updated_by=updated_by))
            else:
                row.value = value
                row.updated_by = updated_by

        await db.commit()
        return await SettingsRepository.get_compensation(db)
