# price_comparator/services/date_math.py

"""Calendar-month arithmetic for lookback windows."""

import calendar
from datetime import date


def shift_months(day: date, months: int) -> date:
    """Move *day* by *months* calendar months, clamping the day of month.

    ``shift_months(date(2025, 3, 31), -1)`` is ``date(2025, 2, 28)``.
    """
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))
