"""Vacation entitlement rules (Mexican Federal Labour Law, art. 76).

Every function here is pure: the current date is always passed in.
"""
from datetime import date

# Allotment for the first five years of service.
ALLOTMENT_BY_YEAR = {0: 0, 1: 12, 2: 14, 3: 16, 4: 18, 5: 20}


def tenure_years(hire_date: date, today: date) -> int:
    """Whole years of service, not counting the current year before the anniversary."""
    years = today.year - hire_date.year
    if (today.month, today.day) < (hire_date.month, hire_date.day):
        years -= 1
    return max(years, 0)


def legal_allotment(tenure: int) -> int:
    if tenure in ALLOTMENT_BY_YEAR:
        return ALLOTMENT_BY_YEAR[tenure]
    if tenure < 0:
        return 0
    # from the sixth year on: two more days per completed five-year block
    return 20 + 2 * ((tenure - 5) // 5)


def available_days(allotment: int, consumed: int) -> int:
    return max(0, allotment - consumed)


def business_days(start: date, end: date) -> int:
    """Count Monday-Friday days in the closed interval ``[start, end]``."""
    if end < start:
        return 0
    weeks, remainder = divmod((end - start).days + 1, 7)
    # every full week holds five weekdays; the leftover days start on start's weekday
    first = start.weekday()
    return weeks * 5 + sum(1 for offset in range(remainder) if (first + offset) % 7 < 5)
