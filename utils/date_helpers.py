from datetime import date
import calendar


def get_financial_year(on_date=None):
    """Indian financial year label (April to March) for a date, e.g. '2024-2025'"""
    on_date = on_date or date.today()
    if on_date.month >= 4:
        return f"{on_date.year}-{on_date.year + 1}"
    return f"{on_date.year - 1}-{on_date.year}"


def add_months(value, months):
    """Shift a date by whole months, clamping the day to the target month"""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def challan_due_date(period_end, due_day=21):
    """Due date falls on a fixed day of the month after the period ends"""
    following = add_months(period_end.replace(day=1), 1)
    return following.replace(day=due_day)
