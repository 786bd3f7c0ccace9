import calendar
from datetime import date


def compute_due_date(date_of_commencement: str | None, today: date) -> str:
    """Return the due date for the current collection month as DD/MM/YYYY.

    The day of month comes from the policy's commencement date (DD/MM/YYYY)
    and is clamped to the length of the current month. Without a readable
    commencement date the due date is the last day of the month.
    """
    last_day = calendar.monthrange(today.year, today.month)[1]
    day = _commencement_day(date_of_commencement)
    if day is None:
        day = last_day
    day = min(day, last_day)
    return f"{day:02d}/{today.month:02d}/{today.year}"


def _commencement_day(date_of_commencement: str | None) -> int | None:
    if not date_of_commencement:
        return None
    head = date_of_commencement.strip().split("/", 1)[0]
    try:
        day = int(head)
    except ValueError:
        return None
    return day if day >= 1 else None
