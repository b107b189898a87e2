"""Advisory payment reminders. Nothing here affects the ledger."""
from datetime import date
from typing import Optional

from savings_fund.config import REMINDER_DAYS
from savings_fund.data_structures import FundSettings, ReminderNotice, Track
from savings_fund.services.calendar_resolver import format_month_id


def check_reminder(settings: FundSettings, today: date, savers=()) -> Optional[ReminderNotice]:
    """Notice for today if it is a deadline day and reminders are on.

    The notice lists the savers whose due for today's track is still unpaid
    in the current month.
    """
    if not settings.enable_reminders or today.day not in REMINDER_DAYS:
        return None

    track = Track.Q1 if today.day == Track.Q1.deadline_day else Track.Q2
    month_id = format_month_id(today)
    pending = tuple(
        saver.name
        for saver in savers
        for period in saver.periods
        if period.month_id == month_id and not period.paid(track)
    )
    message = f"Today is the deadline for the {track.label} due ({track.value})."
    return ReminderNotice(day=today.day, track=track, message=message, savers_pending=pending)
