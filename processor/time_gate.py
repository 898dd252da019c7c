"""Editing window for the submission forms.

The window runs from ``opens_for_editing`` through ``end_date`` plus one
day, inclusive on both ends. Dates are fixed-width YYYY-MM-DD strings, so
plain string comparison gives calendar order.
"""
from datetime import date, timedelta


def add_one_day(date_str: str) -> str:
    """Return the calendar day after date_str (YYYY-MM-DD)."""
    return (date.fromisoformat(date_str) + timedelta(days=1)).isoformat()


def is_outside_editing_period(today: str, opens_for_editing: str, end_date: str) -> bool:
    """
    Check whether today falls outside [opens_for_editing, end_date + 1].

    Args:
        today: Current day (YYYY-MM-DD)
        opens_for_editing: First day the forms accept submissions
        end_date: Last day of the camp

    Returns:
        True if submissions are closed
    """
    return today < opens_for_editing or today > add_one_day(end_date)
