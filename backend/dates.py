"""
Due-date parsing for bot messages and relative formatting for reminders.

Accepted message layouts (separator is " : "):
    Go shopping : 2/5/18 : 13:00
    Go shopping : 2/5/18
    Go shopping : today : 15:30
    Go shopping : today
    Go shopping : tomorrow : 18:00
    Go shopping : tomorrow
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from settings import TIMEZONE

SEPARATOR = " : "
DATE_FORMAT = "%d/%m/%y"
DEFAULT_TIME = "12:00"

WEEKDAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
          "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


class WrongFormatError(ValueError):
    def __init__(self):
        super().__init__("Wrong format")


@dataclass
class ParsedTask:
    task: str
    due: datetime


def now() -> datetime:
    return datetime.now(TIMEZONE)


def localize(dt: datetime) -> datetime:
    """Naive datetimes are wall-clock time in TIMEZONE; aware ones are converted."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=TIMEZONE)
    return dt.astimezone(TIMEZONE)


def _resolve_date(word: str, current: datetime) -> str:
    keyword = word.lower()
    if keyword == "today":
        return current.strftime(DATE_FORMAT)
    if keyword == "tomorrow":
        return (current + timedelta(days=1)).strftime(DATE_FORMAT)
    return word


def parse_user_message(msg: str, current: Optional[datetime] = None) -> ParsedTask:
    """
    Parse "<task> : <date>[ : <HH:MM>]" into a task and a due datetime.
    Raises WrongFormatError for anything else, including impossible dates/times.
    """
    current = localize(current) if current else now()
    words = [word.strip() for word in msg.split(SEPARATOR)]

    if len(words) == 2:
        task, date_word = words
        time_word = DEFAULT_TIME
    elif len(words) == 3:
        task, date_word, time_word = words
    else:
        raise WrongFormatError()

    if not task:
        raise WrongFormatError()

    date_text = _resolve_date(date_word, current)
    try:
        due = datetime.strptime(f"{date_text} {time_word}", f"{DATE_FORMAT} %H:%M")
    except ValueError:
        raise WrongFormatError() from None

    return ParsedTask(task=task, due=due.replace(tzinfo=TIMEZONE))


def _weekday_at(date: datetime) -> str:
    return f"{WEEKDAYS[date.weekday()]} at {date:%H:%M}"


def format_due(current: datetime, due: datetime) -> str:
    """Render a due date relative to `current`, e.g. "Tomorrow at 15:04"."""
    current = localize(current)
    due = localize(due)

    due_date = due.date()
    today = current.date()
    time_text = due.strftime("%H:%M")
    this_week = current.isocalendar()[:2]
    due_week = due.isocalendar()[:2]
    next_week = (current + timedelta(weeks=1)).isocalendar()[:2]

    if due_date == today:
        return f"Today at {time_text}"
    if due_date == today + timedelta(days=1):
        return f"Tomorrow at {time_text}"
    if due_date == today - timedelta(days=1):
        return f"Yesterday at {time_text}"
    if due_week == this_week and current > due:
        return f"Last {_weekday_at(due)}"
    if due_week == this_week:
        return _weekday_at(due)
    if due_week == next_week:
        return f"Next {_weekday_at(due)}"
    return (
        f"{WEEKDAYS[due.weekday()]} {due.day} {MONTHS[due.month - 1]} "
        f"{due:%y} at {time_text}"
    )
