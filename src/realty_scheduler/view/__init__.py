"""Calendar page state and rendering."""

from .calendar_view import CalendarViewModel, Notice
from .render import render_month, render_day, render_detail, render_appointment, render_notice, to_text

__all__ = [
    "CalendarViewModel",
    "Notice",
    "render_month",
    "render_day",
    "render_detail",
    "render_appointment",
    "render_notice",
    "to_text",
]
