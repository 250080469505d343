"""AI agents package."""

from receivables.agents.reminder import (
    Reminder,
    ReminderAgent,
    build_bill_lines,
    format_inr_plain,
    render_reminder,
)

__all__ = [
    "Reminder",
    "ReminderAgent",
    "build_bill_lines",
    "format_inr_plain",
    "render_reminder",
]
