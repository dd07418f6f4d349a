# services/reminder_service.py

"""
Daily reminder dispatcher.

An APScheduler interval job checks every user with email alerts on. Once the
local time in the user's zone reaches their reminder time, today's reminder
is claimed in the database and handed to the injected sender. The claim is a
compare-and-set on `last_reminder_sent_date`, so restarts and several workers
never send the same day twice.
"""

import logging
from datetime import datetime
from typing import Callable, Optional, Tuple

import pytz
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config import config
from core.database import DatabaseManager
from core.intervals import parse_time
from core.models import InvalidTimeFormat, ReminderSetting

logger = logging.getLogger(__name__)

Sender = Callable[[str, str, str], None]

REMINDER_SUBJECT = "Your daily StepHabit reminder"
DASHBOARD_URL = "https://app.stephabit.com"


class SenderUnavailable(Exception):
    """Raised by a sender that is not configured; pauses the current tick"""
    pass


def local_time_info(timezone: Optional[str], now: Optional[datetime] = None) -> Tuple[int, str]:
    """(minute of day, YYYY-MM-DD) in the given zone, falling back to the default zone"""
    now = now or datetime.now(pytz.utc)
    try:
        zone = pytz.timezone(timezone or config.reminders.default_timezone)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"⚠️ Unknown timezone {timezone!r}, using {config.reminders.default_timezone}")
        zone = pytz.timezone(config.reminders.default_timezone)
    local = now.astimezone(zone)
    return local.hour * 60 + local.minute, local.date().isoformat()


def due_date_key(setting: ReminderSetting, now: Optional[datetime] = None) -> Optional[str]:
    """Local date to send for, or None when nothing is due"""
    try:
        scheduled = parse_time(setting.daily_reminder_time, field_name="dailyReminderTime")
    except InvalidTimeFormat:
        return None

    current, date_key = local_time_info(setting.timezone, now)
    # Late ticks still send (catch-up after downtime)
    if current < scheduled:
        return None
    if setting.last_reminder_sent_date == date_key:
        return None
    return date_key


def build_reminder_text(setting: ReminderSetting) -> str:
    name = setting.name or "there"
    zone = setting.timezone or config.reminders.default_timezone
    return (
        f"Hi {name},\n\n"
        f"This is your scheduled daily reminder from StepHabit. Take a moment to review "
        f"today's plan and keep your streaks on track.\n\n"
        f"Reminder time: {setting.daily_reminder_time} ({zone})\n"
        f"Dashboard: {DASHBOARD_URL}\n\n"
        f"You've got this!\nThe StepHabit Team"
    )


class ReminderService:
    """Periodic, idempotent daily reminder dispatch"""

    def __init__(self, store: DatabaseManager, sender: Sender, interval_seconds: Optional[int] = None):
        self.store = store
        self.sender = sender
        self.interval_seconds = interval_seconds or config.reminders.interval_seconds
        self.scheduler: Optional[BackgroundScheduler] = None

    def dispatch(self, now: Optional[datetime] = None) -> int:
        """One tick. Returns the number of reminders sent."""
        sent = 0
        for setting in self.store.list_reminder_settings():
            if not setting.email:
                continue

            date_key = due_date_key(setting, now)
            if date_key is None:
                continue

            if not self.store.claim_reminder_slot(setting.owner_id, date_key):
                logger.debug(f"Reminder for owner {setting.owner_id} on {date_key} already claimed")
                continue

            try:
                self.sender(setting.email, REMINDER_SUBJECT, build_reminder_text(setting))
            except SenderUnavailable:
                self.store.release_reminder_slot(setting.owner_id, date_key, setting.last_reminder_sent_date)
                logger.warning("⚠️ Email sender is not configured; reminders are paused")
                break
            except Exception as e:
                self.store.release_reminder_slot(setting.owner_id, date_key, setting.last_reminder_sent_date)
                logger.error(f"❌ Failed to send reminder to {setting.email}: {e}")
                continue

            sent += 1
            logger.info(f"📧 Sent reminder email to {setting.email}")
        return sent

    def _tick(self):
        try:
            self.dispatch()
        except Exception as e:
            logger.error(f"❌ Reminder dispatch error: {e}")

    def start(self) -> BackgroundScheduler:
        if self.scheduler is not None:
            return self.scheduler

        self.scheduler = BackgroundScheduler(timezone=pytz.utc)
        self.scheduler.add_job(
            self._tick,
            IntervalTrigger(seconds=self.interval_seconds),
            id="daily_reminders",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        logger.info(f"📅 Reminder scheduler started (every {self.interval_seconds}s)")
        return self.scheduler

    def shutdown(self):
        if self.scheduler is not None:
            self.scheduler.shutdown(wait=False)
            self.scheduler = None
            logger.info("🛑 Reminder scheduler stopped")


def log_sender(to: str, subject: str, text: str) -> None:
    """Default sender: writes the reminder to the log instead of mailing it"""
    logger.info(f"✉️ [{subject}] -> {to}\n{text}")
