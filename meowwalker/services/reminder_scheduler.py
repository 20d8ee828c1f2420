"""
Reminder scheduler - background task that scans today's pending visits
once per interval and alerts 30 minutes ahead and at the visit time.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import List, Optional, Set, Tuple

from meowwalker.models import Appointment
from meowwalker.services.appointment_store import AppointmentStore
from meowwalker.services.notification_service import Notifier

logger = logging.getLogger(__name__)

AHEAD_MINUTES = 30

AHEAD = "ahead"
DUE = "due"


@dataclass
class Reminder:
    kind: str
    appointment: Appointment
    title: str
    body: str


def build_reminder(kind: str, apt: Appointment) -> Reminder:
    if kind == AHEAD:
        return Reminder(
            kind=AHEAD,
            appointment=apt,
            title=f"Feeding reminder: {apt.client_name}",
            body=f"Head to {apt.address} in {AHEAD_MINUTES} minutes",
        )
    return Reminder(
        kind=DUE,
        appointment=apt,
        title="Feeding time!",
        body=f"Go to {apt.client_name}'s place now",
    )


class ReminderScheduler:
    """
    Edge-triggered reminders: an alert fires only on the tick where the
    minutes left are exactly 30 or 0. A tick that drifts past that minute
    does not fire it later.

    Each (appointment, kind) fires at most once per run, so intervals
    shorter than a minute do not repeat an alert.
    """

    def __init__(
        self,
        store: AppointmentStore,
        notifier: Notifier,
        interval_seconds: int = 60,
        tz: Optional[tzinfo] = None,
    ):
        self.store = store
        self.notifier = notifier
        self.interval_seconds = interval_seconds
        self.tz = tz
        self._task: Optional[asyncio.Task] = None
        # (appointment id, kind, date) already delivered
        self._fired: Set[Tuple[str, str, date]] = set()
        self.stats = {
            "total_ticks": 0,
            "failed_ticks": 0,
            "reminders_sent": 0,
            "last_tick_time": None,
            "bot_start_time": None,
        }

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def due_reminders(self, now: datetime) -> List[Reminder]:
        """Reminders that fire at `now` (wall-clock time in the scheduler zone)"""
        today = now.date()
        now_minutes = now.hour * 60 + now.minute

        reminders = []
        for apt in self.store.list():
            if apt.is_completed or apt.date != today:
                continue

            minutes_until = apt.minute_of_day - now_minutes
            if minutes_until == AHEAD_MINUTES:
                reminders.append(build_reminder(AHEAD, apt))
            if minutes_until == 0:
                reminders.append(build_reminder(DUE, apt))
        return reminders

    async def tick(self, now: Optional[datetime] = None) -> int:
        """
        Run one scan and deliver its reminders.

        Returns:
            Number of reminders fired
        """
        now = now or self.now()
        self.stats["total_ticks"] += 1
        self.stats["last_tick_time"] = now

        today = now.date()
        self._fired = {key for key in self._fired if key[2] == today}
        reminders = []
        for reminder in self.due_reminders(now):
            key = (reminder.appointment.id, reminder.kind, today)
            if key in self._fired:
                continue
            self._fired.add(key)
            reminders.append(reminder)

        for reminder in reminders:
            logger.info(
                f"Reminder ({reminder.kind}) for {reminder.appointment.client_name} "
                f"at {reminder.appointment.time:%H:%M}"
            )
            await self.notifier.notify(reminder.title, reminder.body)
            self.stats["reminders_sent"] += 1
        return len(reminders)

    async def run(self) -> None:
        """Tick forever at the configured interval"""
        while True:
            try:
                await self.tick()
            except Exception as e:
                logger.error(f"Error in reminder tick: {e}")
                self.stats["failed_ticks"] += 1

            await asyncio.sleep(self.interval_seconds)

    def start(self) -> asyncio.Task:
        """Start the background loop on the running event loop"""
        if self._task is None or self._task.done():
            self.stats["bot_start_time"] = self.now()
            self._task = asyncio.get_running_loop().create_task(self.run())
            logger.info(
                f"Reminder scheduler started (every {self.interval_seconds}s)"
            )
        return self._task

    async def stop(self) -> None:
        """Cancel the background loop"""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Reminder scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()
