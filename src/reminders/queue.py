# kingdomherald - Discord Event Announcements and Reminders
# Copyright (c) 2025-2026 Slash Daemon slashdaemon@protonmail.com
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, version 3 of the License.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.
#
# Commercial licensing: [slashdaemon@protonmail.com]

"""
Reminder Queue Module

Persisted one-shot reminders. Jobs sharing a group key can be replaced as a
set, which is how a new AOO start selection supersedes the previous one.

Delivery is best-effort and at-most-once: a due job is marked sent whether or
not the message went through, and sent jobs are evicted on the same sweep.
"""

import asyncio
import logging
import secrets
from datetime import datetime
from typing import TYPE_CHECKING, Optional

import pytz

from analytics import track
from state import ReminderJob, StateStore
from state.models import to_epoch_ms

if TYPE_CHECKING:
    from discord_bot import DiscordBot

logger = logging.getLogger("kingdomherald.reminders.queue")


class ReminderQueue:
    """
    Schedules, cancels and delivers reminder jobs held in the state store.

    sweep() is single-flight, so a slow delivery cannot let two overlapping
    sweeps send the same job twice.
    """

    def __init__(self, bot: "DiscordBot", store: StateStore):
        """
        Initialize the reminder queue.

        Args:
            bot: Bot used to deliver messages (needs send_message)
            store: State store owning the job list
        """
        self.bot = bot
        self.store = store
        self._sweep_lock = asyncio.Lock()

    def schedule(
        self,
        channel_id: int,
        fire_at: datetime,
        message: str,
        group_key: Optional[str] = None,
    ) -> ReminderJob:
        """
        Add a reminder job.

        No check is made that fire_at is in the future; a past time is
        delivered on the next sweep.

        Args:
            channel_id: Channel to post in
            fire_at: When to post (aware datetime)
            message: Text to post
            group_key: Optional key for replacing the job later

        Returns:
            The created job
        """
        job = ReminderJob(
            id=f"{channel_id}_{to_epoch_ms(fire_at)}_{secrets.token_hex(6)}",
            channel_id=channel_id,
            fire_at=fire_at,
            message=message,
            group_key=group_key,
        )
        self.store.add_job(job)
        logger.info(f"Scheduled reminder {job.id} for {fire_at.isoformat()}")
        return job

    def cancel_group(self, group_key: Optional[str]) -> int:
        """
        Remove every unsent job with this group key.

        Sent jobs are left for the sweep to evict.

        Returns:
            Number of jobs removed (0 for an empty key)
        """
        if not group_key:
            return 0

        removed = self.store.remove_jobs(
            lambda job: not job.sent and job.group_key == group_key
        )
        if removed:
            logger.info(f"Cancelled {removed} reminder(s) in group {group_key}")
        return removed

    def pending(self) -> list[ReminderJob]:
        """Unsent jobs, soonest first."""
        return sorted(
            (job for job in self.store.jobs if not job.sent),
            key=lambda job: job.fire_at,
        )

    async def sweep(self, now: Optional[datetime] = None) -> int:
        """
        Deliver every due job, then evict sent jobs.

        Args:
            now: Reference time (defaults to the current UTC time)

        Returns:
            Number of due jobs processed (0 if another sweep was running)
        """
        if self._sweep_lock.locked():
            logger.debug("Previous sweep still running, skipping")
            return 0

        async with self._sweep_lock:
            now = now or datetime.now(pytz.UTC)
            due = [job for job in self.store.jobs if job.is_due(now)]

            if due:
                logger.info(f"Processing {len(due)} due reminder(s)")

            # Jobs are marked sent one by one so a cancelled sweep still
            # persists what already went out
            handled: list[str] = []
            try:
                for job in due:
                    await self._deliver(job)
                    job.sent = True
                    handled.append(job.id)
            finally:
                self.store.commit_sweep(handled)
            return len(due)

    async def _deliver(self, job: ReminderJob) -> None:
        try:
            await self.bot.send_message(job.channel_id, job.message)
            logger.info(f"Delivered reminder {job.id} to channel {job.channel_id}")
            track(
                "reminder_delivered",
                "reminder",
                channel_id=job.channel_id,
                properties={"reminder_id": job.id, "grouped": job.group_key is not None},
            )
        except Exception as e:
            logger.error(f"Failed to deliver reminder {job.id}: {e}", exc_info=True)
            track(
                "reminder_delivery_error",
                "error",
                channel_id=job.channel_id,
                properties={
                    "reminder_id": job.id,
                    "error_type": type(e).__name__,
                    "error_message": str(e)[:200],
                },
            )
