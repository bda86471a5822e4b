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
Reminder Scheduler Module

Background task loop for delivering due reminders.
Uses discord.ext.tasks for reliable scheduling.
"""

import logging
from typing import TYPE_CHECKING

from discord.ext import tasks

from analytics import track

if TYPE_CHECKING:
    from discord_bot import DiscordBot

from .queue import ReminderQueue

logger = logging.getLogger("kingdomherald.reminders.scheduler")


class ReminderScheduler:
    """
    Background scheduler for delivering reminders.

    Sweeps the reminder queue every `interval_seconds` (30 by default).
    Delivery failures are handled inside the queue; anything else that
    escapes a sweep is logged so the loop keeps running.
    """

    def __init__(self, bot: "DiscordBot", queue: ReminderQueue, interval_seconds: float = 30):
        """
        Initialize the reminder scheduler.

        Args:
            bot: Discord bot instance
            queue: Reminder queue to sweep
            interval_seconds: Seconds between sweeps
        """
        self.bot = bot
        self.queue = queue
        self.interval_seconds = interval_seconds
        self._started = False

    def start(self) -> None:
        """Start the scheduler loop."""
        if not self._started:
            self._check_reminders.change_interval(seconds=self.interval_seconds)
            self._check_reminders.start()
            self._started = True
            logger.info("Reminder scheduler started")

    def stop(self) -> None:
        """Stop the scheduler loop."""
        if self._started:
            self._check_reminders.cancel()
            self._started = False
            logger.info("Reminder scheduler stopped")

    @tasks.loop(seconds=30)
    async def _check_reminders(self) -> None:
        """Check for due reminders and deliver them."""
        await self.run_sweep()

    async def run_sweep(self) -> None:
        try:
            await self.queue.sweep()
        except Exception as e:
            logger.error(f"Error in reminder scheduler loop: {e}", exc_info=True)
            track(
                "scheduler_error",
                "error",
                properties={
                    "task": "reminders",
                    "error_type": type(e).__name__,
                    "error_message": str(e)[:200],
                },
            )

    @_check_reminders.before_loop
    async def _before_check(self) -> None:
        """Wait for the bot to be ready before starting the loop."""
        await self.bot.wait_until_ready()
        logger.info("Reminder scheduler ready, starting loop")
