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
Announcement Scheduler Module

Background task loop that runs the milestone engine on a fixed period.
Uses discord.ext.tasks; the first cycle runs as soon as the bot is ready.
"""

import logging
from typing import TYPE_CHECKING

from discord.ext import tasks

from analytics import track

if TYPE_CHECKING:
    from discord_bot import DiscordBot

from .engine import MilestoneEngine

logger = logging.getLogger("kingdomherald.announcements.scheduler")


class AnnouncementScheduler:
    """
    Runs MilestoneEngine.poll_once every `interval_minutes`.

    Errors from a cycle are logged and the loop keeps going; the engine's
    flags make the next cycle pick up where the failed one stopped.
    """

    def __init__(self, bot: "DiscordBot", engine: MilestoneEngine, interval_minutes: float = 10):
        self.bot = bot
        self.engine = engine
        self.interval_minutes = interval_minutes
        self._started = False

    def start(self) -> None:
        """Start the polling loop."""
        if not self._started:
            self._poll.change_interval(minutes=self.interval_minutes)
            self._poll.start()
            self._started = True
            logger.info(f"Announcement scheduler started (every {self.interval_minutes} min)")

    def stop(self) -> None:
        """Stop the polling loop."""
        if self._started:
            self._poll.cancel()
            self._started = False
            logger.info("Announcement scheduler stopped")

    @tasks.loop(minutes=10)
    async def _poll(self) -> None:
        """Run one announcement cycle."""
        await self.run_cycle()

    async def run_cycle(self) -> None:
        try:
            await self.engine.poll_once()
        except Exception as e:
            logger.error(f"Error in announcement cycle: {e}", exc_info=True)
            track(
                "scheduler_error",
                "error",
                properties={
                    "task": "announcements",
                    "error_type": type(e).__name__,
                    "error_message": str(e)[:200],
                },
            )

    @_poll.before_loop
    async def _before_poll(self) -> None:
        """Wait for the bot to be ready before the first cycle."""
        await self.bot.wait_until_ready()
        logger.info("Announcement scheduler ready, starting loop")
