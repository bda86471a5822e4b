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
Milestone Engine

Polls the calendar and posts each milestone announcement at most once.

Every milestone owns an independent flag, so a poll that runs after downtime
sends every milestone that became due in the meantime, in order, rather than
only the latest one. A flag is persisted right after its message goes out;
a failed send aborts the rest of the cycle and the next poll retries what
is left.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Optional

import pytz

from analytics import track
from state import StateStore
from tools.calendar_feed import CalendarEvent, CalendarFeedClient

from .messages import milestone_message, with_ping
from .milestones import EventKind, Milestone, flag_key, kind_for_tag

if TYPE_CHECKING:
    from discord_bot import DiscordBot

logger = logging.getLogger("kingdomherald.announcements.engine")


@dataclass
class FiredMilestone:
    """A milestone announced during a poll."""

    key: str
    event_id: str
    kind: str
    milestone: str


class MilestoneEngine:
    """
    Derives milestone announcements from calendar events.

    Single-flight: while a poll is running, further calls return immediately.
    """

    def __init__(
        self,
        bot: "DiscordBot",
        calendar: CalendarFeedClient,
        store: StateStore,
        ping_text: str = "@everyone",
    ):
        """
        Initialize the engine.

        Args:
            bot: Bot used to deliver messages (needs send_message)
            calendar: Source of calendar events (needs fetch_events)
            store: State store holding settings and flags
            ping_text: Prefix line added to every announcement
        """
        self.bot = bot
        self.calendar = calendar
        self.store = store
        self.ping_text = ping_text
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    async def poll_once(self, now: Optional[datetime] = None) -> list[FiredMilestone]:
        """
        Run one announcement cycle.

        Args:
            now: Reference time (defaults to the current UTC time)

        Returns:
            Milestones announced in this cycle (empty when skipped)

        Raises:
            Whatever the calendar fetch or message delivery raised; flags set
            before the failure stay set.
        """
        if self._lock.locked():
            logger.debug("Previous poll still running, skipping")
            return []

        async with self._lock:
            channel_id = self.store.settings.announcement_channel_id
            if not channel_id:
                logger.debug("No announcement channel configured, skipping poll")
                return []

            now = now or datetime.now(pytz.UTC)
            events = await self.calendar.fetch_events()

            fired: list[FiredMilestone] = []
            for event in events:
                kind = kind_for_tag(event.type_tag)
                if kind is None:
                    continue
                for milestone in kind.milestones:
                    result = await self._fire_if_due(channel_id, kind, event, milestone, now)
                    if result:
                        fired.append(result)

            if fired:
                logger.info(f"Poll announced {len(fired)} milestone(s)")
            return fired

    async def _fire_if_due(
        self,
        channel_id: int,
        kind: EventKind,
        event: CalendarEvent,
        milestone: Milestone,
        now: datetime,
    ) -> Optional[FiredMilestone]:
        key = flag_key(kind, event, milestone)
        if self.store.is_fired(key) or not milestone.is_due(event, now):
            return None

        # Re-read settings per message so mentions reflect operator changes
        body = milestone_message(kind.name, milestone.name, self.store.settings)
        await self.bot.send_message(channel_id, with_ping(self.ping_text, body))
        self.store.mark_fired(key)

        logger.info(f"Announced {key}")
        track(
            "milestone_announced",
            "announcement",
            channel_id=channel_id,
            properties={"kind": kind.name, "milestone": milestone.name, "event_id": event.id},
        )
        return FiredMilestone(key=key, event_id=event.id, kind=kind.name, milestone=milestone.name)
