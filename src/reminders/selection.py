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
AOO Start Selection

Three-step picker that turns "which hour does our AOO start?" into two
countdown reminders in the channel it was asked from:

1. initiate: pick the next AOO event, offer the UTC dates it covers
2. choose_date: offer the whole UTC hours of that date inside the window
3. choose_hour: schedule reminders 30 and 10 minutes before the start,
   replacing the caller's previous selection in that channel

Each step only needs the token produced by the previous one (see tokens.py).
Failures raise SelectionError carrying a message meant for the user; no
state is touched on failure.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, Optional

import pytz

from announcements.messages import countdown_message, format_utc, iso_date, selection_confirmation
from state import ReminderJob
from tools.calendar_feed import CalendarEvent

from .queue import ReminderQueue
from .tokens import STEP_DATE, STEP_HOUR, SelectionToken, TokenError, decode_token, parse_date

logger = logging.getLogger("kingdomherald.reminders.selection")

# Calendar "Type:" tags of AOO run events
SELECTABLE_TYPES = frozenset({"ark_battle", "aoo"})

# Minutes before the chosen start at which reminders fire
REMINDER_OFFSETS = (30, 10)

# Discord select menus hold at most 25 options
MAX_OPTIONS = 25

NO_VALID_HOURS = "none"


class SelectionError(Exception):
    """A selection step was rejected; str(error) is shown to the user."""

    pass


@dataclass
class DatePrompt:
    """Step 1 output: the event window and the dates to choose from."""

    start: datetime
    end: datetime
    dates: list[str]
    token: str

    @property
    def content(self) -> str:
        return (
            f"AOO event window (UTC): **{format_utc(self.start)}** → **{format_utc(self.end)}**\n"
            "Select the date you want for the AOO start time:"
        )


@dataclass
class HourPrompt:
    """Step 2 output: the hours of the chosen date inside the window."""

    date: str
    hours: list[int]
    token: str

    @property
    def options(self) -> list[tuple[str, str]]:
        """(label, value) pairs; a single sentinel when no hour qualifies."""
        if not self.hours:
            return [("No valid hours", NO_VALID_HOURS)]
        return [(f"{h:02d}:00 UTC", str(h)) for h in self.hours]

    @property
    def content(self) -> str:
        return (
            f"Selected date: **{self.date}** (UTC)\n"
            "Now select the hour (UTC) you want AOO to start."
        )


@dataclass
class SelectionResult:
    """Step 3 output."""

    start: datetime
    group_key: str
    replaced: int
    jobs: list[ReminderJob] = field(default_factory=list)

    @property
    def scheduled(self) -> int:
        return len(self.jobs)

    @property
    def content(self) -> str:
        return selection_confirmation(self.start, self.scheduled)


def candidate_dates(start: datetime, end: datetime, limit: int = MAX_OPTIONS) -> list[str]:
    """UTC dates (YYYY-MM-DD) that overlap [start, end), at most `limit`."""
    start, end = start.astimezone(pytz.UTC), end.astimezone(pytz.UTC)
    day = start.replace(hour=0, minute=0, second=0, microsecond=0)
    dates = []
    while day < end and len(dates) < limit:
        dates.append(iso_date(day))
        day += timedelta(days=1)
    return dates


def hour_instant(date_iso: str, hour: int) -> datetime:
    d = parse_date(date_iso)
    return pytz.UTC.localize(datetime(d.year, d.month, d.day, hour))


def valid_hours(date_iso: str, start: datetime, end: datetime) -> list[int]:
    """Whole UTC hours of date_iso that fall inside [start, end)."""
    return [h for h in range(24) if start <= hour_instant(date_iso, h) < end]


def selection_group_key(guild_id: Optional[int], channel_id: int, user_id: int) -> str:
    return f"aoo:{guild_id}:{channel_id}:{user_id}"


def find_next_event(
    events: Iterable[CalendarEvent],
    now: datetime,
    types: frozenset = SELECTABLE_TYPES,
) -> Optional[CalendarEvent]:
    """Earliest-starting event of the given types that has not ended yet."""
    candidates = [ev for ev in events if ev.type_tag in types and ev.end > now]
    return min(candidates, key=lambda ev: ev.start, default=None)


class SelectionProtocol:
    """Drives the picker steps and writes the resulting reminders."""

    def __init__(self, queue: ReminderQueue, ping_text: str = "@everyone"):
        self.queue = queue
        self.ping_text = ping_text

    def initiate(self, events: Iterable[CalendarEvent], now: Optional[datetime] = None) -> DatePrompt:
        now = now or datetime.now(pytz.UTC)
        event = find_next_event(events, now)
        if event is None:
            raise SelectionError(
                "No upcoming/ongoing AOO run event found. "
                "Make sure the calendar event has `Type: ark_battle` (or `Type: aoo`)."
            )

        dates = candidate_dates(event.start, event.end)
        if not dates:
            raise SelectionError("AOO event has no selectable dates (check start/end).")

        token = SelectionToken(step=STEP_DATE, start=event.start, end=event.end)
        return DatePrompt(start=token.start, end=token.end, dates=dates, token=token.encode())

    def choose_date(
        self,
        raw_token: str,
        date_iso: Optional[str],
        now: Optional[datetime] = None,
    ) -> HourPrompt:
        now = now or datetime.now(pytz.UTC)
        token = self._decode(raw_token, STEP_DATE, now)
        if not date_iso:
            raise SelectionError("No date selected.")
        try:
            parse_date(date_iso)
        except TokenError:
            raise SelectionError("That date is not valid. Run the command again.")

        hours = valid_hours(date_iso, token.start, token.end)
        return HourPrompt(date=date_iso, hours=hours, token=token.with_date(date_iso).encode())

    def choose_hour(
        self,
        raw_token: str,
        hour_value: Optional[str],
        guild_id: Optional[int],
        channel_id: int,
        user_id: int,
        now: Optional[datetime] = None,
    ) -> SelectionResult:
        now = now or datetime.now(pytz.UTC)
        token = self._decode(raw_token, STEP_HOUR, now)

        if not hour_value or hour_value == NO_VALID_HOURS:
            raise SelectionError("No valid hour selected.")
        try:
            hour = int(hour_value)
        except ValueError:
            raise SelectionError("No valid hour selected.")
        if not 0 <= hour <= 23:
            raise SelectionError("No valid hour selected.")

        start = hour_instant(token.date, hour)
        if not token.start <= start < token.end:
            raise SelectionError("That hour is outside the AOO event window. Try again.")

        group_key = selection_group_key(guild_id, channel_id, user_id)
        replaced = self.queue.cancel_group(group_key)

        jobs = []
        for minutes in REMINDER_OFFSETS:
            fire_at = start - timedelta(minutes=minutes)
            if fire_at > now:
                jobs.append(
                    self.queue.schedule(
                        channel_id=channel_id,
                        fire_at=fire_at,
                        message=countdown_message(self.ping_text, minutes, start),
                        group_key=group_key,
                    )
                )

        logger.info(
            f"User {user_id} selected AOO start {start.isoformat()} in channel {channel_id}: "
            f"{len(jobs)} scheduled, {replaced} replaced"
        )
        return SelectionResult(start=start, group_key=group_key, replaced=replaced, jobs=jobs)

    def _decode(self, raw_token: str, step: str, now: Optional[datetime]) -> SelectionToken:
        try:
            return decode_token(raw_token, step, now=now)
        except TokenError as e:
            logger.warning(f"Rejected {step} token {raw_token!r}: {e}")
            raise SelectionError(
                "This menu is out of date or invalid. Run the command again to start over."
            ) from e
