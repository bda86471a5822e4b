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
Milestone Definitions

Each announced event type has three milestones (open, warning, closed), each
with a trigger window relative to the event's start/end. A milestone fires at
most once per event, tracked by a flag key in the state store.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from tools.calendar_feed import CalendarEvent

OPEN = "open"
WARNING = "warning"
CLOSED = "closed"

REGISTRATION_WINDOW = "registration-window"
DEFERRED_WINDOW = "deferred-window"

# (start, end) -> (trigger from, trigger until); until=None means no upper bound
WindowFn = Callable[[datetime, datetime], tuple[datetime, Optional[datetime]]]


@dataclass(frozen=True)
class Milestone:
    """One trigger point of an event kind."""

    name: str
    suffix: str
    window: WindowFn

    def is_due(self, event: CalendarEvent, now: datetime) -> bool:
        since, until = self.window(event.start, event.end)
        if now < since:
            return False
        return until is None or now < until


@dataclass(frozen=True)
class EventKind:
    """An announced event type and its milestones, in firing order."""

    name: str
    flag_prefix: str
    milestones: tuple[Milestone, ...]


REGISTRATION = EventKind(
    name=REGISTRATION_WINDOW,
    flag_prefix="AOO_REG",
    milestones=(
        Milestone(OPEN, "open_at_start", lambda s, e: (s, None)),
        Milestone(WARNING, "6h_before_end", lambda s, e: (e - timedelta(hours=6), e)),
        Milestone(CLOSED, "closed_at_end", lambda s, e: (e, None)),
    ),
)

# Registration for the next round opens a day after this one ends and
# closes a day before the next one starts.
DEFERRED = EventKind(
    name=DEFERRED_WINDOW,
    flag_prefix="MGE",
    milestones=(
        Milestone(OPEN, "open_24h_after_end", lambda s, e: (e + timedelta(hours=24), None)),
        Milestone(
            WARNING,
            "48h_before_start_warn_close_24h",
            lambda s, e: (s - timedelta(hours=48), s - timedelta(hours=24)),
        ),
        Milestone(CLOSED, "closed_24h_before_start", lambda s, e: (s - timedelta(hours=24), s)),
    ),
)

# Calendar "Type:" tag -> announced kind
ANNOUNCED_TYPES: dict[str, EventKind] = {
    "ark_registration": REGISTRATION,
    "mge": DEFERRED,
}


def kind_for_tag(tag: Optional[str]) -> Optional[EventKind]:
    if not tag:
        return None
    return ANNOUNCED_TYPES.get(tag)


def flag_key(kind: EventKind, event: CalendarEvent, milestone: Milestone) -> str:
    """Build the idempotency key for one milestone of one event occurrence."""
    uid = event.id or "no_uid"
    day = event.start.strftime("%Y-%m-%d")
    return f"{kind.flag_prefix}_{uid}_{day}_{milestone.suffix}"
