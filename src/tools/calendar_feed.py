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
Calendar Feed Client

Reads the shared ICS calendar that drives announcements and the AOO picker.
Events carry a "Type: <tag>" line in their description, summary or location;
events without one are ignored by callers.
"""

import logging
import os
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

import httpx
import pytz
from icalendar import Calendar

logger = logging.getLogger("kingdomherald.tools.calendar_feed")

TYPE_TAG_PATTERN = re.compile(r"Type:\s*([a-z0-9_]+)", re.IGNORECASE)


class CalendarFeedError(Exception):
    """Raised when the calendar feed cannot be fetched or parsed."""

    pass


def parse_event_type(text: str) -> Optional[str]:
    """
    Extract the lowercase type tag from free text.

    Args:
        text: Description/summary/location text

    Returns:
        The tag (e.g. "ark_registration") or None if there is no Type: line
    """
    match = TYPE_TAG_PATTERN.search(text or "")
    return match.group(1).lower() if match else None


def _to_utc(value) -> datetime:
    # All-day events decode to date; floating times are taken as UTC
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return pytz.UTC.localize(value)
        return value.astimezone(pytz.UTC)
    if isinstance(value, date):
        return pytz.UTC.localize(datetime(value.year, value.month, value.day))
    raise ValueError(f"Unsupported date value: {value!r}")


@dataclass
class CalendarEvent:
    """A single VEVENT from the feed."""

    id: str
    start: datetime
    end: datetime
    summary: str = ""
    description: str = ""
    location: str = ""

    @property
    def text(self) -> str:
        return "\n".join(p for p in (self.description, self.summary, self.location) if p)

    @property
    def type_tag(self) -> Optional[str]:
        return parse_event_type(self.text)


def parse_calendar(ics_text: str) -> list[CalendarEvent]:
    """
    Parse ICS text into events.

    VEVENTs without a usable start, or whose end is not after the start,
    are skipped with a warning.

    Raises:
        CalendarFeedError: If the text is not a calendar at all
    """
    try:
        calendar = Calendar.from_ical(ics_text)
    except ValueError as e:
        raise CalendarFeedError(f"Invalid calendar data: {e}") from e

    events = []
    for component in calendar.walk("VEVENT"):
        uid = str(component.get("UID") or "no_uid")
        try:
            start = _to_utc(component.decoded("DTSTART"))
            if component.get("DTEND") is not None:
                end = _to_utc(component.decoded("DTEND"))
            elif component.get("DURATION") is not None:
                end = start + component.decoded("DURATION")
            else:
                end = start + timedelta(days=1)
        except (KeyError, ValueError) as e:
            logger.warning(f"Skipping event {uid}: {e}")
            continue

        if end <= start:
            logger.warning(f"Skipping event {uid}: end {end} is not after start {start}")
            continue

        events.append(
            CalendarEvent(
                id=uid,
                start=start,
                end=end,
                summary=str(component.get("SUMMARY", "")),
                description=str(component.get("DESCRIPTION", "")),
                location=str(component.get("LOCATION", "")),
            )
        )
    return events


class CalendarFeedClient:
    """Fetches the ICS feed over HTTP."""

    def __init__(self, url: Optional[str] = None, timeout: float = 30.0):
        self.url = url or os.getenv("ICS_URL")
        if not self.url:
            logger.warning("ICS_URL not set - calendar fetches will fail")

        self._client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"Accept": "text/calendar"},
        )

    async def close(self) -> None:
        """Close the HTTP client"""
        await self._client.aclose()

    async def fetch_events(self) -> list[CalendarEvent]:
        """
        Fetch and parse the current feed.

        Returns:
            Every event in the feed (typed or not)

        Raises:
            CalendarFeedError: On HTTP failure or unparseable data
        """
        if not self.url:
            raise CalendarFeedError("No calendar feed URL configured")

        try:
            response = await self._client.get(self.url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise CalendarFeedError(
                f"Calendar feed returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise CalendarFeedError(f"Calendar feed request failed: {e}") from e

        events = parse_calendar(response.text)
        logger.debug(f"Fetched {len(events)} calendar event(s)")
        return events
