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
Message Formatting

Pure functions turning event kinds, milestones and settings into the text the
bot posts. Nothing here reads global state or the clock; the same inputs always
produce the same text.
"""

from datetime import datetime
from typing import Iterable, Optional

from state.models import GuildSettings, ReminderJob

from .milestones import CLOSED, DEFERRED_WINDOW, OPEN, REGISTRATION_WINDOW, WARNING

# Discord message length limit
DISCORD_MAX_LENGTH = 2000

NOT_SET = "NOT SET"


def role_mention(role_id: Optional[int]) -> str:
    return f"<@&{role_id}>" if role_id else ""


def channel_mention(channel_id: Optional[int]) -> str:
    return f"<#{channel_id}>" if channel_id else ""


def iso_date(value: datetime) -> str:
    """YYYY-MM-DD of a UTC datetime."""
    return value.strftime("%Y-%m-%d")


def format_utc(value: datetime) -> str:
    """e.g. '2025-02-02 14:00 UTC'"""
    return value.strftime("%Y-%m-%d %H:%M UTC")


def format_duration(seconds: float) -> str:
    """Compact duration like '1d 4h 5m'; negative durations read as '0m'."""
    s = max(0, int(seconds))
    days, rem = divmod(s, 86400)
    hours, rem = divmod(rem, 3600)
    minutes = rem // 60

    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    parts.append(f"{minutes}m")
    return " ".join(parts)


def with_ping(ping: str, body: str) -> str:
    return f"{ping}\n{body}" if ping else body


# =============================================================================
# Milestone announcements
# =============================================================================


def _registration_message(milestone: str, settings: GuildSettings) -> str:
    if milestone == OPEN:
        role = role_mention(settings.team_role_id)
        if role:
            return f"AOO registration is opened, reach out to {role} for registration!"
        return "AOO registration is opened. Reach out to the AOO team for registration!"
    if milestone == WARNING:
        return "AOO registration will close soon, be sure you are registered!"
    if milestone == CLOSED:
        return "AOO registration closed"
    raise ValueError(f"Unknown milestone: {milestone}")


def _deferred_message(milestone: str, settings: GuildSettings) -> str:
    if milestone == OPEN:
        channel = channel_mention(settings.secondary_channel_id) or "**[MGE channel not set]**"
        role = role_mention(settings.secondary_role_id) or "**[MGE role not set]**"
        return f"MGE registration is open, register in {channel} channel, or reach out to {role} !"
    if milestone == WARNING:
        return "MGE registration closes in 24 hours, don’t forget to apply!"
    if milestone == CLOSED:
        return "MGE registration is closed"
    raise ValueError(f"Unknown milestone: {milestone}")


def milestone_message(kind: str, milestone: str, settings: GuildSettings) -> str:
    """
    Announcement body for one milestone.

    Args:
        kind: Event kind name (registration-window or deferred-window)
        milestone: open, warning or closed
        settings: Settings snapshot used for role/channel mentions

    Raises:
        ValueError: For an unknown kind or milestone
    """
    if kind == REGISTRATION_WINDOW:
        return _registration_message(milestone, settings)
    if kind == DEFERRED_WINDOW:
        return _deferred_message(milestone, settings)
    raise ValueError(f"Unknown event kind: {kind}")


# =============================================================================
# Countdown reminders
# =============================================================================


def countdown_message(ping: str, minutes: int, start: datetime) -> str:
    urge = "get ready!" if minutes >= 30 else "be ready!"
    body = f"AOO starts in **{minutes} minutes** — {urge} (Start: {format_utc(start)})"
    return with_ping(ping, body)


def selection_confirmation(start: datetime, scheduled: int) -> str:
    if scheduled == 0:
        note = "Both reminder times are already in the past, so nothing was scheduled."
    else:
        note = (
            f"Scheduled **{scheduled}** reminder(s). "
            "(Overwrote your previous AOO selection in this channel)"
        )
    return f"✅ AOO start selected: **{format_utc(start)}**\n{note}"


# =============================================================================
# Operator listings
# =============================================================================


def settings_summary(settings: GuildSettings, pending_count: int) -> list[str]:
    def show(mention: str, missing: str = NOT_SET) -> str:
        return mention or missing

    return [
        "Current config:",
        f"Ping channel: {show(channel_mention(settings.announcement_channel_id))}",
        f"Access role: {show(role_mention(settings.access_role_id), 'NOT SET (Admins only bootstrap)')}",
        f"AOO Team role: {show(role_mention(settings.team_role_id))}",
        f"MGE channel: {show(channel_mention(settings.secondary_channel_id))}",
        f"MGE role: {show(role_mention(settings.secondary_role_id))}",
        f"Scheduled reminders: {pending_count}",
    ]


def pending_summary(
    jobs: list[ReminderJob],
    now: datetime,
    limit: int = 40,
    preview_length: int = 120,
) -> list[str]:
    """
    Lines listing pending reminders, soonest first.

    Args:
        jobs: Unsent jobs, already sorted by fire time
        now: Reference time for the "in ..." countdown
        limit: Maximum jobs listed
        preview_length: Message preview cut-off
    """
    lines = [f"Scheduled reminders: {len(jobs)}", ""]

    shown = jobs[:limit]
    for i, job in enumerate(shown, start=1):
        remaining = format_duration((job.fire_at - now).total_seconds())
        preview = job.message.replace("\n", " ")[:preview_length]
        ellipsis = "…" if len(preview) == preview_length else ""
        lines.append(f"{i}) {format_utc(job.fire_at)} (in {remaining}) — {preview}{ellipsis}")

    if len(jobs) > len(shown):
        lines.append("")
        lines.append(f"(Showing first {len(shown)} of {len(jobs)})")
    return lines


def chunk_lines(lines: Iterable[str], limit: int = DISCORD_MAX_LENGTH, fence: str = "```") -> list[str]:
    """
    Pack lines into code-block messages that each fit Discord's length limit.

    A single line longer than the limit is cut so every chunk stays sendable.
    """
    budget = limit - 2 * len(fence) - 2
    chunks = []
    current: list[str] = []
    size = 0

    for line in lines:
        line = line[:budget]
        added = len(line) + (1 if current else 0)
        if current and size + added > budget:
            chunks.append(current)
            current, size = [], 0
            added = len(line)
        current.append(line)
        size += added

    if current:
        chunks.append(current)
    return [f"{fence}\n" + "\n".join(chunk) + f"\n{fence}" for chunk in chunks]
