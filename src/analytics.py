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
Lightweight analytics tracking for kingdomherald.

Events go to an `analytics_events` Postgres table when DATABASE_URL is set;
without a database every call is a no-op, so tests and small deployments need
no setup.

Usage:
    from analytics import track, track_async

    # Fire-and-forget (schedules a background task)
    track("milestone_announced", "announcement", channel_id=123, properties={"milestone": "open"})

    # Awaitable, when completion matters
    await track_async("selection_completed", "selection", user_id=456)
"""

import asyncio
import json
import logging
import os
from typing import Any, Optional

import asyncpg

logger = logging.getLogger("kingdomherald.analytics")

CATEGORIES = frozenset(
    {"announcement", "reminder", "selection", "command", "error", "system"}
)

_pool: Optional[asyncpg.Pool] = None
_pending: set[asyncio.Task] = set()


def is_enabled() -> bool:
    """Analytics runs only with a database URL and ANALYTICS_ENABLED not false."""
    if os.getenv("ANALYTICS_ENABLED", "true").lower() != "true":
        return False
    return bool(os.getenv("DATABASE_URL"))


async def _get_pool() -> Optional[asyncpg.Pool]:
    """Get or create the connection pool."""
    global _pool
    if _pool is None:
        try:
            _pool = await asyncpg.create_pool(os.getenv("DATABASE_URL"), min_size=1, max_size=2)
        except Exception as e:
            logger.warning(f"Analytics pool creation failed: {e}")
            return None
    return _pool


async def track_async(
    event_name: str,
    event_category: str,
    user_id: Optional[int] = None,
    channel_id: Optional[int] = None,
    guild_id: Optional[int] = None,
    properties: Optional[dict[str, Any]] = None,
) -> bool:
    """
    Record an event.

    Args:
        event_name: Specific event identifier (e.g., "reminder_delivered")
        event_category: One of CATEGORIES
        user_id: Discord user ID (optional)
        channel_id: Discord channel ID (optional)
        guild_id: Discord guild ID (optional)
        properties: Additional event data as key-value pairs

    Returns:
        True if the event was recorded, False otherwise
    """
    if not is_enabled():
        return False
    if event_category not in CATEGORIES:
        logger.debug(f"Unknown analytics category {event_category!r} for {event_name}")

    pool = await _get_pool()
    if pool is None:
        return False

    try:
        await pool.execute(
            """
            INSERT INTO analytics_events
                (event_name, event_category, user_id, channel_id, guild_id, properties)
            VALUES ($1, $2, $3, $4, $5, $6)
            """,
            event_name,
            event_category,
            user_id,
            channel_id,
            guild_id,
            json.dumps(properties or {}, default=str),
        )
        return True
    except Exception as e:
        logger.debug(f"Analytics tracking failed: {e}")
        return False


def track(
    event_name: str,
    event_category: str,
    user_id: Optional[int] = None,
    channel_id: Optional[int] = None,
    guild_id: Optional[int] = None,
    properties: Optional[dict[str, Any]] = None,
) -> None:
    """
    Record an event without waiting for it.

    Outside a running event loop the event is dropped.
    """
    if not is_enabled():
        return

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return

    task = loop.create_task(
        track_async(event_name, event_category, user_id, channel_id, guild_id, properties)
    )
    # Keep a reference until done so the task is not garbage collected
    _pending.add(task)
    task.add_done_callback(_pending.discard)


async def shutdown() -> None:
    """Flush pending events and close the pool. Call on bot shutdown."""
    global _pool
    if _pending:
        await asyncio.gather(*_pending, return_exceptions=True)
    if _pool is not None:
        await _pool.close()
        _pool = None
