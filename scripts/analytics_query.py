#!/usr/bin/env python3
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
CLI tool for querying analytics data.

Usage:
    python scripts/analytics_query.py summary          # 24-hour overview
    python scripts/analytics_query.py announcements    # Milestones announced
    python scripts/analytics_query.py reminders        # Reminder deliveries by day
    python scripts/analytics_query.py selections       # AOO start selections
    python scripts/analytics_query.py commands         # Command usage
    python scripts/analytics_query.py errors           # Recent errors
"""

import asyncio
import os
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import asyncpg
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")

QUERIES = {
    "summary": """
        SELECT
            COUNT(*) FILTER (WHERE event_name = 'milestone_announced') as announced,
            COUNT(*) FILTER (WHERE event_name = 'reminder_delivered') as reminders,
            COUNT(*) FILTER (WHERE event_name = 'selection_completed') as selections,
            COUNT(*) FILTER (WHERE event_name = 'command_used') as commands,
            COUNT(*) FILTER (WHERE event_category = 'error') as errors
        FROM analytics_events
        WHERE created_at > NOW() - INTERVAL '24 hours'
    """,
    "announcements": """
        SELECT created_at,
               properties->>'kind' as kind,
               properties->>'milestone' as milestone,
               properties->>'event_id' as event_id
        FROM analytics_events
        WHERE event_name = 'milestone_announced' AND created_at > NOW() - INTERVAL '30 days'
        ORDER BY created_at DESC LIMIT 50
    """,
    "reminders": """
        SELECT DATE(created_at) as day,
               COUNT(*) FILTER (WHERE event_name = 'reminder_delivered') as delivered,
               COUNT(*) FILTER (WHERE event_name = 'reminder_delivery_error') as failed
        FROM analytics_events
        WHERE event_name IN ('reminder_delivered', 'reminder_delivery_error')
              AND created_at > NOW() - INTERVAL '14 days'
        GROUP BY DATE(created_at) ORDER BY day DESC
    """,
    "selections": """
        SELECT DATE(created_at) as day,
               COUNT(*) as selections,
               COUNT(DISTINCT user_id) as users,
               SUM((properties->>'scheduled')::int) as scheduled,
               SUM((properties->>'replaced')::int) as replaced
        FROM analytics_events
        WHERE event_name = 'selection_completed' AND created_at > NOW() - INTERVAL '30 days'
        GROUP BY DATE(created_at) ORDER BY day DESC
    """,
    "commands": """
        SELECT properties->>'command_name' as cmd,
               COUNT(*) as count,
               COUNT(DISTINCT user_id) as users
        FROM analytics_events
        WHERE event_name = 'command_used' AND created_at > NOW() - INTERVAL '30 days'
        GROUP BY properties->>'command_name'
        ORDER BY count DESC
    """,
    "errors": """
        SELECT created_at, event_name,
               properties->>'error_type' as type,
               LEFT(properties->>'error_message', 80) as message
        FROM analytics_events
        WHERE event_category = 'error' AND created_at > NOW() - INTERVAL '7 days'
        ORDER BY created_at DESC LIMIT 20
    """,
}


async def run_query(query_name: str):
    """Run a predefined query and print results."""
    if query_name not in QUERIES:
        print(f"Unknown query: {query_name}")
        print(f"Available: {', '.join(QUERIES.keys())}")
        return

    if not DATABASE_URL:
        print("Error: DATABASE_URL not set")
        return

    conn = await asyncpg.connect(DATABASE_URL)
    try:
        rows = await conn.fetch(QUERIES[query_name])
        if not rows:
            print("No data found")
            return

        columns = list(rows[0].keys())
        widths = []
        for col in columns:
            max_len = max(len(str(col)), max(len(str(row[col])) for row in rows))
            widths.append(min(max_len, 24))  # Cap at 24 chars

        header = " | ".join(f"{col:>{widths[i]}}" for i, col in enumerate(columns))
        print(header)
        print("-" * len(header))

        for row in rows:
            values = []
            for i, col in enumerate(columns):
                val_str = "-" if row[col] is None else str(row[col])
                if len(val_str) > widths[i]:
                    val_str = val_str[: widths[i] - 2] + ".."
                values.append(f"{val_str:>{widths[i]}}")
            print(" | ".join(values))

    finally:
        await conn.close()


def main():
    """Main entry point."""
    if len(sys.argv) < 2:
        print("Usage: python analytics_query.py <query_name>")
        print(f"Available queries: {', '.join(QUERIES.keys())}")
        sys.exit(1)

    asyncio.run(run_query(sys.argv[1]))


if __name__ == "__main__":
    main()
