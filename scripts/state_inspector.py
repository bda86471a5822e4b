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
State Inspector CLI

Read-only look at the bot's state.json, plus a dry run of the milestone
engine against a calendar file.

Usage:
    # Settings and counts
    python scripts/state_inspector.py show --state-dir /data

    # Fired milestone flags, optionally filtered by prefix
    python scripts/state_inspector.py flags --prefix AOO_REG

    # Pending reminders, soonest first
    python scripts/state_inspector.py jobs

    # Which milestones would fire now (or at --at) for an ICS file
    python scripts/state_inspector.py preview --ics calendar.ics --at 2025-02-02T18:00:00Z
"""

import argparse
import logging
import os
import sys
from datetime import datetime
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytz
from dotenv import load_dotenv

from announcements.messages import format_utc, pending_summary, settings_summary
from announcements.milestones import flag_key, kind_for_tag
from state import StateStore
from tools.calendar_feed import CalendarFeedError, parse_calendar

load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
)
logger = logging.getLogger(__name__)


def parse_instant(value: str) -> datetime:
    """ISO timestamp; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        return pytz.UTC.localize(parsed)
    return parsed.astimezone(pytz.UTC)


def show(store: StateStore):
    for line in settings_summary(store.settings, sum(1 for job in store.jobs if not job.sent)):
        print(line)
    print(f"Milestone flags: {len(store.fired_flags())}")


def list_flags(store: StateStore, prefix: str = None):
    flags = [key for key in store.fired_flags() if not prefix or key.startswith(prefix)]
    if not flags:
        print("No flags found")
        return
    for key in flags:
        print(key)


def list_jobs(store: StateStore, limit: int):
    pending = sorted((job for job in store.jobs if not job.sent), key=lambda job: job.fire_at)
    if not pending:
        print("No scheduled reminders")
        return
    for line in pending_summary(pending, datetime.now(pytz.UTC), limit=limit):
        print(line)


def preview(store: StateStore, ics_path: Path, now: datetime):
    try:
        events = parse_calendar(ics_path.read_text(encoding="utf-8"))
    except (OSError, CalendarFeedError) as e:
        print(f"Error: could not read {ics_path}: {e}")
        sys.exit(1)

    print(f"Milestones due at {format_utc(now)}:")
    found = False
    for event in sorted(events, key=lambda ev: ev.start):
        kind = kind_for_tag(event.type_tag)
        if kind is None:
            continue
        for milestone in kind.milestones:
            if not milestone.is_due(event, now):
                continue
            found = True
            key = flag_key(kind, event, milestone)
            status = "already sent" if store.is_fired(key) else "WOULD SEND"
            print(f"  [{status}] {key}")

    if not found:
        print("  (none)")


def main():
    parser = argparse.ArgumentParser(
        description="State Inspector CLI - Inspect announcement and reminder state"
    )
    parser.add_argument(
        "--state-dir",
        default=os.getenv("STATE_DIR", "/data"),
        help="Directory holding state.json (default: $STATE_DIR or /data)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("show", help="Show settings and counts")

    flags_parser = subparsers.add_parser("flags", help="List fired milestone flags")
    flags_parser.add_argument("--prefix", help="Only flags starting with this prefix")

    jobs_parser = subparsers.add_parser("jobs", help="List pending reminders")
    jobs_parser.add_argument(
        "--limit", type=int, default=40, help="Max results (default: 40)"
    )

    preview_parser = subparsers.add_parser(
        "preview", help="Dry-run the milestone engine against an ICS file"
    )
    preview_parser.add_argument("--ics", type=Path, required=True, help="Calendar file")
    preview_parser.add_argument("--at", help="Evaluate at this ISO time (default: now)")

    args = parser.parse_args()

    state_path = Path(args.state_dir) / "state.json"
    if not state_path.exists():
        print(f"Warning: {state_path} does not exist, showing empty state")
    store = StateStore(state_path, read_only=True)
    store.load()

    if args.command == "show":
        show(store)
    elif args.command == "flags":
        list_flags(store, args.prefix)
    elif args.command == "jobs":
        list_jobs(store, args.limit)
    elif args.command == "preview":
        try:
            now = parse_instant(args.at) if args.at else datetime.now(pytz.UTC)
        except ValueError:
            print(f"Error: invalid --at value {args.at!r}")
            sys.exit(1)
        preview(store, args.ics, now)


if __name__ == "__main__":
    main()
