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
Announcements Package

Milestone announcements derived from calendar event windows.
"""

from .engine import FiredMilestone, MilestoneEngine
from .milestones import (
    ANNOUNCED_TYPES,
    CLOSED,
    DEFERRED,
    OPEN,
    REGISTRATION,
    WARNING,
    EventKind,
    Milestone,
    flag_key,
)
from .scheduler import AnnouncementScheduler

__all__ = [
    "ANNOUNCED_TYPES",
    "CLOSED",
    "DEFERRED",
    "OPEN",
    "REGISTRATION",
    "WARNING",
    "EventKind",
    "FiredMilestone",
    "Milestone",
    "MilestoneEngine",
    "AnnouncementScheduler",
    "flag_key",
]
